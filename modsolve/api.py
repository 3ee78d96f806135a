# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Public entry points."""

from __future__ import annotations

from logging import getLogger

from .base.context import context
from .core.solver.driver import Solver, SolverResult
from .core.solver.params import SolverParams
from .gateways.logging import initialize_logging, set_verbosity

log = getLogger(__name__)
stdoutlog = getLogger("modsolve.stdout")


def solve(
    universe,
    goals,
    constraints=(),
    preferences=(),
    params: SolverParams | None = None,
    environment=None,
) -> SolverResult:
    """Resolve ``goals`` against ``universe`` into a validated install plan.

    Args:
        universe (PackageUniverse): the available package records.
        goals (Iterable[str | UserConstraint]): requested packages, as names,
            ``"name spec"`` strings, or top-level constraints.
        constraints (Iterable[UserConstraint]): hard constraints.
        preferences (Iterable[PackagePreference]): per-package soft preferences.
        params (SolverParams): solver parameters; taken from the configured
            context when omitted.
        environment (Environment): platform and compiler facts.

    Returns:
        SolverResult: the plan, the search log, and search statistics.

    Raises:
        UnsatisfiableRootError, UnsatisfiableError, BudgetExceededError,
        SetupCycleError: see :mod:`modsolve.exceptions`.
    """
    if context.verbosity:
        initialize_logging()
        set_verbosity(context.verbosity)
    solver = Solver(
        universe,
        constraints=constraints,
        preferences=preferences,
        params=params,
        environment=environment,
    )
    result = solver.solve(goals)
    if context.verbosity >= 1:
        stats = result.stats
        stdoutlog.info(
            "Solved %d package(s): %d nodes visited, %d backjumps, %.3fs",
            len(result.plan),
            stats.nodes_visited,
            stats.backjumps,
            stats.elapsed,
        )
    return result
