# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Modsolve exceptions.

Errors fall in two groups: user-facing unsatisfiability (the request cannot be
met) and internal errors (the solver violated one of its own invariants). The
two are kept apart so presentation layers never explain a solver bug as a
dependency conflict.
"""

from __future__ import annotations

from logging import getLogger

from . import ModsolveError
from .auxlib.ish import dals
from .common.io import dashlist

log = getLogger(__name__)


class InvalidSpec(ModsolveError, ValueError):
    def __init__(self, message, **kwargs):
        super().__init__(message, **kwargs)


class InvalidVersionSpec(InvalidSpec):
    def __init__(self, invalid_spec, details):
        message = "Invalid version '%(invalid_spec)s': %(details)s"
        super().__init__(message, invalid_spec=invalid_spec, details=details)


class UnknownPackageError(InvalidSpec):
    def __init__(self, name):
        message = "Package '%(name)s' is not in the package universe."
        super().__init__(message, name=name)


class SolverError(ModsolveError):
    """Base class for every error raised by a solve."""


class UnsatisfiableRootError(SolverError):
    """A top-level request cannot be met by any version; raised before search."""

    def __init__(self, bad_goals):
        # bad_goals is a sequence of (goal_name, reason) pairs
        self.bad_goals = tuple(bad_goals)
        message = dals(
            """
            The following requested packages cannot be satisfied by any available version:
            %(goals)s
            """
        )
        super().__init__(
            message,
            goals=dashlist(f"{name}: {reason}" for name, reason in self.bad_goals),
        )


class UnsatisfiableError(SolverError):
    """The search space was exhausted without finding a consistent assignment.

    Args:
        conflict_set: the conflict set that reached the root of the search.
        reasons: the failure reasons of the leaves that contributed to it,
            most recent first.
        chain: the conflict sets propagated from the last failing leaf up to
            the root.
        explanation: the shortest prefix of decisions that reproduces the
            last failure.
        search_log: the :class:`~modsolve.core.solver.log.SearchLog` of the run.
    """

    def __init__(self, conflict_set, reasons=(), chain=(), explanation=(), search_log=None):
        self.conflict_set = conflict_set
        self.reasons = tuple(reasons)
        self.chain = tuple(chain)
        self.explanation = tuple(explanation)
        self.search_log = search_log
        message = dals(
            """
            Could not resolve dependencies:%(reasons)s

            Conflict set: %(conflict_set)s
            """
        )
        if self.explanation:
            message += "\nAfter the decisions:%(explanation)s\n"
        super().__init__(
            message,
            reasons=dashlist(self.reasons) or "\n  - (no reason recorded)",
            conflict_set=conflict_set,
            explanation=dashlist(self.explanation),
        )


class BudgetExceededError(SolverError):
    """The search hit its step, backjump or time budget.

    Retrying with a larger budget or narrower constraints may succeed.
    """

    def __init__(self, budget, limit, search_log=None, stats=None):
        self.budget = budget
        self.limit = limit
        self.search_log = search_log
        self.stats = stats
        message = "Search exhausted its %(budget)s budget (limit %(limit)s)."
        super().__init__(message, budget=budget, limit=limit)


class InternalSolverError(SolverError):
    """A solver invariant was violated. Indicates a bug, not a dependency conflict."""

    reportable = True

    def __init__(self, message, **kwargs):
        super().__init__("Internal solver error: " + message, **kwargs)


class PlanCycleError(InternalSolverError):
    def __init__(self, packages_with_cycles, **kwargs):
        self.packages_with_cycles = tuple(packages_with_cycles)
        message = "cyclic dependencies through library edges among:%(cycle)s"
        super().__init__(
            message, cycle=dashlist(str(p) for p in self.packages_with_cycles), **kwargs
        )


class SetupCycleError(SolverError):
    """A setup-dependency cycle needs an installed instance and no usable one exists."""

    def __init__(self, package, cycle, **kwargs):
        self.package = package
        self.cycle = tuple(cycle)
        message = dals(
            """
            The setup dependencies of %(package)s depend on %(package)s itself:%(cycle)s
            The cycle can only be broken with an already-installed instance of
            %(package)s, and no usable one is available.
            """
        )
        super().__init__(
            message, package=package, cycle=dashlist(str(p) for p in self.cycle), **kwargs
        )


class CyclicalDependencyError(ModsolveError, ValueError):
    def __init__(self, nodes_with_cycles, **kwargs):
        self.nodes_with_cycles = tuple(nodes_with_cycles)
        message = "Cyclic dependencies exist among these items:%(cycles)s"
        super().__init__(
            message, cycles=dashlist(str(n) for n in self.nodes_with_cycles), **kwargs
        )
