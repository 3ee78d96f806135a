# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Solver entry point.

:class:`Solver` wires the builder, validator, preferences and explorer together for one
request, checks up front that every requested package can be met at all, and turns the
solution into a validated :class:`~modsolve.models.plan.SolverInstallPlan`.

With ``independent_goals`` the request is split into groups that cannot reach a common
package, and each group is searched on its own. Their plans are concatenated.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from functools import partial, reduce
from logging import getLogger
from operator import add

from tqdm import tqdm

from ...base.context import context
from ...common.io import DummyExecutor
from ...common.serialize import json_dump
from ...exceptions import UnsatisfiableRootError
from ...models.constraints import UserConstraint
from ...models.universe import Environment
from ...models.variables import QPN, TOPLEVEL
from ..install_plan import InstallPlanAssembler
from .builder import SearchTreeBuilder
from .explorer import Explorer, SearchStats
from .log import SearchLog
from .params import SolverParams
from .preferences import Preferences
from .validator import Validator

log = getLogger(__name__)


class SolverResult:
    """A successful solve: the plan, plus how the search got there."""

    def __init__(self, plan, search_logs, stats, goals):
        self.plan = plan
        self.search_logs = tuple(search_logs)
        self.stats = stats
        self.goals = tuple(goals)

    @property
    def search_log(self):
        """The log of the first goal group; the only one unless goals were split."""
        return self.search_logs[0] if self.search_logs else None

    def dump(self):
        return {
            "goals": list(self.goals),
            "plan": self.plan.to_dict(),
            "stats": self.stats.dump(),
        }

    def to_json(self):
        return json_dump(self.dump())

    def __repr__(self):
        return f"SolverResult({self.plan!r}, {self.stats!r})"


def parse_goal(goal):
    """Split a requested goal into its package name and top-level constraint.

    Goals are package names, ``"name spec"`` strings, or :class:`UserConstraint`
    objects.
    """
    if isinstance(goal, UserConstraint):
        return goal.name, goal
    name, _, spec = goal.strip().partition(" ")
    spec = spec.strip()
    if not spec:
        return name, None
    return name, UserConstraint(name, spec, scope=TOPLEVEL)


class Solver:
    def __init__(
        self,
        universe,
        constraints=(),
        preferences=(),
        params: SolverParams | None = None,
        environment: Environment | None = None,
    ):
        if params is None:
            params = SolverParams.from_context(context)
        self.universe = universe
        self.constraints = tuple(constraints)
        self.preferences = tuple(preferences)
        self.params = params
        self.environment = environment if environment is not None else Environment()

    def solve(self, goals):
        """Resolve ``goals`` into an install plan.

        Returns:
            SolverResult

        Raises:
            UnsatisfiableRootError: a requested package is unknown, or no version of it passes
                the top-level constraints. No search is run.
            UnsatisfiableError: the search exhausted every alternative.
            BudgetExceededError: the search ran out of steps, backjumps or time.
            SetupCycleError: a setup cycle could not be broken with an installed instance.
        """
        names = []
        constraints = list(self.constraints)
        for goal in goals:
            name, constraint = parse_goal(goal)
            if name not in names:
                names.append(name)
            if constraint is not None:
                constraints.append(constraint)
        self.check_roots(names, constraints)

        if self.params.independent_goals:
            groups = self.partition(names)
        else:
            groups = [tuple(names)]
        log.debug("solving %d goal group(s): %s", len(groups), groups)

        params = self.params
        Executor = (
            DummyExecutor
            if params.solver_workers == 1 or len(groups) == 1
            else partial(ThreadPoolExecutor, max_workers=params.solver_workers)
        )
        results = []
        with tqdm(
            total=len(groups),
            desc="Solving independent goals",
            leave=False,
            disable=not params.show_progress,
        ) as t, Executor() as executor:
            solve_group = partial(self._solve_group, constraints=constraints)
            for result in executor.map(solve_group, groups):
                results.append(result)
                t.update()

        plan = reduce(lambda a, b: a.merge(b), (r[0] for r in results))
        stats = reduce(add, (r[2] for r in results), SearchStats())
        return SolverResult(plan.validate(), (r[1] for r in results), stats, names)

    def check_roots(self, names, constraints):
        """Fail before searching when a requested package cannot be met by any version."""
        bad_goals = []
        for name in names:
            if name not in self.universe:
                bad_goals.append((name, "unknown package"))
                continue
            qpn = QPN.toplevel(name)
            applicable = [c for c in constraints if c.applies_to(qpn)]
            candidates = [
                rec
                for rec in self.universe.versions_of(name)
                if not any(
                    Validator.check_user_constraint(rec.key, rec, c) is not None
                    for c in applicable
                )
            ]
            if not self.params.allow_new_versions and self.universe.installed_of(name):
                candidates = [rec for rec in candidates if rec.installed]
            if not candidates:
                if applicable:
                    reason = "no version satisfies %s" % ", ".join(
                        f"'{c}'" for c in applicable
                    )
                else:
                    reason = "no installed version, and new versions are not allowed"
                bad_goals.append((name, reason))
        if bad_goals:
            raise UnsatisfiableRootError(bad_goals)

    def partition(self, names):
        """Group ``names`` so that no two groups can reach a common package."""
        parent = {name: name for name in names}

        def find(name):
            while parent[name] != name:
                parent[name] = parent[parent[name]]
                name = parent[name]
            return name

        owner = {}
        for name in names:
            for reached in sorted(self.universe.reachable_names((name,))):
                if reached in owner:
                    root, other = find(name), find(owner[reached])
                    if root != other:
                        # the group of the earlier goal wins
                        first, second = sorted((root, other), key=names.index)
                        parent[second] = first
                else:
                    owner[reached] = name
        groups = {}
        for name in names:
            groups.setdefault(find(name), []).append(name)
        return [tuple(group) for group in groups.values()]

    def _solve_group(self, names, constraints):
        params = self.params
        validator = Validator(self.universe, self.environment, params, constraints)
        builder = SearchTreeBuilder(self.universe, self.environment, validator)
        preferences = Preferences(self.universe, params, self.preferences, constraints)
        search_log = SearchLog(params.max_log_events)
        explorer = Explorer(builder, preferences, params, search_log)
        state = explorer.explore(names)
        log.debug("goals %s solved: %s", names, explorer.stats)
        assembler = InstallPlanAssembler(self.universe, self.environment, constraints)
        return assembler.assemble(state), search_log, explorer.stats
