# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Depth-first exploration of the search tree with conflict-directed backjumping.

The explorer keeps an explicit stack of frames, one per decision on the
current path. When a branch fails with conflict set ``C``, no decision outside
``C`` had any part in the failure, so frames whose variable is not in ``C``
are popped without trying their remaining branches. The first frame whose
variable is in ``C`` absorbs ``C`` and tries its next branch; a frame whose
branches are all exhausted fails in turn, with the union of its children's
conflict sets plus its own variable and the reason its goal was opened.
"""

from __future__ import annotations

import time
from logging import getLogger

from ...base.constants import SolveBudget
from ...exceptions import BudgetExceededError, InternalSolverError, UnsatisfiableError
from .log import SearchLog
from .tree import Done, Fail, FailReason, GoalChoice

log = getLogger(__name__)

#: failure reasons kept per frame for the final explanation
MAX_REASONS = 10


class SearchStats:
    __slots__ = ("nodes_visited", "backjumps", "failures", "max_depth", "elapsed")

    def __init__(self):
        self.nodes_visited = 0
        self.backjumps = 0
        self.failures = 0
        self.max_depth = 0
        self.elapsed = 0.0

    def dump(self):
        return {name: getattr(self, name) for name in self.__slots__}

    def __add__(self, other):
        result = SearchStats()
        result.nodes_visited = self.nodes_visited + other.nodes_visited
        result.backjumps = self.backjumps + other.backjumps
        result.failures = self.failures + other.failures
        result.max_depth = max(self.max_depth, other.max_depth)
        result.elapsed = self.elapsed + other.elapsed
        return result

    def __repr__(self):
        return "SearchStats(%s)" % ", ".join(f"{k}={v}" for k, v in self.dump().items())


class Frame:
    """One decision on the current path."""

    __slots__ = ("choice", "index", "conflict_set", "reasons", "mark")

    def __init__(self, choice, mark):
        self.choice = choice
        self.index = 0
        self.conflict_set = choice.goal.reason
        self.reasons = ()
        self.mark = mark

    @property
    def var(self):
        return self.choice.var

    @property
    def branch(self):
        return self.choice.branches[self.index]

    def absorb(self, conflict_set, reasons):
        self.conflict_set = self.conflict_set | conflict_set
        merged = tuple(r for r in self.reasons if r not in reasons)
        self.reasons = (tuple(reasons) + merged)[:MAX_REASONS]

    def exhausted(self):
        return self.index + 1 >= len(self.choice.branches)

    def failure(self):
        """The conflict set this frame propagates once every branch failed."""
        return self.conflict_set | (self.var,) | self.choice.goal.reason


class Explorer:
    def __init__(self, builder, preferences, params, search_log=None):
        self.builder = builder
        self.preferences = preferences
        self.params = params
        self.search_log = search_log if search_log is not None else SearchLog(params.max_log_events)
        self.stats = SearchStats()
        self.conflict_counts = {}
        self._started = None
        self._last_failure = None
        self._chain = []

    def explore(self, goal_names):
        """Search for a complete consistent assignment.

        Returns:
            SearchState: the state of the first solution found.

        Raises:
            UnsatisfiableError: if the whole tree fails.
            BudgetExceededError: if a step, backjump or time budget runs out first.
        """
        self._started = time.monotonic()
        frames = []
        node = self.builder.root(goal_names)
        try:
            while True:
                self._check_budget()
                self.stats.nodes_visited += 1
                if isinstance(node, GoalChoice):
                    node = self._decide(node, frames)
                elif isinstance(node, Done):
                    self.search_log.done(len(frames))
                    log.debug("solution found after visiting %d nodes", self.stats.nodes_visited)
                    return node.state
                elif isinstance(node, Fail):
                    node = self._backtrack(node, frames)
                else:
                    raise InternalSolverError("unexpected search node %(node)r", node=node)
        finally:
            self.stats.elapsed = time.monotonic() - self._started

    def _decide(self, node, frames):
        goals = self.preferences.order_goals(node.state, node.goals, self.conflict_counts)
        choice = self.preferences.order_branches(self.builder.choice(node.state, goals[0]))
        if not choice.branches:
            return Fail(
                choice.goal.reason | (choice.var,),
                FailReason("no candidates for %(var)s", var=choice.var),
                choice.var,
            )
        frame = Frame(choice, self.search_log.mark())
        frames.append(frame)
        self.stats.max_depth = max(self.stats.max_depth, len(frames))
        return self._take(frame, frames)

    def _take(self, frame, frames):
        branch = frame.branch
        self.search_log.try_branch(len(frames) - 1, frame.var, branch)
        return self.builder.descend(frame.choice, branch)

    def _backtrack(self, fail, frames):
        conflict_set = fail.conflict_set
        if fail.var is not None and fail.var not in conflict_set:
            raise InternalSolverError(
                "conflict set %(cs)s of a failure at %(var)s does not contain it",
                cs=conflict_set,
                var=fail.var,
            )
        self.stats.failures += 1
        self.search_log.fail(len(frames), conflict_set, fail.reason, fail.var)
        for var in conflict_set:
            self.conflict_counts[var] = self.conflict_counts.get(var, 0) + 1
        self._last_failure = (tuple((f.var, f.branch) for f in frames), conflict_set)
        self._chain = [conflict_set]
        reasons = (fail.reason,)

        skipped = False
        while frames:
            frame = frames[-1]
            if self.params.backjumping and frame.var not in conflict_set:
                frames.pop()
                self.search_log.skip(len(frames), frame.var, conflict_set)
                skipped = True
                continue
            if skipped:
                self.stats.backjumps += 1
                self.search_log.backjump(len(frames) - 1, frame.var, conflict_set)
                limit = self.params.max_backjumps
                if limit is not None and self.stats.backjumps > limit:
                    self._exceeded(SolveBudget.BACKJUMPS, limit)
                skipped = False
            frame.absorb(conflict_set, reasons)
            if not frame.exhausted():
                frame.index += 1
                self.search_log.retry(frame.mark)
                return self._take(frame, frames)
            frames.pop()
            conflict_set = frame.failure()
            reasons = frame.reasons
            self._chain.append(conflict_set)

        raise UnsatisfiableError(
            conflict_set,
            reasons=reasons,
            chain=self._chain,
            explanation=self._explanation(),
            search_log=self.search_log,
        )

    def _explanation(self):
        """The shortest prefix of the last failing path that covers its conflict set."""
        if self._last_failure is None:
            return ()
        path, conflict_set = self._last_failure
        last = max((idx for idx, (var, _) in enumerate(path) if var in conflict_set), default=-1)
        return tuple(f"{var} = {branch}" for var, branch in path[: last + 1])

    def _check_budget(self):
        params = self.params
        if params.max_steps is not None and self.stats.nodes_visited >= params.max_steps:
            self._exceeded(SolveBudget.STEPS, params.max_steps)
        if params.timeout is not None and time.monotonic() - self._started > params.timeout:
            self._exceeded(SolveBudget.TIME, params.timeout)

    def _exceeded(self, budget, limit):
        log.debug("search stopped: %s budget of %s exhausted", budget, limit)
        raise BudgetExceededError(budget, limit, search_log=self.search_log, stats=self.stats)

