# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Structured record of a search.

Events are cheap to create: they hold references to the objects involved and
only render their message the first time it is asked for, so a search that
nobody inspects pays almost nothing for its log.
"""

from __future__ import annotations

from collections import deque
from enum import Enum
from functools import cached_property
from logging import getLogger

from ...common.constants import TRACE
from ...gateways.logging import trace_enabled

log = getLogger(__name__)


class EventKind(Enum):
    TRY = "try"
    FAIL = "fail"
    BACKJUMP = "backjump"
    SKIP = "skip"
    DONE = "done"

    def __str__(self):
        return self.value


class LogEvent:
    """One step of the search at a given depth."""

    def __init__(self, kind, depth, var=None, value=None, conflict_set=None, reason=None):
        self.kind = kind
        self.depth = depth
        self.var = var
        self.value = value
        self.conflict_set = conflict_set
        self.reason = reason

    @cached_property
    def message(self):
        kind = self.kind
        if kind is EventKind.TRY:
            return f"trying: {self.var} = {self.value}"
        if kind is EventKind.FAIL:
            return f"rejecting: {self.reason} (conflict set: {self.conflict_set})"
        if kind is EventKind.BACKJUMP:
            return f"backjumping to {self.var}: conflict set {self.conflict_set}"
        if kind is EventKind.SKIP:
            return f"skipping {self.var}: not in conflict set {self.conflict_set}"
        return "done"

    def __str__(self):
        return "[%s] %s%s" % (str(self.kind).ljust(8), "  " * self.depth, self.message)

    def __repr__(self):
        return f"LogEvent({self.kind}, {self.depth}, {self.var})"


class SearchLog:
    """Events of one search.

    ``history`` holds every event, or the most recent ``max_events`` of them.
    The path view holds only the events on the way to the current node: a
    frame remembers :meth:`mark` when it is pushed, and :meth:`retry` cuts the
    path back to that mark when the frame tries its next branch.
    """

    def __init__(self, max_events=None, logger=None):
        self.history = deque(maxlen=max_events)
        self._path = []
        self._logger = logger or log
        self._trace = trace_enabled(self._logger)
        self.total = 0

    def _record(self, event):
        self.history.append(event)
        self._path.append(event)
        self.total += 1
        if self._trace:
            self._logger.log(TRACE, "%s", event)
        return event

    def try_branch(self, depth, var, value):
        return self._record(LogEvent(EventKind.TRY, depth, var=var, value=value))

    def fail(self, depth, conflict_set, reason, var=None):
        return self._record(
            LogEvent(EventKind.FAIL, depth, var=var, conflict_set=conflict_set, reason=reason)
        )

    def skip(self, depth, var, conflict_set):
        return self._record(LogEvent(EventKind.SKIP, depth, var=var, conflict_set=conflict_set))

    def backjump(self, depth, var, conflict_set):
        return self._record(
            LogEvent(EventKind.BACKJUMP, depth, var=var, conflict_set=conflict_set)
        )

    def done(self, depth):
        return self._record(LogEvent(EventKind.DONE, depth))

    def mark(self):
        return len(self._path)

    def retry(self, mark):
        del self._path[mark:]
        return self.path()

    def path(self):
        return tuple(self._path)

    def __iter__(self):
        return iter(self.history)

    def __len__(self):
        return len(self.history)

    @property
    def truncated(self):
        return self.total > len(self.history)

    def render(self, events=None):
        events = self.history if events is None else events
        return "\n".join(str(event) for event in events)

    def __str__(self):
        return self.render()
