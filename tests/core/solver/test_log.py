# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from modsolve.core.solver.log import EventKind, LogEvent, SearchLog
from modsolve.core.solver.tree import FailReason
from modsolve.models.variables import ConflictSet

from tests.helpers import pkg_var


def test_path_is_cut_back_on_retry():
    search_log = SearchLog()
    search_log.try_branch(0, "a", "a-2")
    mark = search_log.mark()
    search_log.try_branch(1, "b", "b-2")
    search_log.fail(2, ConflictSet.of(pkg_var("b")), "nope", pkg_var("b"))
    path = search_log.retry(mark)
    assert [e.value for e in path] == ["a-2"]

    search_log.try_branch(1, "b", "b-1")
    assert [e.kind for e in search_log.path()] == [EventKind.TRY, EventKind.TRY]
    # the full history keeps the abandoned branch
    assert len(search_log) == 4
    assert search_log.total == 4
    assert not search_log.truncated


def test_history_is_bounded():
    search_log = SearchLog(max_events=3)
    for n in range(5):
        search_log.try_branch(0, "a", f"a-{n}")
    assert [e.value for e in search_log] == ["a-2", "a-3", "a-4"]
    assert search_log.total == 5
    assert search_log.truncated


def test_messages_render_lazily():
    class Reason:
        calls = 0

        def __str__(self):
            Reason.calls += 1
            return "a-1 conflicts with b-2"

    event = LogEvent(EventKind.FAIL, 1, conflict_set=ConflictSet.of(pkg_var("a")), reason=Reason())
    assert Reason.calls == 0
    assert event.message == "rejecting: a-1 conflicts with b-2 (conflict set: {a})"
    assert event.message
    assert Reason.calls == 1


def test_render():
    search_log = SearchLog()
    search_log.try_branch(0, pkg_var("a"), "a-1")
    search_log.fail(1, ConflictSet.of(pkg_var("a")), FailReason("no %(what)s", what="luck"))
    search_log.skip(0, pkg_var("x"), ConflictSet.of(pkg_var("a")))
    search_log.backjump(0, pkg_var("a"), ConflictSet.of(pkg_var("a")))
    search_log.done(0)
    assert search_log.render().splitlines() == [
        "[try     ] trying: a = a-1",
        "[fail    ]   rejecting: no luck (conflict set: {a})",
        "[skip    ] skipping x: not in conflict set {a}",
        "[backjump] backjumping to a: conflict set {a}",
        "[done    ] done",
    ]
    assert str(search_log) == search_log.render()
