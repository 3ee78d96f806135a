# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
import json

import pytest

from modsolve.base.context import reset_context
from modsolve.core.solver.driver import Solver, SolverResult, parse_goal
from modsolve.exceptions import UnsatisfiableError, UnsatisfiableRootError
from modsolve.models.constraints import UserConstraint
from modsolve.models.variables import TOPLEVEL

from tests.helpers import installed, make_params, make_universe, rec, versions


@pytest.fixture
def two_islands():
    return make_universe(
        rec("a", "1", "b"),
        rec("b", "1"),
        rec("b", "2"),
        rec("c", "1", "d <2"),
        rec("d", "1"),
        rec("d", "2"),
        rec("e", "1", "b"),
    )


def test_parse_goal():
    assert parse_goal("numpy") == ("numpy", None)
    name, constraint = parse_goal("  numpy >=1.20 ")
    assert name == "numpy"
    assert constraint == UserConstraint("numpy", ">=1.20", scope=TOPLEVEL)
    given = UserConstraint("zlib", "<2")
    assert parse_goal(given) == ("zlib", given)


def test_goal_strings_constrain_toplevel(ab):
    result = Solver(ab, params=make_params()).solve(["a <2"])
    assert versions(result.plan) == {"a": "1", "b": "2"}
    assert result.goals == ("a",)


def test_unknown_and_unsatisfiable_roots(ab):
    solver = Solver(ab, params=make_params())
    with pytest.raises(UnsatisfiableRootError) as exc:
        solver.solve(["a >=3", "nope", "b"])
    assert exc.value.bad_goals == (
        ("a", "no version satisfies 'a >=3'"),
        ("nope", "unknown package"),
    )
    assert "nope: unknown package" in str(exc.value)
    # no search was run
    assert solver.check_roots(["a", "b"], []) is None


def test_roots_with_new_versions_disallowed():
    universe = make_universe(rec("b", "2"), installed("b", "1"))
    solver = Solver(universe, params=make_params(allow_new_versions=False))
    with pytest.raises(UnsatisfiableRootError) as exc:
        solver.check_roots(["b"], [UserConstraint("b", ">=2")])
    assert exc.value.bad_goals == (("b", "no version satisfies 'b >=2'"),)
    assert versions(solver.solve(["b"]).plan) == {"b": "1"}


def test_partition(two_islands):
    solver = Solver(two_islands, params=make_params())
    assert solver.partition(["a", "c", "e"]) == [("a", "e"), ("c",)]
    assert solver.partition(["c"]) == [("c",)]


@pytest.mark.parametrize("workers", [1, 3])
def test_independent_goals(two_islands, workers):
    params = make_params(independent_goals=True, solver_workers=workers)
    result = Solver(two_islands, params=params).solve(["a", "c", "e"])
    assert len(result.search_logs) == 2
    assert result.search_log is result.search_logs[0]
    assert versions(result.plan) == {"a": "1", "b": "2", "c": "1", "d": "1", "e": "1"}
    # every group's plan is kept in order, one after the other
    assert [str(pkg_id) for pkg_id in result.plan.order] == [
        "b-2",
        "a-1",
        "e-1",
        "d-1",
        "c-1",
    ]

    joint = Solver(two_islands, params=make_params()).solve(["a", "c", "e"])
    assert versions(joint.plan) == versions(result.plan)
    assert len(joint.search_logs) == 1


def test_independent_group_failure_is_reported(two_islands, pqr):
    universe = make_universe(*two_islands, *pqr)
    params = make_params(independent_goals=True)
    with pytest.raises(UnsatisfiableError):
        Solver(universe, params=params).solve(["a", "p", "q"])


def test_stats_are_summed_over_groups(two_islands):
    params = make_params(independent_goals=True)
    result = Solver(two_islands, params=params).solve(["a", "c"])
    a_only = Solver(two_islands, params=params).solve(["a"])
    c_only = Solver(two_islands, params=params).solve(["c"])
    assert result.stats.nodes_visited == (
        a_only.stats.nodes_visited + c_only.stats.nodes_visited
    )


def test_params_default_to_context(ab):
    reset_context(search_path=(), overrides={"version_preference": "oldest"})
    result = Solver(ab).solve(["a"])
    assert versions(result.plan) == {"a": "1", "b": "2"}


def test_result_dump(ab):
    result = Solver(ab, params=make_params()).solve(["a"])
    assert isinstance(result, SolverResult)
    dumped = result.dump()
    assert dumped["goals"] == ["a"]
    assert dumped["plan"]["order"] == ["b-2", "a-2"]
    assert dumped["stats"]["nodes_visited"] == result.stats.nodes_visited
    assert dumped["stats"]["failures"] == 0


def test_result_to_json(ab):
    result = Solver(ab, params=make_params()).solve(["a"])
    loaded = json.loads(result.to_json())
    assert loaded["plan"]["order"] == ["b-2", "a-2"]
    (b, a) = loaded["plan"]["packages"]
    assert a["library_depends"] == ["b-2"]
    assert b["qualifier"] is None
