# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
import pytest

from modsolve.base.constants import SolveBudget
from modsolve.core.solver.builder import SearchTreeBuilder
from modsolve.core.solver.explorer import Explorer, SearchStats
from modsolve.core.solver.log import EventKind
from modsolve.core.solver.preferences import Preferences
from modsolve.core.solver.validator import Validator
from modsolve.exceptions import BudgetExceededError, UnsatisfiableError
from modsolve.models.universe import Environment
from modsolve.models.variables import QPN

from tests.helpers import ADVERSARIAL_GOALS, make_params, make_universe, pkg_var, rec


def make_explorer(universe, constraints=(), **params):
    params = make_params(**params)
    validator = Validator(universe, Environment(), params, constraints)
    builder = SearchTreeBuilder(universe, Environment(), validator)
    preferences = Preferences(universe, params, constraints=constraints)
    return Explorer(builder, preferences, params)


def chosen(state):
    return {str(qpn): str(state.instance(qpn).version) for qpn in state.chosen_packages()}


def test_simple_solution(ab):
    explorer = make_explorer(ab)
    state = explorer.explore(["a"])
    assert chosen(state) == {"a": "2", "b": "2"}
    assert explorer.stats.failures == 0
    assert explorer.stats.max_depth == 2
    assert explorer.search_log.history[-1].kind is EventKind.DONE


def test_backjumping_skips_unrelated_decisions(adversarial):
    jumping = make_explorer(adversarial, count_conflicts=False)
    naive = make_explorer(adversarial, count_conflicts=False, backjumping=False)
    expected = {"a": "1", "c": "2", "d": "2", "x": "2", "y": "2"}
    assert chosen(jumping.explore(ADVERSARIAL_GOALS)) == expected
    assert chosen(naive.explore(ADVERSARIAL_GOALS)) == expected

    assert jumping.stats.backjumps == 1
    assert naive.stats.backjumps == 0
    assert jumping.stats.nodes_visited < naive.stats.nodes_visited
    skipped = [e.var for e in jumping.search_log if e.kind is EventKind.SKIP]
    assert skipped == [pkg_var("y"), pkg_var("x")]


def test_unsatisfiable_conflict_set_and_explanation(pqr):
    explorer = make_explorer(pqr)
    with pytest.raises(UnsatisfiableError) as exc:
        explorer.explore(["p", "q"])
    error = exc.value
    assert error.conflict_set == {pkg_var("p"), pkg_var("q"), pkg_var("r")}
    assert error.explanation == ("p = p-1", "q = q-1", "r = r-1")
    assert error.chain[0] == {pkg_var("q"), pkg_var("r")}
    assert error.chain[-1] == error.conflict_set
    assert error.search_log is explorer.search_log
    assert any("requires r ==2" in str(reason) for reason in error.reasons)
    assert "Conflict set: {p, q, r}" in str(error)


def test_conflict_sets_only_name_relevant_decisions():
    # x is decided between p and q but takes no part in the conflict
    universe = make_universe(
        rec("p", "1", "r ==1"),
        rec("q", "1", "r ==2"),
        rec("r", "1"),
        rec("r", "2"),
        rec("x", "1"),
    )
    explorer = make_explorer(universe)
    with pytest.raises(UnsatisfiableError) as exc:
        explorer.explore(["p", "x", "q"])
    assert exc.value.conflict_set == {pkg_var("p"), pkg_var("q"), pkg_var("r")}
    skipped = [e.var for e in explorer.search_log if e.kind is EventKind.SKIP]
    assert skipped == [pkg_var("x")]


def test_step_budget(adversarial):
    explorer = make_explorer(adversarial, max_steps=3)
    with pytest.raises(BudgetExceededError) as exc:
        explorer.explore(ADVERSARIAL_GOALS)
    assert exc.value.budget is SolveBudget.STEPS
    assert exc.value.limit == 3
    assert exc.value.stats.nodes_visited == 3
    assert "steps budget" in str(exc.value)


def test_backjump_budget(adversarial):
    explorer = make_explorer(adversarial, count_conflicts=False, max_backjumps=1)
    explorer.explore(ADVERSARIAL_GOALS)

    explorer = make_explorer(adversarial, count_conflicts=False, max_backjumps=0)
    with pytest.raises(BudgetExceededError) as exc:
        explorer.explore(ADVERSARIAL_GOALS)
    assert exc.value.budget is SolveBudget.BACKJUMPS


def test_time_budget(monkeypatch, ab):
    class FakeClock:
        now = 0.0

        def monotonic(self):
            FakeClock.now += 1.0
            return FakeClock.now

    monkeypatch.setattr("modsolve.core.solver.explorer.time", FakeClock())
    explorer = make_explorer(ab, timeout=0.5)
    with pytest.raises(BudgetExceededError) as exc:
        explorer.explore(["a"])
    assert exc.value.budget is SolveBudget.TIME
    assert explorer.stats.elapsed > 0


def test_conflict_counts_are_recorded(pqr):
    explorer = make_explorer(pqr)
    with pytest.raises(UnsatisfiableError):
        explorer.explore(["p", "q"])
    assert explorer.conflict_counts[pkg_var("r")] >= 2
    assert QPN.toplevel("r") in {var.qpn for var in explorer.conflict_counts}


def test_search_stats_add():
    first, second = SearchStats(), SearchStats()
    first.nodes_visited, first.max_depth = 3, 2
    second.nodes_visited, second.backjumps, second.max_depth = 4, 1, 5
    total = first + second
    assert total.dump() == {
        "nodes_visited": 7,
        "backjumps": 1,
        "failures": 0,
        "max_depth": 5,
        "elapsed": 0.0,
    }
