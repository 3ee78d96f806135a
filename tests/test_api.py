# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from itertools import product
from random import Random

import pytest

from modsolve.api import solve
from modsolve.core.solver.log import EventKind
from modsolve.exceptions import UnsatisfiableError
from modsolve.models.conditions import DependencyKind, Flag, when
from modsolve.models.universe import Environment
from modsolve.models.variables import VarKind

from tests.helpers import (
    ADVERSARIAL_GOALS,
    make_params,
    make_universe,
    pkg_var,
    rec,
    solve_plan,
    versions,
)

SPECS = ("*", "*", "==1", "==2", ">=2", "<2", "<3", ">=3")
NAMES = ("n0", "n1", "n2", "n3")
LIBRARY_ONLY = ("library",)
ALL_KINDS = ("library", "library", "setup", "exe")


def random_universe(seed, flags=False, kinds=LIBRARY_ONLY):
    """A small universe whose dependencies only point to later names, so it has no cycles.

    With ``flags``, about half the records declare a flag ``f`` and guard some
    of their dependencies on it being on or off.
    """
    rng = Random(seed)
    records = []
    for idx, name in enumerate(NAMES):
        for version in range(1, rng.randint(1, 3) + 1):
            has_flag = flags and rng.random() < 0.5
            depends = []
            for dep_name in NAMES[idx + 1 :]:
                if rng.random() >= 0.5:
                    continue
                dep = (dep_name, rng.choice(SPECS), rng.choice(kinds))
                if has_flag and rng.random() < 0.5:
                    depends.append(when(rng.choice((Flag("f"), ~Flag("f"))), [dep]))
                else:
                    depends.append(dep)
            records.append(rec(name, str(version), *depends, flags=("f",) if has_flag else ()))
    goals = rng.sample(NAMES[:3], rng.randint(1, 2))
    return make_universe(*records), goals


def active_dependencies(record, flags):
    active, deferred = record.depends.resolve(dict(flags), {}, Environment())
    assert not deferred
    return [dep for dep, _ in active]


def all_solutions(universe, goals):
    """Every choice of at most one version per name, and of its flag, that meets ``goals``
    and every dependency."""
    names = universe.names()
    solutions = []
    for choice in product(*((None,) + universe.versions_of(name) for name in names)):
        chosen = {name: record for name, record in zip(names, choice) if record is not None}
        if not all(goal in chosen for goal in goals):
            continue
        flagged = [name for name, record in chosen.items() if record.flag("f") is not None]
        for values in product((True, False), repeat=len(flagged)):
            flag_values = dict(zip(flagged, values))
            if all(
                dep.name in chosen and dep.spec.match(chosen[dep.name].version)
                for name, record in chosen.items()
                for dep in active_dependencies(
                    record, {"f": flag_values[name]} if name in flag_values else {}
                )
            ):
                solution = {name: record.version for name, record in chosen.items()}
                solution.update((("f", name), value) for name, value in flag_values.items())
                solutions.append(solution)
    return solutions


def failing_assignments(search_log):
    """(conflict set, assignment) for every failure recorded in ``search_log``."""
    path = []
    for event in search_log.history:
        if event.kind is EventKind.TRY:
            del path[event.depth :]
            path.append((event.var, event.value))
        elif event.kind is EventKind.FAIL:
            yield event.conflict_set, dict(path[: event.depth])


def decided_values(conflict_set, assignment):
    """The package versions and flag values ``assignment`` gave the variables of ``conflict_set``."""
    decided = {}
    for var, branch in assignment.items():
        if var not in conflict_set:
            continue
        if var.kind is VarKind.PACKAGE:
            decided[var.qpn.name] = branch.value.version
        elif var.kind is VarKind.FLAG:
            decided[(var.label, var.qpn.name)] = branch.value
    return decided


def assert_plan_meets_dependencies(plan, universe):
    edges = {
        DependencyKind.LIBRARY: "library_depends",
        DependencyKind.SETUP: "setup_depends",
        DependencyKind.EXE: "exe_depends",
    }
    for pkg in plan:
        record = universe.find(pkg.name, str(pkg.version), pkg.installed)
        for dep in active_dependencies(record, pkg.flags):
            depends = getattr(pkg, edges[dep.kind])
            assert any(
                target.name == dep.name and dep.spec.match(target.version) for target in depends
            ), (pkg.id, dep)
            if dep.kind is DependencyKind.LIBRARY:
                target = plan.get(dep.name, pkg.qualifier)
                assert target is None or target.id in depends


@pytest.mark.parametrize("flags", [False, True], ids=["plain", "flags"])
@pytest.mark.parametrize("seed", range(40))
def test_random_universes(seed, flags):
    universe, goals = random_universe(seed, flags=flags)
    solutions = all_solutions(universe, goals)
    params = make_params(max_log_events=None)
    try:
        result = solve(universe, goals, params=params)
    except UnsatisfiableError as e:
        # nothing was missed
        assert solutions == []
        search_log = e.search_log
    else:
        assert solutions
        assert_plan_meets_dependencies(result.plan, universe)
        search_log = result.search_log

    # a failure's conflict set rules out every solution that agrees with it
    for conflict_set, assignment in failing_assignments(search_log):
        decided = decided_values(conflict_set, assignment)
        assert not any(
            all(solution.get(key) == value for key, value in decided.items())
            for solution in solutions
        ), (conflict_set, decided)


@pytest.mark.parametrize("seed", range(30))
def test_random_universes_with_build_dependencies(seed):
    universe, goals = random_universe(seed, flags=True, kinds=ALL_KINDS)
    outcomes = []
    for prefer_linked in (True, False):
        params = make_params(prefer_linked=prefer_linked)
        try:
            plan = solve(universe, goals, params=params).plan
        except UnsatisfiableError:
            outcomes.append(None)
            continue
        qpns = [pkg.id.qpn for pkg in plan]
        assert len(qpns) == len(set(qpns))
        assert_plan_meets_dependencies(plan, universe)
        position = {pkg.id: idx for idx, pkg in enumerate(plan)}
        for pkg in plan:
            for dep in pkg.all_depends():
                assert position[dep] < position[pkg.id]
        outcomes.append(plan)
    # linking only reorders branches, it never changes whether a plan exists
    assert (outcomes[0] is None) == (outcomes[1] is None)


@pytest.mark.parametrize("seed", range(0, 40, 4))
def test_solving_is_deterministic(seed):
    universe, goals = random_universe(seed)
    try:
        first = solve(universe, goals, params=make_params()).plan
    except UnsatisfiableError as e:
        with pytest.raises(UnsatisfiableError) as again:
            solve(universe, goals, params=make_params())
        assert again.value.conflict_set == e.conflict_set
        assert str(again.value) == str(e)
    else:
        second = solve(universe, goals, params=make_params()).plan
        assert first.to_dict() == second.to_dict()
        assert list(first.order) == list(second.order)


def test_plan_has_one_entry_per_qualified_name():
    universe = make_universe(
        rec("tool", "1"),
        rec("tool", "2"),
        rec("lib", "1", ("tool", "<2", "setup")),
        rec("app", "1", "lib", ("tool", "*", "exe")),
    )
    plan = solve_plan(universe, ["app"], params=make_params(prefer_linked=False))
    qpns = [pkg.id.qpn for pkg in plan]
    assert len(qpns) == len(set(qpns))
    assert {str(q) for q in qpns} == {"app", "lib", "lib:setup.tool", "app:exe.tool"}
    assert str(plan.get("app").exe_depends[0]) == "app:exe.tool-2"
    assert str(plan.get("lib").setup_depends[0]) == "lib:setup.tool-1"


@pytest.mark.parametrize("prefer_linked", [True, False])
def test_single_instance_package_is_planned_once(prefer_linked):
    universe = make_universe(
        rec("gui", "1", single_instance=True),
        rec("app", "1", "gui", ("gui", "*", "exe")),
    )
    plan = solve_plan(universe, ["app"], params=make_params(prefer_linked=prefer_linked))
    assert len(plan) == 2
    (gui,) = [pkg for pkg in plan if pkg.name == "gui"]
    assert len(gui.linked) == 1
    app = plan.get("app")
    assert app.library_depends == app.exe_depends == (gui.id,)


def test_non_setup_edges_are_acyclic():
    universe = make_universe(
        rec("a", "1", "b", ("c", "*", "exe")),
        rec("b", "1", "c"),
        rec("c", "1"),
    )
    plan = solve_plan(universe, ["a"])
    position = {pkg.id: idx for idx, pkg in enumerate(plan)}
    for pkg in plan:
        for dep in pkg.library_depends + pkg.exe_depends:
            assert position[dep] < position[pkg.id]

    universe = make_universe(rec("a", "1", "b"), rec("b", "1", "a"))
    with pytest.raises(UnsatisfiableError):
        solve(universe, ["a"], params=make_params())


def test_package_depending_on_itself():
    with pytest.raises(UnsatisfiableError) as exc:
        solve(make_universe(rec("a", "1", "a")), ["a"], params=make_params())
    assert set(exc.value.conflict_set) == {pkg_var("a")}
    assert "a-1 depends on itself" in str(exc.value)

    # an older version without the loop is chosen instead
    universe = make_universe(rec("a", "2", "a"), rec("a", "1"))
    plan = solve_plan(universe, ["a"])
    assert versions(plan) == {"a": "1"}
    assert plan.get("a").library_depends == ()


def test_backjumping_matches_naive_search(adversarial):
    params = {"count_conflicts": False}
    jumping = solve(adversarial, ADVERSARIAL_GOALS, params=make_params(**params))
    naive = solve(
        adversarial, ADVERSARIAL_GOALS, params=make_params(backjumping=False, **params)
    )
    assert jumping.plan.to_dict() == naive.plan.to_dict()
    assert jumping.stats.nodes_visited < naive.stats.nodes_visited


def test_dependency_is_never_violated(ab):
    plan = solve_plan(ab, ["a"])
    assert versions(plan) == {"a": "2", "b": "2"}
    assert len(plan) == 2

    plan = solve_plan(ab, ["a"], params=make_params(version_preference="oldest"))
    assert versions(plan) == {"a": "1", "b": "2"}


def test_conflicting_requirements_are_reported(pqr):
    with pytest.raises(UnsatisfiableError) as exc:
        solve(pqr, ["p", "q"], params=make_params())
    error = exc.value
    assert {pkg_var("p"), pkg_var("q"), pkg_var("r")} <= set(error.conflict_set)
    message = str(error)
    assert "p-1 requires r ==1" in message or "q-1 requires r ==2" in message
    assert error.search_log.render()
