# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from modsolve.core.solver.builder import SearchTreeBuilder
from modsolve.core.solver.linking import (
    check_link,
    link_candidates,
    package_conflict_set,
    single_instance_conflict,
)
from modsolve.core.solver.state import SearchState
from modsolve.core.solver.tree import Branch
from modsolve.core.solver.validator import Validator
from modsolve.models.constraints import UserConstraint
from modsolve.models.universe import Environment
from modsolve.models.variables import QPN, ConflictSet, Variable, exe_qualifier, setup_qualifier

from tests.helpers import make_params, make_universe, pkg_var, rec

TOOL = QPN.toplevel("tool")
EXE_TOOL = QPN(exe_qualifier("a"), "tool")
SETUP_TOOL = QPN(setup_qualifier("b"), "tool")


def universe():
    return make_universe(
        rec("tool", "1", flags=("fast",)),
        rec("tool", "2", flags=("fast",)),
        rec("a", "1", ("tool", "*", "exe")),
    )


def test_state_updates_do_not_modify_the_original():
    u = universe()
    state = SearchState().open_goal(pkg_var("tool"), ConflictSet())
    chosen = state.assign(pkg_var("tool"), u.find("tool", "2").key)
    assert state.open_goals() != ()
    assert chosen.open_goals() == ()
    assert state.instance(TOOL) is None
    assert chosen.instance(TOOL) == u.find("tool", "2").key

    # opening a goal twice keeps the first reason
    again = state.open_goal(pkg_var("tool"), ConflictSet.of(pkg_var("a")))
    assert again is state


def test_link_candidates():
    u = universe()
    tool_2 = u.find("tool", "2").key
    state = SearchState().assign(pkg_var("tool"), tool_2)
    assert link_candidates(state, EXE_TOOL) == (Branch(tool_2, link=TOOL),)
    assert link_candidates(state, TOOL) == ()

    # a linked occurrence is not offered as a link target itself
    state = state.assign(Variable.package(EXE_TOOL), tool_2).link(EXE_TOOL, TOOL)
    assert link_candidates(state, SETUP_TOOL) == (Branch(tool_2, link=TOOL),)


def test_linked_package_shares_flags():
    u = universe()
    tool_2 = u.find("tool", "2").key
    state = (
        SearchState()
        .assign(pkg_var("tool"), tool_2)
        .assign(Variable.flag(TOOL, "fast"), False)
        .assign(Variable.package(EXE_TOOL), tool_2)
        .link(EXE_TOOL, TOOL)
    )
    assert state.canonical(EXE_TOOL) == TOOL
    assert state.flags_of(EXE_TOOL) == {"fast": False}
    assert package_conflict_set(state, EXE_TOOL) == {
        Variable.package(EXE_TOOL),
        pkg_var("tool"),
    }
    assert package_conflict_set(state, TOOL) == {pkg_var("tool")}


def test_linking_opens_no_goals():
    u = universe()
    validator = Validator(u, Environment(), make_params(), ())
    builder = SearchTreeBuilder(u, Environment(), validator)
    state = SearchState().assign(pkg_var("tool"), u.find("tool", "2").key)
    state = state.open_goal(Variable.package(EXE_TOOL), ConflictSet.of(pkg_var("a")))
    (goal,) = state.open_goals()
    choice = builder.choice(state, goal)
    link = choice.branches[-1]
    assert link.link == TOOL

    node = builder.descend(choice, link)
    assert node.state.is_linked(EXE_TOOL)
    assert not any(var.qpn == EXE_TOOL for var in node.state.goals)

    node = builder.descend(choice, choice.branches[0])
    assert not node.state.is_linked(EXE_TOOL)
    assert Variable.flag(EXE_TOOL, "fast") in node.state.goals


def test_check_link_respects_scoped_constraints():
    scoped = UserConstraint("tool", flags={"fast": True}, scope=exe_qualifier("a"))
    reason = check_link(SearchState(), EXE_TOOL, TOOL, [scoped])
    assert "only applies to a:exe.tool" in str(reason)
    assert check_link(SearchState(), TOOL, EXE_TOOL, [scoped]) is None

    unscoped = UserConstraint("tool", flags={"fast": True})
    assert check_link(SearchState(), EXE_TOOL, TOOL, [unscoped]) is None
    versions_only = UserConstraint("tool", "<2", scope=exe_qualifier("a"))
    assert check_link(SearchState(), EXE_TOOL, TOOL, [versions_only]) is None


def test_single_instance_conflict():
    u = universe()
    tool_1, tool_2 = u.find("tool", "1").key, u.find("tool", "2").key
    state = SearchState().assign(pkg_var("tool"), tool_2)
    assert single_instance_conflict(state, EXE_TOOL, tool_2, link=TOOL) is None
    assert single_instance_conflict(state, EXE_TOOL, tool_1) == (TOOL, tool_2)
    # a second copy of the same instance is still a duplicate
    assert single_instance_conflict(state, EXE_TOOL, tool_2) == (TOOL, tool_2)
    assert single_instance_conflict(state, TOOL, tool_2) is None
