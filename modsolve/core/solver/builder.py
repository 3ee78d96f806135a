# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Lazy construction of the search tree.

The builder turns a search state into the node for that state and, given a
branch of a choice, computes the child node. Opening goals is its job;
deciding whether a branch is consistent is delegated to the
:class:`~modsolve.core.solver.validator.Validator`.
"""

from __future__ import annotations

from logging import getLogger

from ...models.conditions import DependencyKind
from ...models.variables import (
    QPN,
    ConflictSet,
    Variable,
    VarKind,
    exe_qualifier,
    setup_qualifier,
)
from .linking import link_candidates
from .state import Edge, Requirement, SearchState
from .tree import Branch, Choice, Done, Fail, GoalChoice

log = getLogger(__name__)

_BOOL_BRANCHES = (Branch(True), Branch(False))

#: dependencies only needed to build a package from source
BUILD_KINDS = (DependencyKind.SETUP, DependencyKind.EXE)


def qualify(qpn, dep):
    """The qualified name a dependency of ``qpn`` resolves to."""
    if dep.kind is DependencyKind.SETUP:
        return QPN(setup_qualifier(qpn.name), dep.name)
    if dep.kind is DependencyKind.EXE:
        return QPN(exe_qualifier(qpn.name), dep.name)
    return QPN(qpn.qualifier, dep.name)


class SearchTreeBuilder:
    def __init__(self, universe, environment, validator):
        self.universe = universe
        self.environment = environment
        self.validator = validator

    def root(self, goal_names):
        state = SearchState()
        for name in goal_names:
            state = state.open_goal(Variable.package(QPN.toplevel(name)), ConflictSet())
        return self.node(state)

    def node(self, state):
        if not state.goals:
            fail = self.validator.check_done(state)
            return fail if fail is not None else Done(state)
        return GoalChoice(state, state.open_goals())

    def choice(self, state, goal):
        var = goal.var
        if var.kind is VarKind.PACKAGE:
            branches = tuple(Branch(rec.key) for rec in self.universe.versions_of(var.qpn.name))
            branches += link_candidates(state, var.qpn)
        else:
            branches = _BOOL_BRANCHES
        return Choice(state, goal, branches)

    def descend(self, choice, branch):
        """The child of ``choice`` reached by taking ``branch``."""
        state = choice.state
        var = choice.var
        if var.kind is VarKind.PACKAGE:
            fail = self.validator.check_package(state, var, branch)
            if fail is not None:
                return fail
            state = state.assign(var, branch.value)
            if branch.link is not None:
                state = state.link(var.qpn, branch.link)
                return self.node(state)
            result = self._activate(state, var)
        else:
            record = self.universe.record(state.instance(var.qpn))
            check = (
                self.validator.check_flag
                if var.kind is VarKind.FLAG
                else self.validator.check_stanza
            )
            state = state.assign(var, branch.value)
            fail = check(state, var, branch.value, record)
            if fail is not None:
                return fail
            result = self._resolve_deferred(state, var)
        if isinstance(result, Fail):
            return result
        return self.node(result)

    def _activate(self, state, var):
        """Open the goals of a newly chosen, unlinked package."""
        qpn = var.qpn
        record = self.universe.record(state.instance(qpn))
        package_cs = ConflictSet.of(var)
        if not record.installed:
            for flag in record.flag_names:
                state = state.open_goal(Variable.flag(qpn, flag), package_cs)
            for stanza in record.stanzas:
                state = state.open_goal(Variable.stanza(qpn, stanza), package_cs)
        active, deferred = record.depends.resolve(
            known_flags(state, qpn, record), known_stanzas(state, qpn, record), self.environment
        )
        state = state.defer(qpn, deferred)
        return self._add_dependencies(state, var, qpn, record, active)

    def _resolve_deferred(self, state, var):
        """Re-examine the branches of ``var``'s package that were waiting on undecided labels."""
        qpn = var.qpn
        pending = state.deferred.get(qpn)
        if not pending:
            return state
        record = self.universe.record(state.instance(qpn))
        flags = known_flags(state, qpn, record)
        stanzas = known_stanzas(state, qpn, record)
        active = []
        still_deferred = []
        for branch, guard in pending:
            sub_active, sub_deferred = branch.resolve(flags, stanzas, self.environment, guard)
            active.extend(sub_active)
            still_deferred.extend(sub_deferred)
        state = state.defer(qpn, still_deferred)
        return self._add_dependencies(state, var, qpn, record, active)

    def _add_dependencies(self, state, var, qpn, record, active):
        package_var = Variable.package(qpn)
        for dep, guard in active:
            if record.installed and dep.kind in BUILD_KINDS:
                # installed instances are already built
                continue
            origin = ConflictSet(
                v
                for v in (Variable.from_label(qpn, label) for label in guard)
                if state.is_assigned(v)
            ) | (package_var,)
            target = None if dep.kind is DependencyKind.SYSTEM else qualify(qpn, dep)
            fail = self.validator.check_dependency(state, var, qpn, dep, origin, target)
            if fail is not None:
                return fail
            if target is None:
                continue
            state = state.require(target, Requirement(dep.spec, origin, qpn, dep.kind))
            state = state.add_edge(Edge(qpn, target, dep.kind, origin))
            state = state.open_goal(Variable.package(target), origin)
        return state


def known_flags(state, qpn, record):
    flags = dict(record.fixed_flags()) if record.installed else {}
    # flags a condition mentions but the package does not declare are off
    flags.update(
        (name, False) for name in record.depends.flag_names() if record.flag(name) is None
    )
    flags.update(state.flags_of(qpn))
    return flags


def known_stanzas(state, qpn, record):
    if record.installed:
        return {name: False for name in record.depends.stanza_names()}
    stanzas = {
        name: False for name in record.depends.stanza_names() if name not in record.stanzas
    }
    stanzas.update(state.stanzas_of(qpn))
    return stanzas
