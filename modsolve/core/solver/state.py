# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Search state carried by each node of the search tree.

A state is never modified in place: every update returns a new state sharing
what did not change, so a node's state stays valid after its children were
explored and backtracking is just returning to an older node.
"""

from __future__ import annotations

from logging import getLogger
from typing import NamedTuple

from frozendict import frozendict

from ...models.conditions import DependencyKind
from ...models.variables import EMPTY_CONFLICT_SET, QPN, ConflictSet, Variable, VarKind

log = getLogger(__name__)


class Goal(NamedTuple):
    """An open variable and the variables whose values introduced it."""

    var: Variable
    seq: int
    reason: ConflictSet = EMPTY_CONFLICT_SET

    def __str__(self):
        return str(self.var)


class Requirement(NamedTuple):
    """A version constraint placed on a qualified package by a dependent."""

    spec: object
    origin: ConflictSet
    dependent: QPN | None = None
    kind: DependencyKind = DependencyKind.LIBRARY

    def describe(self, assignment):
        if self.dependent is None:
            return "the request"
        instance = assignment.get(Variable.package(self.dependent))
        return str(instance) if instance is not None else str(self.dependent)


class Edge(NamedTuple):
    source: QPN
    target: QPN
    kind: DependencyKind
    origin: ConflictSet


class SearchState:
    __slots__ = (
        "assignment",
        "links",
        "requirements",
        "deferred",
        "goals",
        "edges",
        "seq",
    )

    def __init__(
        self,
        assignment=frozendict(),
        links=frozendict(),
        requirements=frozendict(),
        deferred=frozendict(),
        goals=frozendict(),
        edges=frozendict(),
        seq=0,
    ):
        self.assignment = assignment
        self.links = links
        self.requirements = requirements
        self.deferred = deferred
        self.goals = goals
        self.edges = edges
        self.seq = seq

    def _evolve(self, **changes):
        values = {name: getattr(self, name) for name in self.__slots__}
        values.update(changes)
        return SearchState(**values)

    # queries

    def value(self, var):
        return self.assignment.get(var)

    def is_assigned(self, var):
        return var in self.assignment

    def instance(self, qpn):
        return self.assignment.get(Variable.package(qpn))

    def chosen_packages(self):
        """Qualified names with a chosen instance, in decision order."""
        return tuple(var.qpn for var in self.assignment if var.kind is VarKind.PACKAGE)

    def chosen_by_name(self, name):
        return tuple(
            (var.qpn, value)
            for var, value in self.assignment.items()
            if var.kind is VarKind.PACKAGE and var.qpn.name == name
        )

    def canonical(self, qpn):
        return self.links.get(qpn, qpn)

    def is_linked(self, qpn):
        return qpn in self.links

    def _labels_of(self, qpn, kind):
        return {
            var.label: value
            for var, value in self.assignment.items()
            if var.qpn == qpn and var.kind is kind
        }

    def flags_of(self, qpn):
        return self._labels_of(self.canonical(qpn), VarKind.FLAG)

    def stanzas_of(self, qpn):
        return self._labels_of(self.canonical(qpn), VarKind.STANZA)

    def variables_of(self, qpn):
        return tuple(var for var in self.assignment if var.qpn == qpn)

    def requirements_on(self, qpn):
        return self.requirements.get(qpn, ())

    def open_goals(self):
        return tuple(self.goals.values())

    def has_goal(self, var):
        return var in self.goals

    # updates

    def assign(self, var, value):
        return self._evolve(
            assignment=self.assignment.set(var, value),
            goals=self.goals.delete(var) if var in self.goals else self.goals,
        )

    def link(self, qpn, canonical):
        return self._evolve(links=self.links.set(qpn, canonical))

    def open_goal(self, var, reason):
        if var in self.goals or var in self.assignment:
            return self
        goal = Goal(var, self.seq, reason)
        return self._evolve(goals=self.goals.set(var, goal), seq=self.seq + 1)

    def require(self, qpn, requirement):
        return self._evolve(
            requirements=self.requirements.set(qpn, self.requirements_on(qpn) + (requirement,))
        )

    def defer(self, qpn, pending):
        if pending:
            return self._evolve(deferred=self.deferred.set(qpn, tuple(pending)))
        if qpn in self.deferred:
            return self._evolve(deferred=self.deferred.delete(qpn))
        return self

    def add_edge(self, edge):
        return self._evolve(
            edges=self.edges.set(edge.source, self.edges.get(edge.source, ()) + (edge,))
        )

    def __repr__(self):
        return "SearchState(%d assigned, %d open)" % (len(self.assignment), len(self.goals))
