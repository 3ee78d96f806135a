# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Nodes of the lazily built search tree.

The tree is never materialized: a node only knows how to describe itself,
and its children are produced by the builder when the explorer asks for them.
"""

from __future__ import annotations

from logging import getLogger
from typing import NamedTuple

log = getLogger(__name__)


class FailReason:
    """Why a branch failed, rendered for humans on demand."""

    __slots__ = ("template", "kwargs")

    def __init__(self, template, **kwargs):
        self.template = template
        self.kwargs = kwargs

    def __str__(self):
        return self.template % {k: str(v) for k, v in self.kwargs.items()}

    def __repr__(self):
        return f"FailReason({self})"

    def __eq__(self, other):
        return isinstance(other, FailReason) and str(self) == str(other)

    def __hash__(self):
        return hash(str(self))


class Branch(NamedTuple):
    """One alternative of a choice.

    For package variables ``value`` is the :class:`~modsolve.models.records.Instance`
    and ``link`` the qualified name it is linked to, if any. For flag and stanza
    variables ``value`` is a bool.
    """

    value: object
    link: object = None

    def __str__(self):
        if self.link is not None:
            return f"{self.value} (linked to {self.link})"
        if isinstance(self.value, bool):
            return "on" if self.value else "off"
        return str(self.value)


class Node:
    __slots__ = ()


class Done(Node):
    __slots__ = ("state",)

    def __init__(self, state):
        self.state = state

    def __repr__(self):
        return f"Done({self.state!r})"


class Fail(Node):
    """A failed branch.

    ``var`` is the variable whose assignment was being checked, or None for
    failures that are not tied to one decision (e.g. a cycle found once the
    assignment is complete).
    """

    __slots__ = ("conflict_set", "reason", "var")

    def __init__(self, conflict_set, reason, var=None):
        self.conflict_set = conflict_set
        self.reason = reason
        self.var = var

    def __repr__(self):
        return f"Fail({self.conflict_set}, {self.reason})"


class GoalChoice(Node):
    """A state with open goals; the explorer picks the goal to decide next."""

    __slots__ = ("state", "goals")

    def __init__(self, state, goals):
        self.state = state
        self.goals = tuple(goals)

    def __repr__(self):
        return "GoalChoice(%s)" % ", ".join(str(g) for g in self.goals)


class Choice(Node):
    """The alternatives for one goal."""

    __slots__ = ("state", "goal", "branches")

    def __init__(self, state, goal, branches):
        self.state = state
        self.goal = goal
        self.branches = tuple(branches)

    @property
    def var(self):
        return self.goal.var

    def with_branches(self, branches):
        return Choice(self.state, self.goal, branches)

    def __repr__(self):
        return "Choice(%s: %s)" % (self.goal, ", ".join(str(b) for b in self.branches))
