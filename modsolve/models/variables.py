# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Decision variables and conflict sets.

Every decision the solver makes is the assignment of a :class:`Variable`:
the instance chosen for a qualified package, the value of one of its flags, or
whether one of its optional stanzas is enabled.

A package is qualified by the role it is needed in. Library dependencies share
the qualifier of their dependent; setup and build-tool dependencies of a
package get their own qualifier so they are resolved independently of the
package's run-time closure.
"""

from __future__ import annotations

from enum import IntEnum
from logging import getLogger
from typing import NamedTuple

log = getLogger(__name__)


class Role(IntEnum):
    TOPLEVEL = 0
    SETUP = 1
    EXE = 2

    def __str__(self):
        return self.name.lower()


class Qualifier(NamedTuple):
    role: Role = Role.TOPLEVEL
    owner: str | None = None

    def __str__(self):
        if self.role is Role.TOPLEVEL:
            return ""
        return f"{self.owner}:{self.role}."

    @property
    def is_toplevel(self):
        return self.role is Role.TOPLEVEL


TOPLEVEL = Qualifier()


def setup_qualifier(owner):
    return Qualifier(Role.SETUP, owner)


def exe_qualifier(owner):
    return Qualifier(Role.EXE, owner)


class QPN(NamedTuple):
    """Qualified package name: the composite key of one package occurrence."""

    qualifier: Qualifier
    name: str

    def __str__(self):
        return f"{self.qualifier}{self.name}"

    @classmethod
    def toplevel(cls, name):
        return cls(TOPLEVEL, name)


class VarKind(IntEnum):
    PACKAGE = 0
    FLAG = 1
    STANZA = 2


class Variable(NamedTuple):
    qpn: QPN
    kind: VarKind = VarKind.PACKAGE
    label: str = ""

    def __str__(self):
        if self.kind is VarKind.PACKAGE:
            return str(self.qpn)
        if self.kind is VarKind.FLAG:
            return f"{self.qpn}:+{self.label}"
        return f"{self.qpn}:*{self.label}"

    @classmethod
    def package(cls, qpn):
        return cls(qpn, VarKind.PACKAGE)

    @classmethod
    def flag(cls, qpn, name):
        return cls(qpn, VarKind.FLAG, name)

    @classmethod
    def stanza(cls, qpn, name):
        return cls(qpn, VarKind.STANZA, name)

    @property
    def is_package(self):
        return self.kind is VarKind.PACKAGE

    def package_var(self):
        return Variable(self.qpn)

    @classmethod
    def from_label(cls, qpn, label):
        """Convert a ``("flag", name)`` / ``("stanza", name)`` guard label."""
        kind, name = label
        return cls.flag(qpn, name) if kind == "flag" else cls.stanza(qpn, name)


class ConflictSet:
    """An immutable set of variables whose joint values caused a failure.

    Any assignment agreeing with the failing one on every member fails the
    same way, which is what allows the explorer to skip decisions on other
    variables.
    """

    __slots__ = ("_vars",)

    def __init__(self, variables=()):
        self._vars = frozenset(variables)

    @classmethod
    def of(cls, *variables):
        return cls(variables)

    def __contains__(self, var):
        return var in self._vars

    def __iter__(self):
        return iter(sorted(self._vars))

    def __len__(self):
        return len(self._vars)

    def __bool__(self):
        return bool(self._vars)

    def __eq__(self, other):
        if isinstance(other, ConflictSet):
            return self._vars == other._vars
        if isinstance(other, (set, frozenset)):
            return self._vars == other
        return NotImplemented

    def __hash__(self):
        return hash(self._vars)

    def __or__(self, other):
        return self.union(other)

    def union(self, *others):
        result = set(self._vars)
        for other in others:
            result.update(other._vars if isinstance(other, ConflictSet) else other)
        return ConflictSet(result)

    def without(self, var):
        return ConflictSet(self._vars - {var})

    def packages(self):
        return frozenset(var.qpn for var in self._vars)

    @property
    def variables(self):
        return self._vars

    def __str__(self):
        return "{%s}" % ", ".join(str(v) for v in self)

    def __repr__(self):
        return f"ConflictSet({self})"

    def __json__(self):
        return [str(v) for v in self]


EMPTY_CONFLICT_SET = ConflictSet()
