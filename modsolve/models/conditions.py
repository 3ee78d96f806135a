# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Conditional dependency expressions.

A package declares its dependencies as a :class:`CondTree`: unconditional
dependencies plus branches guarded by a :class:`Condition`. Conditions refer to
the package's own flags and stanzas, which are decided during the solve, and to
facts about the build environment, which are fixed for the whole solve.

Evaluation is three-valued: a condition over a flag that has not been decided
yet is undetermined, and the branch it guards is deferred until it is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from logging import getLogger
from typing import TYPE_CHECKING, NamedTuple

from .version import VersionSpec

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .universe import Environment

log = getLogger(__name__)


class DependencyKind(Enum):
    LIBRARY = "library"
    SETUP = "setup"  # needed only to build the package's build system
    EXE = "exe"  # build tool
    SYSTEM = "system"  # system library, checked against the environment

    def __str__(self):
        return self.value


class Evaluation(NamedTuple):
    """The value of a condition and the flag/stanza labels that determined it.

    Labels are ``("flag", name)`` or ``("stanza", name)`` pairs.
    """

    value: bool | None
    used: frozenset = frozenset()


_TRUE = Evaluation(True)
_FALSE = Evaluation(False)


class Condition:
    """Base class of condition expressions; combine with ``&``, ``|`` and ``~``."""

    def evaluate(self, flags: Mapping[str, bool], stanzas: Mapping[str, bool], env: Environment):
        raise NotImplementedError()

    def flag_names(self):
        return frozenset()

    def stanza_names(self):
        return frozenset()

    def __and__(self, other):
        return All((self, other))

    def __or__(self, other):
        return Any((self, other))

    def __invert__(self):
        return Not(self)


@dataclass(frozen=True)
class Lit(Condition):
    value: bool

    def evaluate(self, flags, stanzas, env):
        return _TRUE if self.value else _FALSE

    def __str__(self):
        return "true" if self.value else "false"


@dataclass(frozen=True)
class Flag(Condition):
    name: str

    def evaluate(self, flags, stanzas, env):
        value = flags.get(self.name)
        if value is None:
            return Evaluation(None)
        return Evaluation(value, frozenset((("flag", self.name),)))

    def flag_names(self):
        return frozenset((self.name,))

    def __str__(self):
        return f"flag({self.name})"


@dataclass(frozen=True)
class Stanza(Condition):
    name: str

    def evaluate(self, flags, stanzas, env):
        value = stanzas.get(self.name)
        if value is None:
            return Evaluation(None)
        return Evaluation(value, frozenset((("stanza", self.name),)))

    def stanza_names(self):
        return frozenset((self.name,))

    def __str__(self):
        return f"stanza({self.name})"


@dataclass(frozen=True)
class Env(Condition):
    """A fact about the build environment, e.g. ``Env("os", "linux")``."""

    key: str
    value: object = True

    def evaluate(self, flags, stanzas, env):
        return _TRUE if env.fact(self.key) == self.value else _FALSE

    def __str__(self):
        return f"{self.key}({self.value})"


@dataclass(frozen=True)
class Impl(Condition):
    """The compiler in the environment, optionally restricted to a version range."""

    compiler: str
    spec: VersionSpec = field(default_factory=VersionSpec.any)

    def __post_init__(self):
        object.__setattr__(self, "spec", VersionSpec(self.spec))

    def evaluate(self, flags, stanzas, env):
        if env.compiler != self.compiler or env.compiler_version is None:
            return _FALSE
        return _TRUE if self.spec.match(env.compiler_version) else _FALSE

    def __str__(self):
        return f"impl({self.compiler} {self.spec})"


@dataclass(frozen=True)
class Not(Condition):
    operand: Condition

    def evaluate(self, flags, stanzas, env):
        value, used = self.operand.evaluate(flags, stanzas, env)
        return Evaluation(None if value is None else not value, used)

    def flag_names(self):
        return self.operand.flag_names()

    def stanza_names(self):
        return self.operand.stanza_names()

    def __str__(self):
        return f"!{self.operand}"


@dataclass(frozen=True)
class All(Condition):
    operands: tuple

    def evaluate(self, flags, stanzas, env):
        used = frozenset()
        undetermined = False
        for operand in self.operands:
            value, op_used = operand.evaluate(flags, stanzas, env)
            if value is False:
                # one false operand decides the conjunction on its own
                return Evaluation(False, op_used)
            if value is None:
                undetermined = True
            used |= op_used
        return Evaluation(None, used) if undetermined else Evaluation(True, used)

    def flag_names(self):
        return frozenset().union(*(o.flag_names() for o in self.operands))

    def stanza_names(self):
        return frozenset().union(*(o.stanza_names() for o in self.operands))

    def __str__(self):
        return "(%s)" % " && ".join(str(o) for o in self.operands)


@dataclass(frozen=True)
class Any(Condition):
    operands: tuple

    def evaluate(self, flags, stanzas, env):
        used = frozenset()
        undetermined = False
        for operand in self.operands:
            value, op_used = operand.evaluate(flags, stanzas, env)
            if value is True:
                return Evaluation(True, op_used)
            if value is None:
                undetermined = True
            used |= op_used
        return Evaluation(None, used) if undetermined else Evaluation(False, used)

    def flag_names(self):
        return frozenset().union(*(o.flag_names() for o in self.operands))

    def stanza_names(self):
        return frozenset().union(*(o.stanza_names() for o in self.operands))

    def __str__(self):
        return "(%s)" % " || ".join(str(o) for o in self.operands)


@dataclass(frozen=True)
class Dependency:
    name: str
    spec: VersionSpec = field(default_factory=VersionSpec.any)
    kind: DependencyKind = DependencyKind.LIBRARY

    def __post_init__(self):
        object.__setattr__(self, "spec", VersionSpec(self.spec))
        object.__setattr__(self, "kind", DependencyKind(self.kind))

    def __str__(self):
        if self.spec.is_any():
            return self.name
        return f"{self.name} {self.spec}"


@dataclass(frozen=True)
class CondBranch:
    condition: Condition
    then: CondTree
    orelse: CondTree | None = None

    def resolve(self, flags, stanzas, env, guard=frozenset()):
        value, used = self.condition.evaluate(flags, stanzas, env)
        if value is None:
            return [], [(self, guard)]
        subtree = self.then if value else self.orelse
        if subtree is None:
            return [], []
        return subtree.resolve(flags, stanzas, env, guard | used)


@dataclass(frozen=True)
class CondTree:
    deps: tuple = ()
    branches: tuple = ()

    def __bool__(self):
        return bool(self.deps or self.branches)

    def flag_names(self):
        names = set()
        for branch in self.branches:
            names |= branch.condition.flag_names()
            names |= branch.then.flag_names()
            if branch.orelse is not None:
                names |= branch.orelse.flag_names()
        return frozenset(names)

    def stanza_names(self):
        names = set()
        for branch in self.branches:
            names |= branch.condition.stanza_names()
            names |= branch.then.stanza_names()
            if branch.orelse is not None:
                names |= branch.orelse.stanza_names()
        return frozenset(names)

    def all_dependencies(self):
        """Every dependency anywhere in the tree, regardless of conditions."""
        yield from self.deps
        for branch in self.branches:
            yield from branch.then.all_dependencies()
            if branch.orelse is not None:
                yield from branch.orelse.all_dependencies()

    def resolve(self, flags, stanzas, env, guard=frozenset()):
        """Split the tree into active dependencies and deferred branches.

        Returns:
            tuple: ``(active, deferred)`` where ``active`` is a list of
            ``(Dependency, guard)`` pairs whose conditions hold, and ``deferred``
            a list of ``(CondBranch, guard)`` pairs whose condition is still
            undetermined. ``guard`` is the set of flag/stanza labels the
            enclosing conditions depended on.
        """
        active = [(dep, guard) for dep in self.deps]
        deferred = []
        for branch in self.branches:
            sub_active, sub_deferred = branch.resolve(flags, stanzas, env, guard)
            active.extend(sub_active)
            deferred.extend(sub_deferred)
        return active, deferred


EMPTY_TREE = CondTree()


def when(condition, then, orelse=None):
    """Build a conditional branch from dependency lists or trees."""
    return CondBranch(condition, _as_tree(then), None if orelse is None else _as_tree(orelse))


def tree(*items):
    """Build a :class:`CondTree` from dependencies and :func:`when` branches.

    Dependencies may be given as :class:`Dependency` objects, names, or
    ``(name, spec[, kind])`` tuples.
    """
    deps = []
    branches = []
    for item in items:
        if isinstance(item, CondBranch):
            branches.append(item)
        else:
            deps.append(as_dependency(item))
    return CondTree(tuple(deps), tuple(branches))


def as_dependency(item):
    if isinstance(item, Dependency):
        return item
    if isinstance(item, str):
        name, _, spec = item.partition(" ")
        return Dependency(name, spec.strip() or "*")
    return Dependency(*item)


def _as_tree(value):
    if isinstance(value, CondTree):
        return value
    if isinstance(value, (Dependency, CondBranch, str)):
        return tree(value)
    return tree(*value)
