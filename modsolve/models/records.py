# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Records describing the available versions of a package.

A :class:`PackageRecord` is one entry of the package universe: either a source
version that can be configured (flags and stanzas are chosen by the solver) or
an already-installed instance whose configuration is fixed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import NamedTuple

from frozendict import frozendict

from .conditions import EMPTY_TREE, CondTree, DependencyKind, tree
from .version import VersionOrder

log = getLogger(__name__)

TEST = "test"
BENCH = "bench"
STANZAS = (TEST, BENCH)


class Instance(NamedTuple):
    """Identity of a package record: name, version, and whether it is installed."""

    name: str
    version: VersionOrder
    installed: bool = False

    def __str__(self):
        suffix = " (installed)" if self.installed else ""
        return f"{self.name}-{self.version}{suffix}"

    @property
    def sort_key(self):
        return (self.name, self.version, not self.installed)


class FlagInfo(NamedTuple):
    name: str
    default: bool = True
    manual: bool = False
    description: str = ""


@dataclass(frozen=True)
class StanzaRequiresFlag:
    """Enabling ``stanza`` forces ``flag`` to ``value``."""

    stanza: str
    flag: str
    value: bool = True

    def labels(self):
        return frozenset((("stanza", self.stanza), ("flag", self.flag)))

    def violated(self, flags, stanzas):
        if stanzas.get(self.stanza) is not True:
            return False
        flag_value = flags.get(self.flag)
        return flag_value is not None and flag_value != self.value

    def __str__(self):
        return "stanza '%s' requires flag '%s' to be %s" % (
            self.stanza,
            self.flag,
            "on" if self.value else "off",
        )


@dataclass(frozen=True)
class ExclusiveFlags:
    """At most one of ``flags`` may be enabled."""

    flags: tuple

    def labels(self):
        return frozenset(("flag", f) for f in self.flags)

    def violated(self, flags, stanzas):
        return sum(1 for f in self.flags if flags.get(f) is True) > 1

    def __str__(self):
        return "flags %s are mutually exclusive" % ", ".join(
            "'%s'" % f for f in self.flags
        )


@dataclass(frozen=True, eq=False)
class PackageRecord:
    name: str
    version: VersionOrder
    depends: CondTree = EMPTY_TREE
    flags: tuple = ()
    stanzas: tuple = ()
    rules: tuple = ()
    installed: bool = False
    installed_flags: frozendict = field(default_factory=frozendict)
    single_instance: bool = False

    def __post_init__(self):
        object.__setattr__(self, "version", VersionOrder(self.version))
        if not isinstance(self.depends, CondTree):
            object.__setattr__(self, "depends", tree(*self.depends))
        object.__setattr__(
            self,
            "flags",
            tuple(f if isinstance(f, FlagInfo) else FlagInfo(*_flag_args(f)) for f in self.flags),
        )
        object.__setattr__(self, "stanzas", tuple(self.stanzas))
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "installed_flags", frozendict(self.installed_flags))
        if self.installed and self.stanzas:
            raise ValueError("installed record %s cannot have optional stanzas" % self.key)

    @property
    def key(self):
        return Instance(self.name, self.version, self.installed)

    def __eq__(self, other):
        if not isinstance(other, PackageRecord):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key)

    def __str__(self):
        return str(self.key)

    def __repr__(self):
        return f"PackageRecord({self.key})"

    def flag(self, name):
        return next((f for f in self.flags if f.name == name), None)

    @property
    def flag_names(self):
        return tuple(f.name for f in self.flags)

    def default_flags(self):
        return frozendict((f.name, f.default) for f in self.flags)

    def fixed_flags(self):
        """The flag assignment of an installed instance."""
        flags = dict(self.default_flags())
        flags.update(self.installed_flags)
        return frozendict(flags)

    def dependency_names(self):
        return tuple(
            dict.fromkeys(
                d.name
                for d in self.depends.all_dependencies()
                if d.kind is not DependencyKind.SYSTEM
            )
        )


def _flag_args(value):
    if isinstance(value, str):
        return (value,)
    if isinstance(value, dict):
        return (
            value["name"],
            value.get("default", True),
            value.get("manual", False),
            value.get("description", ""),
        )
    return tuple(value)
