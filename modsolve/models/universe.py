# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""The read-only package universe and the build environment it is solved for."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger

from frozendict import frozendict

from ..common.iterators import groupby_to_dict as groupby
from ..exceptions import UnknownPackageError
from .conditions import DependencyKind
from .records import PackageRecord
from .version import VersionOrder

log = getLogger(__name__)


@dataclass(frozen=True)
class Environment:
    """Facts about the platform and compiler, fixed for the duration of a solve.

    Conditions in dependency trees see these only through :meth:`fact`, plus
    the compiler fields for ``Impl`` conditions and ``system_libraries`` for
    system dependencies.
    """

    os: str = "linux"
    arch: str = "x86_64"
    compiler: str | None = None
    compiler_version: str | None = None
    facts: frozendict = field(default_factory=frozendict)
    system_libraries: frozendict = field(default_factory=frozendict)

    def __post_init__(self):
        object.__setattr__(self, "facts", frozendict(self.facts))
        object.__setattr__(self, "system_libraries", frozendict(self.system_libraries))

    def fact(self, key):
        if key == "os":
            return self.os
        if key == "arch":
            return self.arch
        return self.facts.get(key)

    def system_library(self, name):
        """Version string of an available system library, or None."""
        return self.system_libraries.get(name)


class PackageUniverse:
    """An in-memory index of package name to available records.

    The universe must not change while a solve uses it; it is never mutated by
    the solver.
    """

    def __init__(self, records=()):
        groups = groupby(lambda rec: rec.name, records)
        self._groups = {
            # newest first; for equal versions the installed instance first
            name: tuple(sorted(group, key=lambda r: (r.version, r.installed), reverse=True))
            for name, group in sorted(groups.items())
        }
        self._by_key = {rec.key: rec for group in self._groups.values() for rec in group}
        if len(self._by_key) != sum(len(g) for g in self._groups.values()):
            raise ValueError("duplicate package records in universe")

    def __contains__(self, name):
        return name in self._groups

    def __len__(self):
        return len(self._by_key)

    def __iter__(self):
        for group in self._groups.values():
            yield from group

    def names(self):
        return tuple(self._groups)

    def versions_of(self, name):
        """All records of ``name``, newest first."""
        return self._groups.get(name, ())

    def installed_of(self, name):
        return tuple(rec for rec in self.versions_of(name) if rec.installed)

    def record(self, instance):
        try:
            return self._by_key[instance]
        except KeyError:
            raise UnknownPackageError(str(instance))

    def find(self, name, version, installed=False):
        return self.record((name, VersionOrder(version), installed))

    def reachable_names(self, roots):
        """Names reachable from ``roots`` through any dependency of any version.

        This over-approximates what a solve for ``roots`` can touch, which is
        what independent goal groups need to be proven disjoint.
        """
        seen = set()
        queue = [name for name in roots]
        while queue:
            name = queue.pop()
            if name in seen:
                continue
            seen.add(name)
            for rec in self.versions_of(name):
                for dep in rec.depends.all_dependencies():
                    if dep.kind is not DependencyKind.SYSTEM and dep.name not in seen:
                        queue.append(dep.name)
        return frozenset(seen)

    @classmethod
    def from_records(cls, *records: PackageRecord):
        return cls(records)
