# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""The output of a solve: configured packages in an executable order."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import NamedTuple

from frozendict import frozendict

from ..common.toposort import toposort
from ..exceptions import InternalSolverError
from .variables import QPN, TOPLEVEL, Qualifier
from .version import VersionOrder

log = getLogger(__name__)


class ConfiguredId(NamedTuple):
    """Identity of one configured package in a plan."""

    qualifier: Qualifier
    name: str
    version: VersionOrder
    installed: bool = False

    @property
    def qpn(self):
        return QPN(self.qualifier, self.name)

    def __str__(self):
        suffix = " (installed)" if self.installed else ""
        return f"{self.qualifier}{self.name}-{self.version}{suffix}"


@dataclass(frozen=True)
class ConfiguredPackage:
    id: ConfiguredId
    flags: frozendict = field(default_factory=frozendict)
    stanzas: frozenset = frozenset()
    library_depends: tuple = ()
    exe_depends: tuple = ()
    setup_depends: tuple = ()
    #: qualified names that were linked to this package during the solve
    linked: tuple = ()

    @property
    def name(self):
        return self.id.name

    @property
    def version(self):
        return self.id.version

    @property
    def qualifier(self):
        return self.id.qualifier

    @property
    def installed(self):
        return self.id.installed

    def all_depends(self):
        return self.library_depends + self.exe_depends + self.setup_depends

    def __str__(self):
        return str(self.id)

    def dump(self):
        return {
            "id": str(self.id),
            "name": self.name,
            "version": str(self.version),
            "qualifier": str(self.qualifier) or None,
            "installed": self.installed,
            "flags": dict(sorted(self.flags.items())),
            "stanzas": sorted(self.stanzas),
            "library_depends": [str(d) for d in self.library_depends],
            "exe_depends": [str(d) for d in self.exe_depends],
            "setup_depends": [str(d) for d in self.setup_depends],
            "linked": [str(q) for q in self.linked],
        }


class SolverInstallPlan:
    """Configured packages keyed by id, iterated in topological order.

    Every package comes after everything it depends on, setup dependencies
    included.
    """

    def __init__(self, packages, order=None):
        self._packages = frozendict((pkg.id, pkg) for pkg in packages)
        if order is None:
            order = toposort(
                {pkg_id: set(pkg.all_depends()) for pkg_id, pkg in self._packages.items()},
                key=str,
            )
        self._order = tuple(order)

    @property
    def order(self):
        return self._order

    @property
    def packages(self):
        return self._packages

    def __iter__(self):
        for pkg_id in self._order:
            yield self._packages[pkg_id]

    def __len__(self):
        return len(self._packages)

    def __contains__(self, item):
        if isinstance(item, ConfiguredId):
            return item in self._packages
        return any(pkg_id.name == item for pkg_id in self._packages)

    def __getitem__(self, pkg_id):
        return self._packages[pkg_id]

    def get(self, name, qualifier=TOPLEVEL):
        """The package ``name`` configured at ``qualifier``, or None."""
        return next(
            (
                pkg
                for pkg_id, pkg in self._packages.items()
                if pkg_id.name == name and pkg_id.qualifier == qualifier
            ),
            None,
        )

    def versions(self):
        """Top-level package name to version string, for quick inspection."""
        return {pkg.name: str(pkg.version) for pkg in self if pkg.qualifier.is_toplevel}

    def validate(self):
        """Check the plan is closed under dependencies and in topological order."""
        position = {pkg_id: idx for idx, pkg_id in enumerate(self._order)}
        if set(position) != set(self._packages) or len(position) != len(self._order):
            raise InternalSolverError("plan order does not cover exactly the planned packages")
        seen = {}
        for pkg in self._packages.values():
            qpn = pkg.id.qpn
            if qpn in seen:
                raise InternalSolverError(
                    "%(qpn)s is planned twice: %(first)s and %(second)s",
                    qpn=qpn,
                    first=seen[qpn],
                    second=pkg.id,
                )
            seen[qpn] = pkg.id
            for dep in pkg.all_depends():
                if dep == pkg.id:
                    raise InternalSolverError("%(pkg)s depends on itself", pkg=pkg.id)
                if dep not in self._packages:
                    raise InternalSolverError(
                        "%(pkg)s depends on %(dep)s, which is not in the plan",
                        pkg=pkg.id,
                        dep=dep,
                    )
                if position[dep] > position[pkg.id]:
                    raise InternalSolverError(
                        "%(pkg)s is ordered before its dependency %(dep)s",
                        pkg=pkg.id,
                        dep=dep,
                    )
        return self

    def merge(self, other):
        """Concatenate two plans over disjoint package sets."""
        overlap = set(self._packages) & set(other.packages)
        conflicting = {
            pkg_id.qpn for pkg_id in other.packages for mine in self._packages
            if mine.qpn == pkg_id.qpn and mine != pkg_id
        }
        if conflicting:
            raise InternalSolverError(
                "cannot merge plans configuring %(names)s differently",
                names=", ".join(sorted(str(q) for q in conflicting)),
            )
        packages = list(self._packages.values())
        packages.extend(pkg for pkg_id, pkg in other.packages.items() if pkg_id not in overlap)
        order = self._order + tuple(pkg_id for pkg_id in other.order if pkg_id not in overlap)
        return SolverInstallPlan(packages, order)

    def to_dict(self):
        return {
            "packages": [pkg.dump() for pkg in self],
            "order": [str(pkg_id) for pkg_id in self._order],
        }

    def __repr__(self):
        return "SolverInstallPlan(%s)" % ", ".join(str(pkg_id) for pkg_id in self._order)
