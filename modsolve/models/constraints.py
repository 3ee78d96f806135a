# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""User constraints (hard) and package preferences (soft).

Constraints prune: a branch that violates one fails with a conflict set that
contains only the variable being decided, because nothing else in the search
can make it hold. Preferences only reorder branches.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger

from frozendict import frozendict

from ..base.constants import VersionPreference
from .version import VersionSpec

log = getLogger(__name__)


@dataclass(frozen=True)
class UserConstraint:
    """A hard requirement on every occurrence of a package within ``scope``.

    Args:
        name: package name.
        version: allowed version range.
        installed: True to allow only installed instances, False to allow only
            source versions, None for either.
        flags: flag name to forced value.
        stanzas: stanza name to forced enabled/disabled.
        scope: a :class:`~modsolve.models.variables.Qualifier` the constraint is
            limited to, or None for every qualifier.
    """

    name: str
    version: VersionSpec = field(default_factory=VersionSpec.any)
    installed: bool | None = None
    flags: frozendict = field(default_factory=frozendict)
    stanzas: frozendict = field(default_factory=frozendict)
    scope: object = None

    def __post_init__(self):
        object.__setattr__(self, "version", VersionSpec(self.version))
        object.__setattr__(self, "flags", frozendict(self.flags))
        object.__setattr__(self, "stanzas", frozendict(self.stanzas))

    def applies_to(self, qpn):
        return qpn.name == self.name and (self.scope is None or qpn.qualifier == self.scope)

    def __str__(self):
        parts = [self.name]
        if not self.version.is_any():
            parts.append(str(self.version))
        if self.installed is True:
            parts.append("installed")
        elif self.installed is False:
            parts.append("source")
        parts.extend(("+" if v else "-") + f for f, v in sorted(self.flags.items()))
        parts.extend(
            ("" if v else "!") + f"stanza({s})" for s, v in sorted(self.stanzas.items())
        )
        return " ".join(parts)


@dataclass(frozen=True)
class PackagePreference:
    """Soft preferences for one package, applied before the global policy.

    Args:
        name: package name.
        versions: preferred version ranges; matching versions are tried first.
        order: version order for this package, overriding the global policy.
        prefer_installed: overrides the global installed-first policy.
        flags: preferred flag values.
        stanzas: stanzas to try enabled first.
    """

    name: str
    versions: tuple = ()
    order: VersionPreference | None = None
    prefer_installed: bool | None = None
    flags: frozendict = field(default_factory=frozendict)
    stanzas: frozenset = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "versions", tuple(VersionSpec(v) for v in self.versions))
        if self.order is not None:
            object.__setattr__(self, "order", VersionPreference(self.order))
        object.__setattr__(self, "flags", frozendict(self.flags))
        object.__setattr__(self, "stanzas", frozenset(self.stanzas))

    def prefers_version(self, version):
        return any(spec.match(version) for spec in self.versions)
