# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Immutable solver parameters.

The search never consults the global context; a :class:`SolverParams` is built once per solve
and passed explicitly to every component.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from logging import getLogger

from frozendict import frozendict

from ...base.constants import DEFAULT_BASE_PACKAGES, VersionPreference

log = getLogger(__name__)


@dataclass(frozen=True)
class SolverParams:
    backjumping: bool = True
    independent_goals: bool = False
    reorder_goals: bool = False
    count_conflicts: bool = True
    defer_setup_goals: bool = False
    base_packages: frozenset = frozenset(DEFAULT_BASE_PACKAGES)
    single_instance_packages: frozenset = frozenset()
    prefer_linked: bool = True
    prefer_installed: bool = True
    version_preference: VersionPreference = VersionPreference.LATEST
    package_version_preference: frozendict = field(default_factory=frozendict)
    preferred_versions: frozendict = field(default_factory=frozendict)
    allow_new_versions: bool = True
    max_steps: int | None = None
    max_backjumps: int | None = None
    timeout: float | None = None
    solver_workers: int = 1
    max_log_events: int | None = None
    show_progress: bool = False

    def __post_init__(self):
        object.__setattr__(self, "base_packages", frozenset(self.base_packages))
        object.__setattr__(
            self, "single_instance_packages", frozenset(self.single_instance_packages)
        )
        object.__setattr__(self, "version_preference", VersionPreference(self.version_preference))
        object.__setattr__(
            self,
            "package_version_preference",
            frozendict(
                (name, VersionPreference(pref))
                for name, pref in self.package_version_preference.items()
            ),
        )
        object.__setattr__(self, "preferred_versions", frozendict(self.preferred_versions))

    @classmethod
    def from_context(cls, context, **overrides):
        """Snapshot the solver-related parameters of a
        :class:`~modsolve.base.context.Context`, with ``overrides`` taking precedence."""
        values = {
            "backjumping": context.backjumping,
            "independent_goals": context.independent_goals,
            "reorder_goals": context.reorder_goals,
            "count_conflicts": context.count_conflicts,
            "defer_setup_goals": context.defer_setup_goals,
            "base_packages": context.base_packages,
            "single_instance_packages": context.single_instance_packages,
            "prefer_linked": context.prefer_linked,
            "prefer_installed": context.prefer_installed,
            "version_preference": context.version_preference,
            "package_version_preference": context.package_version_preference,
            "preferred_versions": context.preferred_versions,
            "allow_new_versions": context.allow_new_versions,
            "max_steps": context.max_steps,
            "max_backjumps": context.max_backjumps,
            "timeout": context.solver_timeout,
            "solver_workers": context.solver_workers,
            "max_log_events": context.max_log_events,
            "show_progress": context.show_progress,
        }
        unknown = set(overrides) - {f.name for f in fields(cls)}
        if unknown:
            raise TypeError("unknown solver parameters: %s" % ", ".join(sorted(unknown)))
        values.update(overrides)
        return cls(**values)

    def replace(self, **changes):
        return replace(self, **changes)

    def is_single_instance(self, name):
        return name in self.single_instance_packages
