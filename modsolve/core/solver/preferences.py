# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Heuristics that decide the order of goals and branches.

Everything here only reorders. A branch that a preference ranks last is still
tried, so preferences can change which solution is found first but never
whether one is found.
"""

from __future__ import annotations

from logging import getLogger

from ...base.constants import VersionPreference
from ...models.constraints import PackagePreference
from ...models.variables import VarKind

log = getLogger(__name__)


class Preferences:
    def __init__(self, universe, params, preferences=(), constraints=()):
        self.universe = universe
        self.params = params
        self.constraints = tuple(constraints)
        self._by_name = {}
        for name in sorted(set(params.preferred_versions) | set(params.package_version_preference)):
            spec = params.preferred_versions.get(name)
            self._by_name[name] = PackagePreference(
                name,
                versions=(spec,) if spec else (),
                order=params.package_version_preference.get(name),
            )
        for pref in preferences:
            # explicit preferences replace the configured ones for the same package
            self._by_name[pref.name] = pref

    def preference(self, name):
        return self._by_name.get(name)

    # branches

    def order_branches(self, choice):
        var = choice.var
        if var.kind is VarKind.PACKAGE:
            branches = self._order_package_branches(var.qpn.name, choice.branches)
        elif var.kind is VarKind.FLAG:
            branches = self._order_bool_branches(choice.branches, self._flag_first(var, choice.state))
        else:
            branches = self._order_bool_branches(choice.branches, self._stanza_first(var))
        return choice.with_branches(branches)

    def _order_package_branches(self, name, branches):
        pref = self.preference(name)
        order = (pref.order if pref and pref.order else None) or self.params.version_preference
        prefer_installed = self.params.prefer_installed
        if pref is not None and pref.prefer_installed is not None:
            prefer_installed = pref.prefer_installed
        oldest = order is VersionPreference.OLDEST

        links = [b for b in branches if b.link is not None]
        versions = [b for b in branches if b.link is None]

        def sort_key(branch):
            instance = branch.value
            return (
                not (pref is not None and pref.prefers_version(instance.version)),
                prefer_installed and not instance.installed,
            )

        # universe order is newest first; the stable sorts keep it within equal keys
        if oldest:
            versions.sort(key=lambda b: (b.value.version, not b.value.installed))
        versions.sort(key=sort_key)
        if self.params.prefer_linked:
            return tuple(links + versions)
        return tuple(versions + links)

    def _flag_first(self, var, state):
        for constraint in self.constraints:
            if constraint.applies_to(var.qpn) and var.label in constraint.flags:
                return constraint.flags[var.label]
        pref = self.preference(var.qpn.name)
        if pref is not None and var.label in pref.flags:
            return pref.flags[var.label]
        record = self.universe.record(state.instance(var.qpn))
        info = record.flag(var.label)
        return True if info is None else info.default

    def _stanza_first(self, var):
        for constraint in self.constraints:
            if constraint.applies_to(var.qpn) and var.label in constraint.stanzas:
                return constraint.stanzas[var.label]
        pref = self.preference(var.qpn.name)
        return pref is not None and var.label in pref.stanzas

    @staticmethod
    def _order_bool_branches(branches, first):
        return tuple(sorted(branches, key=lambda b: b.value is not first))

    # goals

    def plausible_count(self, state, goal):
        """How many branches of ``goal`` survive the constraints known so far."""
        var = goal.var
        qpn = var.qpn
        if var.kind is VarKind.PACKAGE:
            requirements = state.requirements_on(qpn)
            constraints = [c for c in self.constraints if c.applies_to(qpn)]
            count = 0
            for record in self.universe.versions_of(qpn.name):
                version = record.version
                if not all(r.spec.match(version) for r in requirements):
                    continue
                if not all(c.version.match(version) for c in constraints):
                    continue
                if any(c.installed is not None and c.installed != record.installed for c in constraints):
                    continue
                count += 1
            return count + sum(1 for _ in state.chosen_by_name(qpn.name))
        labels = (lambda c: c.flags) if var.kind is VarKind.FLAG else (lambda c: c.stanzas)
        forced = {
            labels(c)[var.label]
            for c in self.constraints
            if c.applies_to(qpn) and var.label in labels(c)
        }
        return 2 if not forced else (1 if len(forced) == 1 else 0)

    def order_goals(self, state, goals, conflict_counts=None):
        params = self.params
        conflict_counts = conflict_counts or {}

        def sort_key(goal):
            var = goal.var
            plausible = self.plausible_count(state, goal)
            return (
                plausible > 1,
                var.qpn.name not in params.base_packages,
                params.defer_setup_goals and not var.qpn.qualifier.is_toplevel,
                -conflict_counts.get(var, 0) if params.count_conflicts else 0,
                plausible if params.reorder_goals else 0,
                goal.seq,
            )

        return tuple(sorted(goals, key=sort_key))
