# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Incremental consistency checks.

Each check looks at one newly fixed variable against what is already decided
and returns None or a :class:`~modsolve.core.solver.tree.Fail`. The conflict
set of a failure always holds the variable being checked plus every variable
the violated constraint depended on: whatever else changes, an assignment that
agrees on those variables fails the same way.
"""

from __future__ import annotations

from logging import getLogger

from ...common.toposort import strongly_connected_components
from ...models.conditions import DependencyKind
from ...models.variables import ConflictSet, Variable, VarKind
from .linking import check_link, package_conflict_set, single_instance_conflict
from .tree import Fail, FailReason

log = getLogger(__name__)

#: dependency kinds that must not form cycles
CYCLE_KINDS = (DependencyKind.LIBRARY, DependencyKind.EXE)


def label_variables(qpn, labels):
    return ConflictSet(Variable.from_label(qpn, label) for label in labels)


class Validator:
    def __init__(self, universe, environment, params, constraints=()):
        self.universe = universe
        self.environment = environment
        self.params = params
        self.constraints = tuple(constraints)

    def constraints_for(self, qpn):
        return tuple(c for c in self.constraints if c.applies_to(qpn))

    def is_single_instance(self, name):
        return self.params.is_single_instance(name) or any(
            rec.single_instance for rec in self.universe.versions_of(name)
        )

    # package choices

    def check_package(self, state, var, branch):
        qpn = var.qpn
        instance = branch.value
        record = self.universe.record(instance)
        cs = ConflictSet.of(var)
        if branch.link is not None:
            cs = cs | (Variable.package(branch.link),)
            reason = check_link(state, qpn, branch.link, self.constraints)
            if reason is not None:
                return Fail(cs, reason, var)

        for constraint in self.constraints_for(qpn):
            reason = self.check_user_constraint(instance, record, constraint)
            if reason is not None:
                return Fail(cs, reason, var)

        if (
            not self.params.allow_new_versions
            and not instance.installed
            and self.universe.installed_of(instance.name)
        ):
            return Fail(
                cs,
                FailReason(
                    "%(instance)s is not installed, and new versions of installed packages "
                    "are not allowed",
                    instance=instance,
                ),
                var,
            )

        for requirement in state.requirements_on(qpn):
            if not requirement.spec.match(instance.version):
                return Fail(
                    cs | requirement.origin,
                    FailReason(
                        "%(dependent)s requires %(name)s %(spec)s, but %(instance)s does not "
                        "satisfy it",
                        dependent=requirement.describe(state.assignment),
                        name=qpn,
                        spec=requirement.spec,
                        instance=instance,
                    ),
                    var,
                )

        if self.is_single_instance(qpn.name):
            conflict = single_instance_conflict(state, qpn, instance, branch.link)
            if conflict is not None:
                other, other_instance = conflict
                if other_instance == instance:
                    reason = FailReason(
                        "%(name)s must be a single instance, so %(qpn)s can only link to "
                        "%(other)s instead of configuring %(instance)s again",
                        name=qpn.name,
                        qpn=qpn,
                        other=other,
                        instance=instance,
                    )
                else:
                    reason = FailReason(
                        "%(name)s must be a single instance, but %(other)s chose %(chosen)s "
                        "and %(qpn)s would choose %(instance)s",
                        name=qpn.name,
                        other=other,
                        chosen=other_instance,
                        qpn=qpn,
                        instance=instance,
                    )
                return Fail(cs | package_conflict_set(state, other), reason, var)
        return None

    @staticmethod
    def check_user_constraint(instance, record, constraint):
        if not constraint.version.match(instance.version):
            return FailReason(
                "%(instance)s is excluded by the constraint '%(constraint)s'",
                instance=instance,
                constraint=constraint,
            )
        if constraint.installed is True and not instance.installed:
            return FailReason(
                "the constraint '%(constraint)s' requires an installed instance, "
                "but %(instance)s is not installed",
                instance=instance,
                constraint=constraint,
            )
        if constraint.installed is False and instance.installed:
            return FailReason(
                "the constraint '%(constraint)s' requires a source version, "
                "but %(instance)s is installed",
                instance=instance,
                constraint=constraint,
            )
        if instance.installed:
            fixed = record.fixed_flags()
            for flag, value in sorted(constraint.flags.items()):
                if flag in fixed and fixed[flag] != value:
                    return FailReason(
                        "the constraint '%(constraint)s' sets flag '%(flag)s', but the "
                        "installed %(instance)s was built with it %(state)s",
                        constraint=constraint,
                        flag=flag,
                        instance=instance,
                        state="on" if fixed[flag] else "off",
                    )
            enabled = sorted(s for s, v in constraint.stanzas.items() if v)
            if enabled:
                return FailReason(
                    "the constraint '%(constraint)s' enables %(stanzas)s, which the "
                    "installed %(instance)s cannot provide",
                    constraint=constraint,
                    stanzas=", ".join(enabled),
                    instance=instance,
                )
        return None

    # dependencies

    def check_dependency(self, state, var, source, dep, origin, target):
        """Check one activated dependency of ``source``.

        Args:
            var: the variable whose assignment activated the dependency.
            origin: the variables that activated the dependency.
            target: the qualified name the dependency resolves to, or None for
                system dependencies.
        """
        if dep.kind is DependencyKind.SYSTEM:
            available = self.environment.system_library(dep.name)
            if available is None or not dep.spec.match(available):
                found = "not available" if available is None else f"version {available}"
                return Fail(
                    origin | (var,),
                    FailReason(
                        "%(source)s requires the system library %(dep)s, which is %(found)s",
                        source=state.instance(source),
                        dep=dep,
                        found=found,
                    ),
                    var,
                )
            return None

        if dep.name not in self.universe:
            return Fail(
                origin | (var,),
                FailReason(
                    "%(source)s depends on unknown package %(name)s",
                    source=state.instance(source),
                    name=dep.name,
                ),
                var,
            )

        chosen = state.instance(target)
        if chosen is not None and not dep.spec.match(chosen.version):
            return Fail(
                origin | package_conflict_set(state, target) | (var,),
                FailReason(
                    "%(source)s requires %(target)s %(spec)s, but %(chosen)s was chosen",
                    source=state.instance(source),
                    target=target,
                    spec=dep.spec,
                    chosen=chosen,
                ),
                var,
            )
        return None

    # flags and stanzas

    def check_flag(self, state, var, value, record):
        qpn = var.qpn
        forced = [c for c in self.constraints_for(qpn) if var.label in c.flags]
        for constraint in forced:
            if constraint.flags[var.label] != value:
                return Fail(
                    ConflictSet.of(var),
                    FailReason(
                        "the constraint '%(constraint)s' sets flag '%(flag)s' of %(qpn)s",
                        constraint=constraint,
                        flag=var.label,
                        qpn=qpn,
                    ),
                    var,
                )
        info = record.flag(var.label)
        if info is not None and info.manual and not forced and value != info.default:
            return Fail(
                ConflictSet.of(var, Variable.package(qpn)),
                FailReason(
                    "flag '%(flag)s' of %(instance)s is manual and can only be changed "
                    "by a constraint",
                    flag=var.label,
                    instance=state.instance(qpn),
                ),
                var,
            )
        return self.check_rules(state, var, record)

    def check_stanza(self, state, var, value, record):
        qpn = var.qpn
        for constraint in self.constraints_for(qpn):
            if var.label in constraint.stanzas and constraint.stanzas[var.label] != value:
                return Fail(
                    ConflictSet.of(var),
                    FailReason(
                        "the constraint '%(constraint)s' %(verb)s stanza '%(stanza)s' of %(qpn)s",
                        constraint=constraint,
                        verb="enables" if constraint.stanzas[var.label] else "disables",
                        stanza=var.label,
                        qpn=qpn,
                    ),
                    var,
                )
        return self.check_rules(state, var, record)

    def check_rules(self, state, var, record):
        """Stanza-requires-flag and mutually-exclusive-flag rules of ``record``."""
        qpn = var.qpn
        flags = state.flags_of(qpn)
        stanzas = state.stanzas_of(qpn)
        label = ("flag" if var.kind is VarKind.FLAG else "stanza", var.label)
        for rule in record.rules:
            if label not in rule.labels():
                continue
            if rule.violated(flags, stanzas):
                decided = tuple(
                    lbl
                    for lbl in rule.labels()
                    if state.is_assigned(Variable.from_label(qpn, lbl))
                )
                return Fail(
                    label_variables(qpn, decided) | (var, Variable.package(qpn)),
                    FailReason(
                        "%(instance)s: %(rule)s", instance=state.instance(qpn), rule=rule
                    ),
                    var,
                )
        return None

    # complete assignments

    def check_done(self, state):
        """Reject dependency cycles through library and build-tool edges, self loops included."""
        graph = {}
        edge_origins = {}
        for edges in state.edges.values():
            for edge in edges:
                if edge.kind not in CYCLE_KINDS:
                    continue
                target = state.canonical(edge.target)
                graph.setdefault(edge.source, set()).add(target)
                key = (edge.source, target)
                cs = edge.origin | package_conflict_set(state, edge.target)
                edge_origins[key] = edge_origins.get(key, ConflictSet()) | cs
        loops = sorted((source for source, target in edge_origins if source == target), key=str)
        if loops:
            qpn = loops[0]
            return Fail(
                edge_origins[(qpn, qpn)],
                FailReason("%(instance)s depends on itself", instance=state.instance(qpn)),
            )
        components = strongly_connected_components(graph)
        if not components:
            return None
        component = min(components, key=lambda c: sorted(str(q) for q in c))
        cs = ConflictSet().union(
            *(
                origin
                for (source, target), origin in edge_origins.items()
                if source in component and target in component
            )
        )
        return Fail(
            cs,
            FailReason(
                "dependency cycle between %(members)s",
                members=", ".join(
                    sorted(str(state.instance(qpn) or qpn) for qpn in component)
                ),
            ),
        )
