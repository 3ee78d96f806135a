# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Conversion of a solved search state into a :class:`SolverInstallPlan`.

The search state only knows which instance each qualified package resolved to
and how its flags and stanzas were decided. The assembler re-resolves every
package's dependency tree against its final configuration, points linked
packages at the package they alias, and orders the result.

A package's setup dependencies may legitimately depend on the package itself:
a build system that needs the library it is building. Such a cycle can't be
built from source, so the occurrence that closes it is replaced by an
already-installed instance whose own dependencies are met by the rest of the
plan. When that occurrence was linked to the package being built, it is
unlinked first; the package being built is never replaced.
"""

from __future__ import annotations

from logging import getLogger

from frozendict import frozendict

from ..common.iterators import unique
from ..common.toposort import find_path
from ..exceptions import (
    CyclicalDependencyError,
    InternalSolverError,
    PlanCycleError,
    SetupCycleError,
)
from ..models.conditions import DependencyKind
from ..models.plan import ConfiguredId, ConfiguredPackage, SolverInstallPlan
from ..models.variables import QPN
from .solver.builder import BUILD_KINDS, known_flags, known_stanzas, qualify
from .solver.validator import Validator

log = getLogger(__name__)


class PlanNode:
    """A configured package while the plan is still being assembled."""

    def __init__(self, qpn, record, flags, stanzas):
        self.qpn = qpn
        self.record = record
        self.flags = frozendict(flags)
        self.stanzas = frozenset(stanzas)
        # kind -> list of (canonical target qpn, version spec, qualified name)
        self.depends = {kind: [] for kind in DependencyKind if kind is not DependencyKind.SYSTEM}

    @property
    def id(self):
        return ConfiguredId(
            self.qpn.qualifier, self.qpn.name, self.record.version, self.record.installed
        )

    @property
    def aliases(self):
        """(qualified name, target) of the dependencies that resolved through a link."""
        return {
            (qualified, target)
            for deps in self.depends.values()
            for target, _, qualified in deps
            if qualified != target
        }

    def add_dependency(self, kind, target, spec, qualified=None):
        self.depends[kind].append((target, spec, target if qualified is None else qualified))

    def targets(self, kinds=None):
        kinds = self.depends if kinds is None else kinds
        return tuple(unique(target for kind in kinds for target, _, _ in self.depends[kind]))

    def specs_on(self, qpn):
        return tuple(
            spec for deps in self.depends.values() for target, spec, _ in deps if target == qpn
        )

    def names_of(self, target):
        """The qualified names this package used for its dependencies on ``target``."""
        return {
            qualified
            for deps in self.depends.values()
            for dep_target, _, qualified in deps
            if dep_target == target
        }

    def redirect(self, qualified, target):
        """Point dependencies named ``qualified`` at ``target`` instead of their link."""
        for kind, deps in self.depends.items():
            self.depends[kind] = [
                (target if name == qualified else dep_target, spec, name)
                for dep_target, spec, name in deps
            ]

    def configure(self, ids, linked=()):
        def dep_ids(kind):
            return tuple(ids[target] for target in self.targets((kind,)))

        return ConfiguredPackage(
            ids[self.qpn],
            flags=self.flags,
            stanzas=self.stanzas,
            library_depends=dep_ids(DependencyKind.LIBRARY),
            exe_depends=dep_ids(DependencyKind.EXE),
            setup_depends=dep_ids(DependencyKind.SETUP),
            linked=tuple(sorted(linked, key=str)),
        )

    def __repr__(self):
        return f"PlanNode({self.id})"


class InstallPlanAssembler:
    def __init__(self, universe, environment, constraints=()):
        self.universe = universe
        self.environment = environment
        self.constraints = tuple(constraints)

    def assemble(self, state):
        """Build and validate the install plan for a solved ``state``.

        Raises:
            SetupCycleError: if a setup cycle needs an installed instance that does not exist.
            PlanCycleError: if library or build-tool edges form a cycle.
        """
        nodes = {}
        for qpn in state.chosen_packages():
            if not state.is_linked(qpn):
                nodes[qpn] = self._node(state, qpn)
        for node in nodes.values():
            self._wire(state, node, nodes)

        self._break_setup_cycles(state, nodes)
        self._prune(state, nodes)

        # links whose dependents were pruned are not reported
        linked = {}
        for node in nodes.values():
            for qualified, target in node.aliases:
                linked.setdefault(target, set()).add(qualified)
        for qpn, canonical in state.links.items():
            if qpn.qualifier.is_toplevel and canonical in nodes:
                linked.setdefault(canonical, set()).add(qpn)
        ids = {qpn: node.id for qpn, node in nodes.items()}
        packages = [node.configure(ids, linked.get(qpn, ())) for qpn, node in nodes.items()]
        try:
            plan = SolverInstallPlan(packages)
        except CyclicalDependencyError as e:
            raise PlanCycleError(e.nodes_with_cycles) from e
        log.debug("assembled install plan of %d packages", len(plan))
        return plan.validate()

    def _node(self, state, qpn):
        record = self.universe.record(state.instance(qpn))
        if record.installed:
            flags = record.fixed_flags()
            stanzas = ()
        else:
            decided = state.flags_of(qpn)
            flags = {name: decided[name] for name in record.flag_names}
            stanzas = (name for name, enabled in state.stanzas_of(qpn).items() if enabled)
        return PlanNode(qpn, record, flags, stanzas)

    def _wire(self, state, node, nodes):
        qpn, record = node.qpn, node.record
        active, deferred = record.depends.resolve(
            known_flags(state, qpn, record), known_stanzas(state, qpn, record), self.environment
        )
        if deferred:
            raise InternalSolverError(
                "conditions of %(qpn)s are still undecided in a complete assignment",
                qpn=qpn,
            )
        for dep, _ in active:
            if dep.kind is DependencyKind.SYSTEM:
                continue
            if record.installed and dep.kind in BUILD_KINDS:
                continue
            qualified = qualify(qpn, dep)
            target = state.canonical(qualified)
            if target not in nodes:
                raise InternalSolverError(
                    "%(qpn)s depends on %(target)s, which was never chosen",
                    qpn=qpn,
                    target=target,
                )
            node.add_dependency(dep.kind, target, dep.spec, qualified)

    # setup cycles

    def _break_setup_cycles(self, state, nodes):
        while True:
            graph = {qpn: node.targets() for qpn, node in nodes.items()}
            found = self._find_setup_cycle(nodes, graph)
            if found is None:
                return
            qpn, cycle = found
            # the occurrence closing the cycle is replaced, never the package being built
            closing = nodes[cycle[-2]]
            occurrence = min(closing.names_of(qpn), key=lambda q: (q == qpn, str(q)))
            if occurrence != qpn:
                for node in nodes.values():
                    node.redirect(occurrence, occurrence)
                graph = {q: node.targets() for q, node in nodes.items()}
            substitute = self._installed_substitute(state, nodes, graph, occurrence, qpn)
            if substitute is None:
                raise SetupCycleError(nodes[qpn].id, [nodes[q].id for q in cycle])
            log.debug(
                "breaking setup cycle %s with installed %s",
                " -> ".join(str(q) for q in cycle),
                substitute.id,
            )
            nodes[occurrence] = substitute

    @staticmethod
    def _prune(state, nodes):
        """Drop packages only needed by a package that was replaced with an installed one."""
        roots = {state.canonical(qpn) for qpn in nodes if qpn.qualifier.is_toplevel}
        roots.update(
            state.canonical(qpn) for qpn in state.links if qpn.qualifier.is_toplevel
        )
        keep = set()
        queue = [qpn for qpn in roots if qpn in nodes]
        while queue:
            qpn = queue.pop()
            if qpn in keep:
                continue
            keep.add(qpn)
            queue.extend(nodes[qpn].targets())
        for qpn in [qpn for qpn in nodes if qpn not in keep]:
            log.debug("dropping %s, no longer needed by the plan", qpn)
            del nodes[qpn]

    @staticmethod
    def _find_setup_cycle(nodes, graph):
        for qpn in sorted(nodes, key=str):
            for target in nodes[qpn].targets((DependencyKind.SETUP,)):
                path = find_path(graph, target, qpn)
                if path is not None:
                    return qpn, (qpn,) + path
        return None

    def _installed_substitute(self, state, nodes, graph, qpn, chosen):
        """An installed instance to stand in for the occurrence ``qpn``, or None.

        The same version as the one ``chosen`` resolved to is preferred, then
        the newest. A candidate must satisfy every dependent and constraint on
        ``qpn``, and its own dependencies must be met by packages already in
        the plan without leading back to ``qpn``.
        """
        current = nodes[chosen].record
        specs = [spec for node in nodes.values() for spec in node.specs_on(qpn)]
        constraints = [c for c in self.constraints if c.applies_to(qpn)]
        candidates = sorted(
            self.universe.installed_of(qpn.name), key=lambda rec: rec.version != current.version
        )
        for record in candidates:
            if not all(spec.match(record.version) for spec in specs):
                continue
            if any(
                Validator.check_user_constraint(record.key, record, c) is not None
                for c in constraints
            ):
                continue
            node = self._substitute_node(state, nodes, graph, qpn, record)
            if node is not None:
                return node
        return None

    def _substitute_node(self, state, nodes, graph, qpn, record):
        flags = dict(record.fixed_flags())
        flags.update(
            (name, False) for name in record.depends.flag_names() if record.flag(name) is None
        )
        stanzas = {name: False for name in record.depends.stanza_names()}
        node = PlanNode(qpn, record, record.fixed_flags(), ())
        active, _ = record.depends.resolve(flags, stanzas, self.environment)
        for dep, _ in active:
            if dep.kind in BUILD_KINDS:
                continue
            if dep.kind is DependencyKind.SYSTEM:
                available = self.environment.system_library(dep.name)
                if available is None or not dep.spec.match(available):
                    return None
                continue
            qualified = QPN(qpn.qualifier, dep.name)
            target = state.canonical(qualified)
            if target not in nodes:
                # share a configured occurrence of the name, as a link would
                target = next(
                    (
                        other
                        for other in sorted(nodes, key=str)
                        if other.name == dep.name
                        and dep.spec.match(nodes[other].record.version)
                        and find_path(graph, other, qpn) is None
                    ),
                    None,
                )
            if target is None or target == qpn:
                return None
            if not dep.spec.match(nodes[target].record.version):
                return None
            if find_path(graph, target, qpn) is not None:
                return None
            node.add_dependency(dep.kind, target, dep.spec, qualified)
        return node


def assemble_plan(state, universe, environment, constraints=()):
    return InstallPlanAssembler(universe, environment, constraints).assemble(state)
