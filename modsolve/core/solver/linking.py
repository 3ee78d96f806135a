# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Linking qualified packages to an instance chosen elsewhere.

When ``pn`` is already chosen at qualifier ``q'``, a goal for ``pn`` at another
qualifier ``q`` may be satisfied by linking to it instead of configuring a
second copy. A linked package is an alias: its flags, stanzas and dependencies
are those of the package it links to, so none of its own flag, stanza or
dependency goals are opened.
"""

from __future__ import annotations

from logging import getLogger

from ...models.variables import ConflictSet, Variable
from .tree import Branch, FailReason

log = getLogger(__name__)


def link_candidates(state, qpn):
    """Branches linking ``qpn`` to every unlinked occurrence of its name."""
    return tuple(
        Branch(instance, link=other)
        for other, instance in state.chosen_by_name(qpn.name)
        if other != qpn and not state.is_linked(other)
    )


def package_conflict_set(state, qpn):
    """The variables that determined which instance ``qpn`` resolved to."""
    var = Variable.package(qpn)
    canonical = state.canonical(qpn)
    if canonical != qpn:
        return ConflictSet.of(var, Variable.package(canonical))
    return ConflictSet.of(var)


def check_link(state, qpn, target, constraints):
    """Reject linking ``qpn`` to ``target`` when a constraint treats the two differently.

    A constraint that forces flags or stanzas within ``qpn``'s scope but not
    ``target``'s could not be honored by a shared configuration.
    """
    for constraint in constraints:
        if not (constraint.flags or constraint.stanzas):
            continue
        if constraint.applies_to(qpn) and not constraint.applies_to(target):
            return FailReason(
                "cannot link %(qpn)s to %(target)s: the constraint '%(constraint)s' "
                "only applies to %(qpn)s",
                qpn=qpn,
                target=target,
                constraint=constraint,
            )
    return None


def single_instance_conflict(state, qpn, instance, link=None):
    """An occurrence of ``qpn``'s name that choosing ``instance`` would duplicate, or None.

    A single-instance package may only be shared through a link: a branch
    configuring its own copy conflicts with every occurrence already chosen,
    and a link conflicts with occurrences of a different instance.
    """
    for other, other_instance in state.chosen_by_name(qpn.name):
        if other == qpn:
            continue
        if link is None or other_instance != instance:
            return other, other_instance
    return None
