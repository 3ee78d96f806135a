# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Helpers for building small synthetic package universes."""

from __future__ import annotations

from modsolve.api import solve
from modsolve.core.solver.params import SolverParams
from modsolve.models.records import PackageRecord
from modsolve.models.universe import PackageUniverse
from modsolve.models.variables import QPN, Variable


def rec(name, version, *depends, **kwargs):
    """A package record; ``depends`` items are anything :func:`~modsolve.models.conditions.tree`
    accepts."""
    return PackageRecord(name, version, depends=depends, **kwargs)


def installed(name, version, *depends, **kwargs):
    return PackageRecord(name, version, depends=depends, installed=True, **kwargs)


def make_universe(*records):
    return PackageUniverse(records)


def make_params(**kwargs):
    return SolverParams(**kwargs)


def solve_plan(universe, goals, **kwargs):
    """Solve with explicit parameters and return the plan."""
    params = kwargs.pop("params", None) or make_params()
    return solve(universe, goals, params=params, **kwargs).plan


def versions(plan):
    """Qualified name to version string for every package in ``plan``."""
    return {str(pkg.id.qpn): str(pkg.version) for pkg in plan}


def pkg_var(name, qualifier=None):
    qpn = QPN.toplevel(name) if qualifier is None else QPN(qualifier, name)
    return Variable.package(qpn)


def ab_universe():
    """a-1 and a-2 both need b >=2; b has versions 1 and 2."""
    return make_universe(
        rec("a", "1", "b >=2"),
        rec("a", "2", "b >=2"),
        rec("b", "1"),
        rec("b", "2"),
    )


def pqr_universe():
    """p needs r ==1 and q needs r ==2, so p and q can't be installed together."""
    return make_universe(
        rec("p", "1", "r ==1"),
        rec("q", "1", "r ==2"),
        rec("r", "1"),
        rec("r", "2"),
    )


def adversarial_universe():
    """A universe where the conflict is found long after the decision that caused it.

    a-2 pins d to 1, but c needs d 2. x and y are unrelated to the conflict, so a
    naive search retries every combination of them before changing a.
    """
    return make_universe(
        rec("a", "2", "d ==1"),
        rec("a", "1", "d ==2"),
        rec("c", "2", "d ==2"),
        rec("c", "1", "d ==2"),
        rec("d", "1"),
        rec("d", "2"),
        rec("x", "1"),
        rec("x", "2"),
        rec("y", "1"),
        rec("y", "2"),
    )


ADVERSARIAL_GOALS = ("a", "x", "y", "c")
