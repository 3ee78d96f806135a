# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
import pytest

from modsolve.exceptions import CyclicalDependencyError, InternalSolverError
from modsolve.models.plan import ConfiguredId, ConfiguredPackage, SolverInstallPlan
from modsolve.models.variables import TOPLEVEL, setup_qualifier
from modsolve.models.version import VersionOrder


def cid(name, version="1", qualifier=TOPLEVEL, installed=False):
    return ConfiguredId(qualifier, name, VersionOrder(version), installed)


def test_plan_is_topologically_ordered():
    zlib = ConfiguredPackage(cid("zlib"))
    ssl = ConfiguredPackage(cid("openssl"), library_depends=(zlib.id,))
    cmake = ConfiguredPackage(cid("cmake", qualifier=setup_qualifier("curl")))
    curl = ConfiguredPackage(
        cid("curl"), library_depends=(ssl.id, zlib.id), setup_depends=(cmake.id,)
    )
    plan = SolverInstallPlan([curl, ssl, cmake, zlib]).validate()
    order = [str(pkg_id) for pkg_id in plan.order]
    assert order == ["curl:setup.cmake-1", "zlib-1", "openssl-1", "curl-1"]
    assert [pkg.name for pkg in plan] == ["cmake", "zlib", "openssl", "curl"]
    assert len(plan) == 4
    assert "curl" in plan and cmake.id in plan and "wget" not in plan
    assert plan.get("cmake") is None
    assert plan.get("cmake", setup_qualifier("curl")) is cmake
    assert plan.versions() == {"zlib": "1", "openssl": "1", "curl": "1"}


def test_plan_rejects_cycles():
    a = ConfiguredPackage(cid("a"), library_depends=(cid("b"),))
    b = ConfiguredPackage(cid("b"), library_depends=(cid("a"),))
    with pytest.raises(CyclicalDependencyError) as exc:
        SolverInstallPlan([a, b])
    assert {str(n) for n in exc.value.nodes_with_cycles} == {"a-1", "b-1"}


def test_validate_catches_bad_plans():
    a = ConfiguredPackage(cid("a"), library_depends=(cid("missing"),))
    with pytest.raises(InternalSolverError):
        SolverInstallPlan([a], order=[a.id]).validate()

    b = ConfiguredPackage(cid("b"))
    c = ConfiguredPackage(cid("c"), library_depends=(b.id,))
    with pytest.raises(InternalSolverError, match="ordered before"):
        SolverInstallPlan([b, c], order=[c.id, b.id]).validate()

    b2 = ConfiguredPackage(cid("b", "2"))
    with pytest.raises(InternalSolverError, match="planned twice"):
        SolverInstallPlan([b, b2]).validate()

    d = ConfiguredPackage(cid("d"), library_depends=(cid("d"),))
    with pytest.raises(InternalSolverError, match="d-1 depends on itself"):
        SolverInstallPlan([d]).validate()


def test_merge_and_dump():
    zlib = ConfiguredPackage(cid("zlib"))
    first = SolverInstallPlan([zlib, ConfiguredPackage(cid("a"), library_depends=(zlib.id,))])
    second = SolverInstallPlan(
        [zlib, ConfiguredPackage(cid("b"), flags={"fast": True}, stanzas={"test"})]
    )
    merged = first.merge(second).validate()
    assert [str(p) for p in merged.order] == ["zlib-1", "a-1", "b-1"]

    dumped = merged.to_dict()
    assert dumped["order"] == ["zlib-1", "a-1", "b-1"]
    b = dumped["packages"][2]
    assert b["flags"] == {"fast": True}
    assert b["stanzas"] == ["test"]
    assert b["qualifier"] is None

    conflicting = SolverInstallPlan([ConfiguredPackage(cid("zlib", "2"))])
    with pytest.raises(InternalSolverError):
        first.merge(conflicting)
