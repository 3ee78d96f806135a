# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
import os

import pytest

from modsolve.base.context import reset_context

from tests.helpers import ab_universe, adversarial_universe, pqr_universe


@pytest.fixture(autouse=True)
def clean_context(monkeypatch):
    """Every test starts from a context with no rc files and no MODSOLVE_ variables."""
    for name in list(os.environ):
        if name.startswith("MODSOLVE_"):
            monkeypatch.delenv(name)
    reset_context(search_path=())
    yield
    reset_context(search_path=())


@pytest.fixture
def ab():
    return ab_universe()


@pytest.fixture
def pqr():
    return pqr_universe()


@pytest.fixture
def adversarial():
    return adversarial_universe()
