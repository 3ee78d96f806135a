# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Common constants."""

from frozendict import frozendict

EMPTY_MAP = frozendict()

# custom logging level below DEBUG used for per-node search tracing
TRACE = 5
