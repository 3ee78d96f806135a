# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Glue between modsolve and the outside world (currently only logging)."""
