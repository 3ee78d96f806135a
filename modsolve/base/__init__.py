# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Code in ``modsolve.base`` is the lowest level of the application stack.

It holds the application-wide constants and the configuration context.
"""
