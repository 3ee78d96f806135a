# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""The modular search: tree construction, validation, preferences and backjumping exploration."""
