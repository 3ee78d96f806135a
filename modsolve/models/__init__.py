# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Value types shared by the solver: versions, dependency trees, records and plans."""
