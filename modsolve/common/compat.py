# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from collections.abc import Iterable
from enum import Enum

primitive_types = (str, int, float, complex, bool, type(None), Enum)


def isiterable(obj):
    return not isinstance(obj, str) and isinstance(obj, Iterable)
