# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from logging import getLogger

log = getLogger(__name__)


class AuxlibError:
    """Mixin to identify exceptions associated with the auxlib package."""


class ThisShouldNeverHappenError(AuxlibError, AttributeError):
    pass


class TypeCoercionError(AuxlibError, ValueError):
    def __init__(self, value, msg, *args, **kwargs):
        self.value = value
        super().__init__(msg, *args, **kwargs)
