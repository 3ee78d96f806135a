# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""This file should hold most string literals and magic numbers used throughout the code base."""

from __future__ import annotations

from enum import Enum, EnumMeta

APP_NAME = "modsolve"

SEARCH_PATH = (
    "/etc/modsolve/.modsolverc",
    "/etc/modsolve/modsolverc",
    "/etc/modsolve/modsolverc.d/",
    "$XDG_CONFIG_HOME/modsolve/modsolverc",
    "~/.config/modsolve/modsolverc",
    "~/.modsolverc",
    "$MODSOLVE_RC",
)

#: packages whose goals are processed before all others
DEFAULT_BASE_PACKAGES = ("base",)


class ValueEnumMeta(EnumMeta):
    def __call__(cls, value, *args, **kwargs):
        try:
            return super().__call__(value, *args, **kwargs)
        except ValueError:
            if isinstance(value, str):
                return super().__call__(value.lower().replace("-", "_"), *args, **kwargs)
            raise


class ValueEnum(Enum, metaclass=ValueEnumMeta):
    """Subclass of enum that returns the value of the enum as its str representation."""

    def __str__(self) -> str:
        return f"{self.value}"

    def __json__(self):
        return self.value


class VersionPreference(ValueEnum):
    """Order in which the versions of one package are tried."""

    LATEST = "latest"
    OLDEST = "oldest"


class SolveBudget(ValueEnum):
    STEPS = "steps"
    BACKJUMPS = "backjumps"
    TIME = "time"
