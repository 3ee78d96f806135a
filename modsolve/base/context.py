# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Modsolve's global configuration object.

The context aggregates all configuration files, environment variables, and explicit overrides
into one global stateful object. The solver itself never reads it during a search: it is
converted once into an immutable :class:`~modsolve.core.solver.params.SolverParams`.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from functools import cached_property
from typing import TYPE_CHECKING

from frozendict import frozendict

from ..auxlib.ish import dals
from ..common.configuration import (
    Configuration,
    MapParameter,
    ParameterLoader,
    PrimitiveParameter,
    SequenceParameter,
    ValidationError,
)
from ..common.constants import TRACE
from .constants import APP_NAME, DEFAULT_BASE_PACKAGES, SEARCH_PATH, VersionPreference

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

NoneType = type(None)

log = logging.getLogger(__name__)


def positive_or_none_validation(value):
    if value is not None and value <= 0:
        return "value must be a positive number, or null for no limit"
    return True


def positive_validation(value):
    if value < 1:
        return "value must be at least 1"
    return True


class Context(Configuration):
    ####################################################
    #               Search Configuration               #
    ####################################################
    backjumping = ParameterLoader(PrimitiveParameter(True))
    independent_goals = ParameterLoader(PrimitiveParameter(False))
    reorder_goals = ParameterLoader(PrimitiveParameter(False))
    count_conflicts = ParameterLoader(PrimitiveParameter(True))
    defer_setup_goals = ParameterLoader(PrimitiveParameter(False))
    base_packages = ParameterLoader(
        SequenceParameter(PrimitiveParameter("", str), DEFAULT_BASE_PACKAGES)
    )
    single_instance_packages = ParameterLoader(
        SequenceParameter(PrimitiveParameter("", str)), aliases=("single_instance",)
    )

    ####################################################
    #             Preference Configuration             #
    ####################################################
    prefer_linked = ParameterLoader(PrimitiveParameter(True))
    prefer_installed = ParameterLoader(PrimitiveParameter(True))
    version_preference = ParameterLoader(PrimitiveParameter(VersionPreference.LATEST))
    package_version_preference = ParameterLoader(
        MapParameter(PrimitiveParameter(VersionPreference.LATEST))
    )
    preferred_versions = ParameterLoader(MapParameter(PrimitiveParameter("", str)))
    allow_new_versions = ParameterLoader(PrimitiveParameter(True))

    ####################################################
    #                Budget Configuration              #
    ####################################################
    max_steps = ParameterLoader(
        PrimitiveParameter(None, element_type=(int, NoneType), validation=positive_or_none_validation)
    )
    max_backjumps = ParameterLoader(
        PrimitiveParameter(None, element_type=(int, NoneType), validation=positive_or_none_validation)
    )
    solver_timeout = ParameterLoader(
        PrimitiveParameter(
            None, element_type=(int, float, NoneType), validation=positive_or_none_validation
        ),
        aliases=("timeout",),
    )
    solver_workers = ParameterLoader(
        PrimitiveParameter(1, element_type=int, validation=positive_validation)
    )

    ####################################################
    #                Output Configuration              #
    ####################################################
    max_log_events = ParameterLoader(
        PrimitiveParameter(None, element_type=(int, NoneType), validation=positive_or_none_validation)
    )
    show_progress = ParameterLoader(PrimitiveParameter(False))
    _verbosity = ParameterLoader(
        PrimitiveParameter(0, element_type=int), aliases=("verbose", "verbosity")
    )

    def __init__(
        self,
        search_path: Iterable[str] | None = None,
        overrides: Mapping | None = None,
    ):
        super().__init__(
            search_path=SEARCH_PATH if search_path is None else search_path,
            app_name=APP_NAME,
            overrides=overrides,
        )

    def post_build_validation(self) -> list[ValidationError]:
        errors = []
        if not self.independent_goals and self.solver_workers > 1:
            log.debug("solver_workers=%d has no effect without independent_goals", self.solver_workers)
        for name, spec in self.preferred_versions.items():
            if not spec:
                errors.append(
                    ValidationError(
                        "preferred_versions",
                        self.preferred_versions,
                        "<<merged>>",
                        "preferred_versions entry for '%s' has an empty version range" % name,
                    )
                )
        return errors

    @property
    def verbosity(self) -> int:
        """Verbosity level, mapped to a logging level by :attr:`log_level`."""
        #          0 → logging.WARNING
        #   -v   = 1 → logging.WARNING, with the search summary
        #   -vv  = 2 → logging.INFO
        #   -vvv = 3 → logging.DEBUG
        #  -vvvv = 4 → modsolve.common.constants.TRACE, every search event
        return self._verbosity

    @property
    def log_level(self) -> int:
        """Map context.verbosity to logging level."""
        if 4 < self.verbosity:
            return logging.NOTSET  # 0
        elif 3 < self.verbosity <= 4:
            return TRACE  # 5
        elif 2 < self.verbosity <= 3:
            return logging.DEBUG  # 10
        elif 1 < self.verbosity <= 2:
            return logging.INFO  # 20
        else:
            return logging.WARNING  # 30

    @property
    def trace(self) -> bool:
        return self.verbosity >= 4

    def get_descriptions(self) -> dict[str, str]:
        return self.description_map

    @cached_property
    def description_map(self) -> frozendict:
        return frozendict(
            backjumping=dals(
                """
                On a failure, skip every decision that is not in the conflict set instead of
                trying its remaining alternatives. Disabling this gives plain chronological
                backtracking.
                """
            ),
            independent_goals=dals(
                """
                Solve requested packages whose dependency closures do not overlap as separate
                problems and concatenate the resulting plans.
                """
            ),
            reorder_goals=dals(
                """
                Process the open goal with the fewest plausible choices first, instead of in
                the order goals were introduced.
                """
            ),
            count_conflicts=dals(
                """
                Prefer goals that took part in more conflicts earlier in the same search.
                """
            ),
            defer_setup_goals="Process the goals of setup and build-tool dependencies last.",
            base_packages="Packages whose goals are always processed before any other.",
            single_instance_packages=dals(
                """
                Packages that must resolve to the same instance wherever they occur, including
                in setup and build-tool qualifiers.
                """
            ),
            prefer_linked="Try linking a package to an existing instance before its versions.",
            prefer_installed="Try installed instances before source versions of equal rank.",
            version_preference="Try the 'latest' or the 'oldest' versions first.",
            package_version_preference="Per-package override of version_preference.",
            preferred_versions=dals(
                """
                A map of package name to a version range whose versions are tried before
                any other version of that package.
                """
            ),
            allow_new_versions=dals(
                """
                When false, a package that has an installed instance may only resolve to an
                installed instance.
                """
            ),
            max_steps="Maximum number of search nodes to visit. Unlimited when null.",
            max_backjumps="Maximum number of backjumps. Unlimited when null.",
            solver_timeout="Wall-clock limit for one solve, in seconds. Unlimited when null.",
            solver_workers="Number of threads used to solve independent goal groups.",
            max_log_events="Keep only this many of the most recent search log events.",
            show_progress="Show a progress bar while solving independent goal groups.",
            verbosity=dals(
                """
                Sets output log level. 0 is warn. 1 is warn with a search summary. 2 is info.
                3 is debug. 4 is trace.
                """
            ),
        )


def reset_context(
    search_path: Iterable[str] = SEARCH_PATH,
    overrides: Mapping | None = None,
) -> Context:
    global context
    context.__init__(search_path, overrides)
    context.__dict__.pop("description_map", None)
    return context


@contextmanager
def fresh_context(
    env: dict[str, str] | None = None,
    search_path: Iterable[str] = SEARCH_PATH,
    overrides: Mapping | None = None,
) -> Iterator[Context]:
    if env:
        old_env = os.environ.copy()
        os.environ.update(env)
    try:
        yield reset_context(search_path=search_path, overrides=overrides)
    finally:
        if env:
            os.environ.clear()
            os.environ.update(old_env)
        reset_context()


context = Context()
