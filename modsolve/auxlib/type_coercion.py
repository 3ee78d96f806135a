# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Coerce configuration strings into typed python values."""

from enum import Enum
from logging import getLogger

from ..common.compat import isiterable
from .exceptions import TypeCoercionError

log = getLogger(__name__)

BOOLISH_TRUE = ("true", "yes", "on", "y")
BOOLISH_FALSE = ("false", "off", "n", "no", "non", "none", "")
NULL_STRINGS = ("none", "~", "null", "\0")


def boolify(value, nullable=False):
    """Convert a number, string, or sequence type into a pure boolean.

    Examples:
        >>> boolify('true')
        True
        >>> boolify('no')
        False
        >>> boolify(None, nullable=True) is None
        True
    """
    if isinstance(value, bool):
        return value
    if nullable and value is None:
        return None
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in BOOLISH_TRUE:
            return True
        if lowered in BOOLISH_FALSE:
            return False
        if nullable and lowered in NULL_STRINGS:
            return None
        try:
            return bool(float(lowered))
        except ValueError:
            pass
    raise TypeCoercionError(value, "The value %r cannot be boolified." % (value,))


def numberify(value):
    """Convert a string into an int, then a float, raising if neither works."""
    if isinstance(value, bool):
        raise TypeCoercionError(value, "Boolean %r is not a number" % (value,))
    if isinstance(value, (int, float)):
        return value
    candidate = value.strip()
    try:
        return int(candidate)
    except ValueError:
        pass
    try:
        return float(candidate)
    except ValueError:
        raise TypeCoercionError(value, "Cannot convert %r to a number" % (value,))


def typify(value, type_hint=None):
    """Take a primitive value, usually a string, and try to make a more relevant type out of it.

    An optional type_hint will try to coerce the value to that type.

    Examples:
        >>> typify('32')
        32
        >>> typify('32', float)
        32.0
        >>> typify('true')
        True
        >>> typify('none') is None
        True
    """
    if isinstance(value, str):
        value = value.strip()
    elif type_hint is None:
        # non-string values pass through untouched when there is nothing to coerce to
        return value

    if isiterable(type_hint):
        # a tuple of types; None means nullable
        type_hint = set(type_hint)
        if not (type_hint - {str, type(None)}):
            if value is None or (isinstance(value, str) and value.lower() in NULL_STRINGS):
                return None
            return str(value)
        if not (type_hint - {bool, type(None)}):
            return boolify(value, nullable=True)
        if not (type_hint - {int, float, type(None)}):
            if value is None or (isinstance(value, str) and value.lower() in NULL_STRINGS):
                return None
            return numberify(value)
        raise NotImplementedError("typify with type_hint %r" % (type_hint,))

    if type_hint is not None:
        if isinstance(value, type_hint) and not (type_hint is int and isinstance(value, bool)):
            return value
        if issubclass(type_hint, Enum):
            try:
                return type_hint(value)
            except ValueError as e:
                raise TypeCoercionError(value, str(e))
        if type_hint is bool:
            return boolify(value)
        if type_hint in (int, float):
            try:
                return type_hint(numberify(value))
            except (TypeError, AttributeError):
                raise TypeCoercionError(
                    value, "Cannot convert %r to %s" % (value, type_hint.__name__)
                )
        if type_hint is str:
            return str(value)
        try:
            return type_hint(value)
        except (TypeError, ValueError) as e:
            raise TypeCoercionError(value, str(e))

    # no type hint: guess
    lowered = value.lower()
    if lowered in BOOLISH_TRUE[:3]:
        return True
    if lowered in ("false", "off", "no"):
        return False
    if lowered in NULL_STRINGS:
        return None
    try:
        return numberify(value)
    except TypeCoercionError:
        return value
