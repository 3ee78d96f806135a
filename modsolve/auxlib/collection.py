# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Common collection helpers."""


def first(seq, key=bool, default=None, apply=lambda x: x):
    """Give the first value that satisfies the key test.

    Args:
        seq (iterable):
        key (callable): test for each element of iterable
        default: returned when all elements fail test
        apply (callable): applied to element before return, but not to default value

    Returns: first element in seq that passes key, mutated with optional apply

    Examples:
        >>> first([0, False, None, [], (), 42])
        42
        >>> first([1, 1, 3, 4, 5], key=lambda x: x % 2 == 0)
        4
    """
    return next((apply(x) for x in seq if key(x)), default() if callable(default) else default)


def last(seq, key=bool, default=None, apply=lambda x: x):
    return next((apply(x) for x in reversed(seq) if key(x)), default)
