# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Version ordering and version range expressions.

A :class:`VersionOrder` is a parsed version string with a total order; a
:class:`VersionSpec` is a range expression over versions, used both for the
version bounds packages declare on their dependencies and for the ranges users
pin or prefer.
"""

from __future__ import annotations

import operator as op
import re
from itertools import zip_longest
from logging import getLogger

from ..exceptions import InvalidVersionSpec

log = getLogger(__name__)

version_check_re = re.compile(r"^[\*\.\+!_0-9a-z]+$")
version_split_re = re.compile("([0-9]+|[*]+|[^0-9*]+)")


class SingleStrArgCachingType(type):
    def __call__(cls, arg):
        if isinstance(arg, cls):
            return arg
        elif isinstance(arg, str):
            try:
                return cls._cache_[arg]
            except KeyError:
                val = cls._cache_[arg] = super().__call__(arg)
                return val
        else:
            return super().__call__(arg)


class VersionOrder(metaclass=SingleStrArgCachingType):
    """Implement an order relation between version strings.

    Version strings are split into an optional integer epoch (``1!``), the
    dotted release components, and an optional local part after ``+``. Each
    component is split into runs of digits and letters; digits compare
    numerically, letters case-insensitively, and letters sort before digits so
    ``1.0a1 < 1.0``. ``dev`` sorts below everything and ``post`` above
    everything in the same position. Missing components count as ``0``, so
    ``1.1 == 1.1.0``.

    Examples:
        >>> VersionOrder("1.10") > VersionOrder("1.9")
        True
        >>> VersionOrder("2.0rc1") < VersionOrder("2.0")
        True
        >>> VersionOrder("1.1") == VersionOrder("1.1.0")
        True
    """

    _cache_ = {}

    def __init__(self, vstr):
        # version comparison is case-insensitive
        version = vstr.strip().lower()
        if version == "":
            raise InvalidVersionSpec(vstr, "empty version string")
        invalid = not version_check_re.match(version)
        if invalid and "-" in version and "_" not in version:
            version = version.replace("-", "_")
            invalid = not version_check_re.match(version)
        if invalid:
            raise InvalidVersionSpec(vstr, "invalid character(s)")

        self.norm_version = version
        self.fillvalue = 0

        version = version.split("!")
        if len(version) == 1:
            epoch = ["0"]
        elif len(version) == 2:
            if not version[0].isdigit():
                raise InvalidVersionSpec(vstr, "epoch must be an integer")
            epoch = [version[0]]
        else:
            raise InvalidVersionSpec(vstr, "duplicated epoch separator '!'")

        version = version[-1].split("+")
        if len(version) == 1:
            self.local = []
        elif len(version) == 2:
            self.local = version[1].replace("_", ".").split(".")
        else:
            raise InvalidVersionSpec(vstr, "duplicated local version separator '+'")
        if version[0] == "":
            raise InvalidVersionSpec(
                vstr, "missing version before local version separator '+'"
            )
        self.version = epoch + version[0].replace("_", ".").split(".")

        for v in (self.version, self.local):
            for k in range(len(v)):
                c = version_split_re.findall(v[k])
                if not c:
                    raise InvalidVersionSpec(vstr, "empty version component")
                for j in range(len(c)):
                    if c[j].isdigit():
                        c[j] = int(c[j])
                    elif c[j] == "post":
                        c[j] = float("inf")
                    elif c[j] == "dev":
                        # upper-cased so it sorts below every other (lower case) string
                        c[j] = "DEV"
                if v[k][0].isdigit():
                    v[k] = c
                else:
                    # keep numbers and strings in phase: '1.1.a1' == '1.1.0a1'
                    v[k] = [self.fillvalue] + c

    def __str__(self):
        return self.norm_version

    def __repr__(self):
        return f'{self.__class__.__name__}("{self}")'

    def __json__(self):
        return self.norm_version

    def _eq(self, t1, t2):
        for v1, v2 in zip_longest(t1, t2, fillvalue=[]):
            for c1, c2 in zip_longest(v1, v2, fillvalue=self.fillvalue):
                if c1 != c2:
                    return False
        return True

    def __eq__(self, other):
        if not isinstance(other, VersionOrder):
            return NotImplemented
        return self._eq(self.version, other.version) and self._eq(
            self.local, other.local
        )

    def __hash__(self):
        # trailing zero components do not change equality, so they must not change the hash
        def strip(parts):
            parts = [tuple(p) for p in parts]
            while parts and all(c == self.fillvalue for c in parts[-1]):
                parts.pop()
            return tuple(parts)

        return hash((strip(self.version), strip(self.local)))

    def startswith(self, other):
        # Tests if the version lists match up to the last element in "other".
        if other.local:
            if not self._eq(self.version, other.version):
                return False
            t1 = self.local
            t2 = other.local
        else:
            t1 = self.version
            t2 = other.version
        nt = len(t2) - 1
        if not self._eq(t1[:nt], t2[:nt]):
            return False
        v1 = [] if len(t1) <= nt else t1[nt]
        v2 = t2[nt]
        nt = len(v2) - 1
        if not self._eq([v1[:nt]], [v2[:nt]]):
            return False
        c1 = self.fillvalue if len(v1) <= nt else v1[nt]
        c2 = v2[nt]
        if isinstance(c2, str):
            return isinstance(c1, str) and c1.startswith(c2)
        return c1 == c2

    def __lt__(self, other):
        for t1, t2 in zip([self.version, self.local], [other.version, other.local]):
            for v1, v2 in zip_longest(t1, t2, fillvalue=[]):
                for c1, c2 in zip_longest(v1, v2, fillvalue=self.fillvalue):
                    if c1 == c2:
                        continue
                    elif isinstance(c1, str):
                        if not isinstance(c2, str):
                            # str < int
                            return True
                    elif isinstance(c2, str):
                        return False
                    return c1 < c2
        return False

    def __gt__(self, other):
        return other < self

    def __le__(self, other):
        return not (other < self)

    def __ge__(self, other):
        return not (self < other)


# each token slurps up leading whitespace, which we strip out.
VSPEC_TOKENS = (
    r"\s*[()|,]|"  # parentheses, logical and, logical or
    r"[^()|,]+"
)  # everything else


def treeify(spec_str):
    """Convert a range expression into a tuple-based expression tree.

    Examples:
        >>> treeify("1.2.3")
        '1.2.3'
        >>> treeify("1.2.3,>4.5.6")
        (',', '1.2.3', '>4.5.6')
        >>> treeify("(1.2.3|4.5.6),<=7.8.9")
        (',', ('|', '1.2.3', '4.5.6'), '<=7.8.9')
    """
    tokens = re.findall(VSPEC_TOKENS, "(%s)" % spec_str)
    output = []
    stack = []

    def apply_ops(cstop):
        # cstop: operators with lower precedence
        while stack and stack[-1] not in cstop:
            if len(output) < 2:
                raise InvalidVersionSpec(spec_str, "cannot join single expression")
            c = stack.pop()
            r = output.pop()
            # fuse ('|', ('|', a, b), c) into ('|', a, b, c); a bare string's first
            # character can never equal an operator so the check is safe
            r = r[1:] if r[0] == c else (r,)
            left = output.pop()
            left = left[1:] if left[0] == c else (left,)
            output.append((c,) + left + r)

    for item in tokens:
        item = item.strip()
        if item == "|":
            apply_ops("(")
            stack.append("|")
        elif item == ",":
            apply_ops("|(")
            stack.append(",")
        elif item == "(":
            stack.append("(")
        elif item == ")":
            apply_ops("(")
            if not stack or stack[-1] != "(":
                raise InvalidVersionSpec(spec_str, "expression must start with '('")
            stack.pop()
        elif item:
            output.append(item)
    if stack:
        raise InvalidVersionSpec(
            spec_str, "unable to convert to expression tree: %s" % stack
        )
    if not output:
        raise InvalidVersionSpec(spec_str, "unable to determine version from spec")
    return output[0]


def untreeify(spec, _inand=False, depth=0):
    """
    Examples:
        >>> untreeify((',', '1.2.3', '>4.5.6'))
        '1.2.3,>4.5.6'
        >>> untreeify(('|', (',', '1.2.3', '4.5.6'), '<=7.8.9'))
        '(1.2.3,4.5.6)|<=7.8.9'
    """
    if isinstance(spec, tuple):
        if spec[0] == "|":
            res = "|".join(map(lambda x: untreeify(x, depth=depth + 1), spec[1:]))
            if _inand or depth > 0:
                res = "(%s)" % res
        else:
            res = ",".join(
                map(lambda x: untreeify(x, _inand=True, depth=depth + 1), spec[1:])
            )
            if depth > 0:
                res = "(%s)" % res
        return res
    return spec


def compatible_release_operator(x, y):
    return op.__ge__(x, y) and x.startswith(
        VersionOrder(".".join(str(y).split(".")[:-1]))
    )


# This RE matches the operators '==', '!=', '<=', '>=', '<', '>', '^>=', '~='
# followed by a version string. It rejects expressions like
# '<= 1.2' (space after operator), '<>1.2' (unknown operator).
version_relation_re = re.compile(r"^(==|!=|<=|>=|<|>|~=|\^>=)(?![=<>!~])(\S+)$")


def major_bound_operator(x, y):
    # ^>=1.2.3 means >=1.2.3 and <1.3 (the first two components are the major version)
    upper = str(y).split(".")[:2]
    if len(upper) < 2:
        upper.append("0")
    upper[-1] = str(int(upper[-1]) + 1) if upper[-1].isdigit() else upper[-1]
    return op.__ge__(x, y) and x < VersionOrder(".".join(upper))


OPERATOR_MAP = {
    "==": op.__eq__,
    "!=": op.__ne__,
    "<=": op.__le__,
    ">=": op.__ge__,
    "<": op.__lt__,
    ">": op.__gt__,
    "~=": compatible_release_operator,
    "^>=": major_bound_operator,
    "!=startswith": lambda x, y: not x.startswith(y),
}
OPERATOR_START = frozenset(("=", "<", ">", "!", "~", "^"))


class VersionSpec(metaclass=SingleStrArgCachingType):
    """A range of versions.

    Examples:
        >>> VersionSpec(">=1.2,<2").match("1.5")
        True
        >>> VersionSpec("1.*").match("2.0")
        False
        >>> VersionSpec("1.0|>=3").match("3.1")
        True
    """

    _cache_ = {}

    def __init__(self, vspec):
        self.spec_str, self.match, self._is_exact = self.get_matcher(vspec)

    @classmethod
    def any(cls):
        return cls("*")

    @property
    def spec(self):
        return self.spec_str

    def is_exact(self):
        return self._is_exact

    def is_any(self):
        return self.spec_str == "*"

    def __eq__(self, other):
        try:
            other_spec = other.spec
        except AttributeError:
            other_spec = self.__class__(other).spec
        return self.spec == other_spec

    def __hash__(self):
        return hash(self.spec)

    def __str__(self):
        return self.spec

    def __repr__(self):
        return f"{self.__class__.__name__}('{self.spec}')"

    def __json__(self):
        return self.spec

    def operator_match(self, vstr):
        return self.operator_func(VersionOrder(str(vstr)), self.matcher_vo)

    def any_match(self, vstr):
        return any(s.match(vstr) for s in self.tup)

    def all_match(self, vstr):
        return all(s.match(vstr) for s in self.tup)

    def always_true_match(self, vstr):
        return True

    def regex_match(self, vstr):
        return bool(self.regex.match(str(vstr)))

    def get_matcher(self, vspec):
        if isinstance(vspec, str) and re.match(r".*[()|,]", vspec):
            vspec = treeify(vspec)

        if isinstance(vspec, tuple):
            _matcher = self.any_match if vspec[0] == "|" else self.all_match
            tup = tuple(VersionSpec(s) for s in vspec[1:])
            vspec_str = untreeify((vspec[0],) + tuple(t.spec for t in tup))
            self.tup = tup
            return vspec_str, _matcher, False

        vspec_str = str(vspec).strip()
        if not vspec_str:
            raise InvalidVersionSpec(vspec, "empty version range")
        if vspec_str[0] in OPERATOR_START:
            m = version_relation_re.match(vspec_str)
            if m is None:
                raise InvalidVersionSpec(vspec_str, "invalid operator")
            operator_str, vo_str = m.groups()
            if vo_str[-2:] == ".*":
                if operator_str == "==":
                    operator_str, vo_str = "startswith", vo_str[:-2]
                elif operator_str == "!=":
                    operator_str, vo_str = "!=startswith", vo_str[:-2]
                else:
                    raise InvalidVersionSpec(vspec_str, "invalid operator with '.*'")
            if operator_str == "startswith":
                self.operator_func = VersionOrder.startswith
            else:
                self.operator_func = OPERATOR_MAP[operator_str]
            self.matcher_vo = VersionOrder(vo_str)
            return vspec_str, self.operator_match, operator_str == "=="
        elif vspec_str == "*":
            return vspec_str, self.always_true_match, False
        elif "*" in vspec_str.rstrip("*"):
            rx = vspec_str.replace(".", r"\.").replace("+", r"\+").replace("*", r".*")
            self.regex = re.compile(r"^(?:%s)$" % rx)
            return vspec_str, self.regex_match, False
        elif vspec_str[-1] == "*":
            if vspec_str[-2:] != ".*":
                vspec_str = vspec_str[:-1] + ".*"
            self.operator_func = VersionOrder.startswith
            self.matcher_vo = VersionOrder(vspec_str.rstrip("*").rstrip("."))
            return vspec_str, self.operator_match, False
        else:
            self.operator_func = OPERATOR_MAP["=="]
            self.matcher_vo = VersionOrder(vspec_str)
            return "==" + vspec_str, self.operator_match, True

    def merge(self, other):
        """The intersection of two ranges, as a new range."""
        other = VersionSpec(other)
        if self.is_any():
            return other
        if other.is_any() or other == self:
            return self
        return self.__class__(",".join("(%s)" % s for s in sorted((self.spec, other.spec))))

    def union(self, other):
        other = VersionSpec(other)
        if self.is_any() or other.is_any():
            return self.any()
        return self.__class__("|".join("(%s)" % s for s in sorted({self.spec, other.spec})))
