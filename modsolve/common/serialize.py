# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""YAML and JSON serialization and deserialization functions."""

import functools
import json
from enum import Enum
from logging import getLogger

import ruamel.yaml as yaml
from frozendict import frozendict

log = getLogger(__name__)


@functools.lru_cache(maxsize=None)
def _yaml_round_trip():
    parser = yaml.YAML(typ="rt")
    parser.indent(mapping=2, offset=2, sequence=4)
    return parser


def yaml_round_trip_load(string):
    return _yaml_round_trip().load(string)


class EntityEncoder(json.JSONEncoder):
    def default(self, obj):
        if hasattr(obj, "dump"):
            return obj.dump()
        elif hasattr(obj, "__json__"):
            return obj.__json__()
        elif isinstance(obj, frozendict):
            return dict(obj)
        elif isinstance(obj, (set, frozenset)):
            return sorted(obj, key=str)
        elif isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


def json_dump(object):
    return json.dumps(object, indent=2, sort_keys=True, separators=(",", ": "), cls=EntityEncoder)
