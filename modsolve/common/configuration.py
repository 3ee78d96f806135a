# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""
A generalized application configuration utility.

Features include:
  - lazy eval
  - merges configuration files, environment variables and explicit overrides
  - parameter type validation, with custom validation
  - parameter aliases

Sources are merged in search-path order; later sources win unless an earlier
key is marked ``#!final`` in its yaml file.
"""

from __future__ import annotations

from abc import ABCMeta, abstractmethod
from collections.abc import Mapping
from enum import Enum
from itertools import chain
from logging import getLogger
from os import environ, scandir, stat
from os.path import abspath, basename, expanduser, expandvars
from stat import S_IFDIR, S_IFMT, S_IFREG

from boltons.setutils import IndexedSet
from frozendict import frozendict
from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml.reader import ReaderError
from ruamel.yaml.scanner import ScannerError

from .. import ModsolveError, ModsolveMultiError
from ..auxlib.collection import first, last
from ..auxlib.exceptions import ThisShouldNeverHappenError, TypeCoercionError
from ..auxlib.type_coercion import typify
from .compat import isiterable, primitive_types
from .constants import EMPTY_MAP
from .iterators import unique
from .serialize import yaml_round_trip_load

log = getLogger(__name__)


def pretty_list(iterable, padding="  "):
    if not isiterable(iterable):
        iterable = [iterable]
    return "\n".join(f"{padding}- {item}" for item in iterable)


def expand(path):
    return abspath(expanduser(expandvars(path)))


class ConfigurationError(ModsolveError):
    pass


class ConfigurationLoadError(ConfigurationError):
    def __init__(self, path, message_addition="", **kwargs):
        message = "Unable to load configuration file.\n  path: %(path)s\n"
        super().__init__(message + message_addition, path=path, **kwargs)


class ValidationError(ConfigurationError):
    def __init__(self, parameter_name, parameter_value, source, msg=None, **kwargs):
        self.parameter_name = parameter_name
        self.parameter_value = parameter_value
        self.source = source
        if msg is None:
            msg = "Parameter %s = %r declared in %s is invalid." % (
                parameter_name,
                parameter_value,
                source,
            )
        super().__init__(msg.replace("%", "%%"), **kwargs)


class MultipleKeysError(ValidationError):
    def __init__(self, source, keys, preferred_key):
        self.keys = keys
        msg = "Multiple aliased keys in file %s:\n%s\nMust declare only one. Prefer '%s'" % (
            source,
            pretty_list(sorted(keys)),
            preferred_key,
        )
        super().__init__(preferred_key, None, source, msg=msg)


class InvalidTypeError(ValidationError):
    def __init__(self, parameter_name, parameter_value, source, wrong_type, valid_types, msg=None):
        self.wrong_type = wrong_type
        self.valid_types = valid_types
        if msg is None:
            msg = "Parameter %s = %r declared in %s has type %s.\nValid types:\n%s" % (
                parameter_name,
                parameter_value,
                source,
                wrong_type,
                pretty_list(valid_types),
            )
        super().__init__(parameter_name, parameter_value, source, msg=msg)


class CustomValidationError(ValidationError):
    def __init__(self, parameter_name, parameter_value, source, custom_message):
        msg = "Parameter %s = %r declared in %s is invalid.\n%s" % (
            parameter_name,
            parameter_value,
            source,
            custom_message,
        )
        super().__init__(parameter_name, parameter_value, source, msg=msg)


class MultiValidationError(ModsolveMultiError, ConfigurationError):
    def __init__(self, errors, *args, **kwargs):
        super().__init__(errors, *args, **kwargs)


def raise_errors(errors):
    if not errors:
        return True
    elif len(errors) == 1:
        raise errors[0]
    else:
        raise MultiValidationError(errors)


class ParameterFlag(Enum):
    final = "final"

    def __str__(self):
        return "%s" % self.value

    @classmethod
    def from_string(cls, string):
        try:
            return cls(string.strip("!# "))
        except (ValueError, AttributeError):
            return None


class RawParameter(metaclass=ABCMeta):
    def __init__(self, source, key, raw_value):
        self.source = source
        self.key = key
        self._raw_value = raw_value

    def __repr__(self):
        return str(vars(self))

    @abstractmethod
    def value(self, parameter_obj):
        raise NotImplementedError()

    def keyflag(self):
        return None

    @classmethod
    def make_raw_parameters(cls, source, from_map):
        if from_map:
            return {key: cls(source, key, from_map[key]) for key in from_map}
        return EMPTY_MAP


class EnvRawParameter(RawParameter):
    source = "envvars"

    def value(self, parameter_obj):
        # environment variables only carry flat primitive or sequence values
        if hasattr(parameter_obj, "string_delimiter"):
            string_delimiter = parameter_obj.string_delimiter
            return tuple(
                EnvRawParameter(EnvRawParameter.source, self.key, v)
                for v in (vv.strip() for vv in self._raw_value.split(string_delimiter))
                if v
            )
        else:
            return self._important_split_value[0].strip()

    def keyflag(self):
        return ParameterFlag.final if len(self._important_split_value) >= 2 else None

    @property
    def _important_split_value(self):
        return self._raw_value.split("!important")

    @classmethod
    def make_raw_parameters(cls, appname):
        keystart = f"{appname.upper()}_"
        raw_env = {
            k.replace(keystart, "", 1).lower(): v
            for k, v in environ.items()
            if k.startswith(keystart)
        }
        return super().make_raw_parameters(EnvRawParameter.source, raw_env)


class OverrideRawParameter(RawParameter):
    """Values passed directly to the configuration, e.g. by an embedding application."""

    source = "overrides"

    def value(self, parameter_obj):
        if isinstance(self._raw_value, Mapping):
            return frozendict(
                (k, OverrideRawParameter(self.source, self.key, v))
                for k, v in self._raw_value.items()
            )
        if isiterable(self._raw_value):
            return tuple(OverrideRawParameter(self.source, self.key, v) for v in self._raw_value)
        return self._raw_value

    @classmethod
    def make_raw_parameters(cls, overrides):
        return super().make_raw_parameters(OverrideRawParameter.source, overrides)


class YamlRawParameter(RawParameter):
    # this class should encapsulate all direct use of ruamel.yaml in this module

    def __init__(self, source, key, raw_value, key_comment):
        self._key_comment = key_comment
        super().__init__(source, key, raw_value)

        if isinstance(self._raw_value, CommentedSeq):
            self._value = tuple(
                YamlRawParameter(self.source, self.key, item, None) for item in self._raw_value
            )
        elif isinstance(self._raw_value, CommentedMap):
            self._value = frozendict(
                (k, YamlRawParameter(self.source, self.key, v, None))
                for k, v in self._raw_value.items()
            )
        elif isinstance(self._raw_value, primitive_types):
            self._value = self._raw_value
        else:
            raise ThisShouldNeverHappenError()  # pragma: no cover

    def value(self, parameter_obj):
        return self._value

    def keyflag(self):
        return ParameterFlag.from_string(self._key_comment)

    @staticmethod
    def _get_yaml_key_comment(commented_dict, key):
        try:
            return commented_dict.ca.items[key][2].value.strip()
        except (AttributeError, KeyError, TypeError):
            return None

    @classmethod
    def make_raw_parameters(cls, source, from_map):
        if from_map:
            return {
                key: cls(source, key, from_map[key], cls._get_yaml_key_comment(from_map, key))
                for key in from_map
            }
        return EMPTY_MAP

    @classmethod
    def make_raw_parameters_from_file(cls, filepath):
        with open(filepath) as fh:
            try:
                yaml_obj = yaml_round_trip_load(fh)
            except ScannerError as err:
                mark = err.problem_mark
                raise ConfigurationLoadError(
                    filepath,
                    "  reason: invalid yaml at line %(line)s, column %(column)s",
                    line=mark.line,
                    column=mark.column,
                )
            except ReaderError as err:
                raise ConfigurationLoadError(
                    filepath,
                    "  reason: invalid yaml at position %(position)s",
                    position=err.position,
                )
            if yaml_obj is not None and not isinstance(yaml_obj, Mapping):
                raise ConfigurationLoadError(
                    filepath, "  reason: top level of the file must be a mapping"
                )
            return cls.make_raw_parameters(filepath, yaml_obj) or EMPTY_MAP


class DefaultValueRawParameter(RawParameter):
    """Wraps a default value as a RawParameter, for usage in ParameterLoader."""

    def __init__(self, source, key, raw_value):
        super().__init__(source, key, raw_value)

        if isinstance(self._raw_value, Mapping):
            self._value = frozendict(
                (k, DefaultValueRawParameter(self.source, self.key, v))
                for k, v in self._raw_value.items()
            )
        elif isiterable(self._raw_value):
            self._value = tuple(
                DefaultValueRawParameter(self.source, self.key, v) for v in self._raw_value
            )
        elif isinstance(self._raw_value, primitive_types):
            self._value = self._raw_value
        else:
            raise ThisShouldNeverHappenError()  # pragma: no cover

    def value(self, parameter_obj):
        return self._value


def load_file_configs(search_path):
    # returns an ordered map of filepath and dict of raw parameter objects

    def _file_loader(fullpath):
        assert fullpath.endswith((".yml", ".yaml")) or "modsolverc" in basename(fullpath), fullpath
        yield fullpath, YamlRawParameter.make_raw_parameters_from_file(fullpath)

    def _dir_loader(fullpath):
        for filepath in sorted(
            p
            for p in (entry.path for entry in scandir(fullpath))
            if p[-4:] == ".yml" or p[-5:] == ".yaml"
        ):
            yield filepath, YamlRawParameter.make_raw_parameters_from_file(filepath)

    _loader = {
        S_IFREG: _file_loader,
        S_IFDIR: _dir_loader,
    }

    def _get_st_mode(path):
        # stat the path for file type, or None if path doesn't exist
        try:
            return S_IFMT(stat(path).st_mode)
        except OSError:
            return None

    expanded_paths = tuple(expand(path) for path in search_path)
    stat_paths = (_get_st_mode(path) for path in expanded_paths)
    load_paths = (
        _loader[st_mode](path)
        for path, st_mode in zip(expanded_paths, stat_paths)
        if st_mode in _loader
    )
    return dict(chain.from_iterable(load_paths))


class LoadedParameter(metaclass=ABCMeta):
    # (type) describes the type of parameter
    _type = None
    # (Parameter or type) element held by a collection, or the primitive type held
    _element_type = None

    def __init__(self, name, value, key_flag, validation=None):
        """
        Represents a Parameter that has been loaded with configuration value.

        Args:
            name (str): name of the loaded parameter
            value (LoadedParameter or primitive): the value of the loaded parameter
            key_flag (ParameterFlag or None): priority flag for the parameter itself
            validation (callable): Given a parameter value as input, return a boolean indicating
                validity, or alternately return a string describing an invalid value.
        """
        self._name = name
        self.value = value
        self.key_flag = key_flag
        self._validation = validation

    def __eq__(self, other):
        if type(other) is type(self):
            return self.value == other.value
        return False

    def __hash__(self):
        return hash(self.value)

    def collect_errors(self, instance, typed_value, source="<<merged>>"):
        errors = []
        if not isinstance(typed_value, self._type):
            errors.append(
                InvalidTypeError(self._name, typed_value, source, type(self.value), self._type)
            )
        elif self._validation is not None:
            result = self._validation(typed_value)
            if result is False:
                errors.append(ValidationError(self._name, typed_value, source))
            elif isinstance(result, str):
                errors.append(CustomValidationError(self._name, typed_value, source, result))
        return errors

    @abstractmethod
    def merge(self, matches):
        """
        Recursively merges matches into one LoadedParameter.

        Args:
            matches (List<LoadedParameter>): list of matches of this parameter.

        Returns: LoadedParameter
        """
        raise NotImplementedError()

    def typify(self, source):
        """Recursively types a LoadedParameter."""
        value = self.value
        if isinstance(value, Mapping):
            return frozendict((k, v.typify(source)) for k, v in value.items())
        if isiterable(value):
            return tuple(v.typify(source) for v in value)
        element_type = self._element_type
        try:
            if isinstance(value, str) and element_type is str:
                # preserve surrounding whitespace of plain strings
                return value
            return typify(value, element_type)
        except TypeCoercionError as e:
            msg = str(e)
            if isinstance(element_type, type) and issubclass(element_type, Enum):
                choices = ", ".join(map("'{}'".format, element_type.__members__.values()))
                msg += f"\nValid choices for {self._name}: {choices}"
            raise CustomValidationError(self._name, e.value, source, msg)

    @staticmethod
    def _first_important_matches(matches):
        idx = first(
            enumerate(matches),
            lambda x: x[1].key_flag is ParameterFlag.final,
            apply=lambda x: x[0],
        )
        return matches if idx is None else matches[: idx + 1]


class PrimitiveLoadedParameter(LoadedParameter):
    """LoadedParameter type that holds a single python primitive value."""

    def __init__(self, name, element_type, value, key_flag, validation=None):
        self._type = element_type
        self._element_type = element_type
        super().__init__(name, value, key_flag, validation)

    def merge(self, matches):
        important_match = first(
            matches, lambda x: x.key_flag is ParameterFlag.final, default=None
        )
        if important_match is not None:
            return important_match

        last_match = last(matches, lambda x: x is not None, default=None)
        if last_match is not None:
            return last_match
        raise ThisShouldNeverHappenError()  # pragma: no cover


class MapLoadedParameter(LoadedParameter):
    """LoadedParameter type that holds a map (i.e. dict) of LoadedParameters."""

    _type = frozendict

    def __init__(self, name, value, element_type, key_flag, validation=None):
        self._element_type = element_type
        super().__init__(name, value, key_flag, validation)

    def collect_errors(self, instance, typed_value, source="<<merged>>"):
        errors = super().collect_errors(instance, typed_value, source)
        if isinstance(self.value, Mapping):
            for key, value in self.value.items():
                errors.extend(value.collect_errors(instance, typed_value[key], source))
        return errors

    def merge(self, parameters):
        parameters = LoadedParameter._first_important_matches(parameters)

        # values of the same key merge recursively; later sources take precedence
        grouped_map = {}
        for parameter in parameters:
            for key, value in parameter.value.items():
                grouped_map.setdefault(key, []).append(value)
        merged_value = frozendict(
            (key, values[0].merge(values)) for key, values in grouped_map.items()
        )
        return MapLoadedParameter(
            self._name,
            merged_value,
            self._element_type,
            self.key_flag,
            validation=self._validation,
        )


class SequenceLoadedParameter(LoadedParameter):
    """LoadedParameter type that holds a sequence (i.e. list) of LoadedParameters."""

    _type = tuple

    def __init__(self, name, value, element_type, key_flag, validation=None):
        self._element_type = element_type
        super().__init__(name, value, key_flag, validation)

    def collect_errors(self, instance, typed_value, source="<<merged>>"):
        errors = super().collect_errors(instance, typed_value, source)
        for idx, element in enumerate(self.value):
            errors.extend(element.collect_errors(instance, typed_value[idx], source))
        return errors

    def merge(self, matches):
        relevant = LoadedParameter._first_important_matches(matches)
        # elements closer to the end of the search path come first
        merged_values = tuple(unique(chain.from_iterable(m.value for m in reversed(relevant))))
        return SequenceLoadedParameter(
            self._name,
            merged_values,
            self._element_type,
            self.key_flag,
            validation=self._validation,
        )


class Parameter(metaclass=ABCMeta):
    _type = None
    _element_type = None

    def __init__(self, default, validation=None):
        """
        The Parameter class represents an unloaded configuration parameter, holding type, default
        and validation information until the parameter is loaded with a configuration.

        Args:
            default (Any): the typed, python representation default value given if the Parameter
                is not found in a Configuration.
            validation (callable): Given a parameter value as input, return a boolean indicating
                validity, or alternately return a string describing an invalid value.
        """
        self._default = default
        self._validation = validation

    @property
    def default(self):
        """Returns a DefaultValueRawParameter that wraps the actual default value."""
        wrapped_default = DefaultValueRawParameter("default", "default", self._default)
        return self.load("default", wrapped_default)

    def get_all_matches(self, name, names, instance):
        """Finds all matches of a Parameter in a Configuration instance."""
        matches = []
        multikey_exceptions = []
        for raw_parameters in instance.raw_data.values():
            match, error = ParameterLoader.raw_parameters_from_single_source(
                name, names, raw_parameters
            )
            if match is not None:
                matches.append(match)
            if error:
                multikey_exceptions.append(error)
        return matches, multikey_exceptions

    @abstractmethod
    def load(self, name, match):
        """Loads a Parameter with the value in a RawParameter."""
        raise NotImplementedError()


class PrimitiveParameter(Parameter):
    """
    Parameter type for a Configuration class that holds a single python primitive value.

    The python primitive types are str, int, float, complex, bool, and NoneType.
    """

    def __init__(self, default, element_type=None, validation=None):
        """
        Args:
            default (primitive value): default value if the Parameter is not found.
            element_type (type or tuple[type]): Type-validation of parameter's value. If None,
                type(default) is used.
        """
        self._type = type(default) if element_type is None else element_type
        self._element_type = self._type
        super().__init__(default, validation)

    def load(self, name, match):
        return PrimitiveLoadedParameter(
            name,
            self._type,
            match.value(self._element_type),
            match.keyflag(),
            validation=self._validation,
        )


class MapParameter(Parameter):
    """Parameter type for a Configuration class that holds a map (i.e. dict) of Parameters."""

    _type = frozendict

    def __init__(self, element_type, default=frozendict(), validation=None):
        self._element_type = element_type
        default = default and frozendict(default) or frozendict()
        super().__init__(default, validation=validation)

    def get_all_matches(self, name, names, instance):
        # settings like `package_flags: ~` count as unset
        matches, exceptions = super().get_all_matches(name, names, instance)
        matches = tuple(m for m in matches if m._raw_value is not None)
        return matches, exceptions

    def load(self, name, match):
        value = match.value(self._element_type)
        if value is None:
            return MapLoadedParameter(
                name, frozendict(), self._element_type, match.keyflag(), validation=self._validation
            )

        if not isinstance(value, Mapping):
            raise InvalidTypeError(
                name, value, match.source, value.__class__.__name__, self._type.__name__
            )

        loaded_map = {
            key: self._element_type.load(name, child_value) for key, child_value in value.items()
        }
        return MapLoadedParameter(
            name,
            frozendict(loaded_map),
            self._element_type,
            match.keyflag(),
            validation=self._validation,
        )


class SequenceParameter(Parameter):
    """Parameter type for a Configuration class that holds a sequence (i.e. list) of Parameters."""

    _type = tuple

    def __init__(self, element_type, default=(), validation=None, string_delimiter=","):
        """
        Args:
            element_type (Parameter): The Parameter type that is held in the sequence.
            default (Sequence): default value, empty tuple if not given.
            string_delimiter (str): separation string used to parse string into sequence.
        """
        self._element_type = element_type
        self.string_delimiter = string_delimiter
        super().__init__(default, validation)

    def get_all_matches(self, name, names, instance):
        # settings like `base_packages: ~` count as unset
        matches, exceptions = super().get_all_matches(name, names, instance)
        matches = tuple(m for m in matches if m._raw_value is not None)
        return matches, exceptions

    def load(self, name, match):
        value = match.value(self)
        if value is None:
            return SequenceLoadedParameter(
                name, (), self._element_type, match.keyflag(), validation=self._validation
            )

        if not isiterable(value):
            raise InvalidTypeError(
                name, value, match.source, value.__class__.__name__, self._type.__name__
            )

        return SequenceLoadedParameter(
            name,
            tuple(self._element_type.load(name, child_value) for child_value in value),
            self._element_type,
            match.keyflag(),
            validation=self._validation,
        )


class ParameterLoader:
    """
    ParameterLoader class contains the top level logic needed to load a parameter from start to
    finish.
    """

    def __init__(self, parameter_type, aliases=()):
        """
        Args:
            parameter_type (Parameter): the type of Parameter that is stored in the loader.
            aliases (tuple(str)): alternative aliases for the Parameter
        """
        self._name = None
        self._names = None
        self.type = parameter_type
        self.aliases = aliases

    def _set_name(self, name):
        # called by the Configuration metaclass
        self._name = name
        self._names = frozenset(chain(self.aliases, (name,)))
        return name

    @property
    def name(self):
        if self._name is None:
            raise ThisShouldNeverHappenError()  # pragma: no cover
        return self._name

    @property
    def names(self):
        if self._names is None:
            raise ThisShouldNeverHappenError()  # pragma: no cover
        return self._names

    def __get__(self, instance, instance_type):
        if instance is None:
            return self
        # strategy is "extract and merge," which is actually just map and reduce
        if self.name in instance._cache_:
            return instance._cache_[self.name]

        # step 1: find top level matches in every source
        raw_matches, errors = self.type.get_all_matches(self.name, self.names, instance)

        # step 2: parse RawParameters into LoadedParameters
        matches = [self.type.load(self.name, match) for match in raw_matches]

        # step 3: merge matches
        merged = matches[0].merge(matches) if matches else self.type.default

        # step 4: typify and validate
        try:
            result = merged.typify("<<merged>>")
        except CustomValidationError as e:
            errors.append(e)
        else:
            errors.extend(merged.collect_errors(instance, result, "<<merged>>"))
        raise_errors(errors)
        instance._cache_[self.name] = result
        return result

    def _raw_parameters_from_single_source(self, raw_parameters):
        return ParameterLoader.raw_parameters_from_single_source(
            self.name, self.names, raw_parameters
        )

    @staticmethod
    def raw_parameters_from_single_source(name, names, raw_parameters):
        # while supporting parameter name aliases, only one definition is allowed per source
        keys = names & frozenset(raw_parameters.keys())
        matches = {key: raw_parameters[key] for key in keys}
        numkeys = len(keys)
        if numkeys == 0:
            return None, None
        elif numkeys == 1:
            return next(iter(matches.values())), None
        elif name in keys:
            return matches[name], MultipleKeysError(
                raw_parameters[next(iter(keys))].source, keys, name
            )
        else:
            return None, MultipleKeysError(raw_parameters[next(iter(keys))].source, keys, name)


class ConfigurationType(type):
    """metaclass for Configuration"""

    def __init__(cls, name, bases, attr):
        super().__init__(name, bases, attr)

        # call _set_name for each parameter
        cls.parameter_names = tuple(
            p._set_name(name) for name, p in cls.__dict__.items() if isinstance(p, ParameterLoader)
        )


class Configuration(metaclass=ConfigurationType):
    def __init__(self, search_path=(), app_name=None, overrides=None):
        # __init__ does a full disk reload of all files
        self.raw_data = {}
        self._cache_ = {}
        self._reset_callbacks = IndexedSet()

        self._set_search_path(search_path)
        self._set_env_vars(app_name)
        self._set_overrides(overrides)

    def _set_search_path(self, search_path):
        self._search_path = IndexedSet(search_path)
        self._set_raw_data(load_file_configs(search_path))
        self._reset_cache()
        return self

    def _set_env_vars(self, app_name=None):
        self._app_name = app_name
        if not app_name:
            return self
        self.raw_data[EnvRawParameter.source] = EnvRawParameter.make_raw_parameters(app_name)
        self._reset_cache()
        return self

    def _set_overrides(self, overrides):
        self._overrides = frozendict(overrides or {})
        self.raw_data[OverrideRawParameter.source] = OverrideRawParameter.make_raw_parameters(
            self._overrides
        )
        self._reset_cache()
        return self

    def _set_raw_data(self, raw_data):
        self.raw_data.update(raw_data)
        self._reset_cache()
        return self

    def _reset_cache(self):
        self._cache_ = {}
        for callback in self._reset_callbacks:
            callback()
        return self

    def register_reset_callback(self, callback):
        self._reset_callbacks.add(callback)

    def check_source(self, source):
        typed_values = {}
        validation_errors = []
        raw_parameters = self.raw_data[source]
        for key in self.parameter_names:
            parameter = self.__class__.__dict__[key]
            match, multikey_error = parameter._raw_parameters_from_single_source(raw_parameters)
            if multikey_error:
                validation_errors.append(multikey_error)

            if match is not None:
                loaded_parameter = parameter.type.load(key, match)
                try:
                    typed_value = loaded_parameter.typify(match.source)
                except CustomValidationError as e:
                    validation_errors.append(e)
                else:
                    collected_errors = loaded_parameter.collect_errors(
                        self, typed_value, match.source
                    )
                    if collected_errors:
                        validation_errors.extend(collected_errors)
                    else:
                        typed_values[match.key] = typed_value
        return typed_values, validation_errors

    def validate_all(self):
        validation_errors = list(
            chain.from_iterable(self.check_source(source)[1] for source in self.raw_data)
        )
        raise_errors(validation_errors)
        self.validate_configuration()

    @staticmethod
    def _collect_validation_error(func, *args, **kwargs):
        try:
            func(*args, **kwargs)
        except MultiValidationError as e:
            return tuple(e.errors)
        except ConfigurationError as e:
            return (e,)
        return ()

    def validate_configuration(self):
        errors = chain.from_iterable(
            Configuration._collect_validation_error(getattr, self, name)
            for name in self.parameter_names
        )
        post_errors = self.post_build_validation()
        raise_errors(tuple(chain.from_iterable((errors, post_errors))))

    def post_build_validation(self):
        return ()

    def collect_all(self):
        typed_values = {}
        validation_errors = {}
        for source in self.raw_data:
            typed_values[source], validation_errors[source] = self.check_source(source)
        raise_errors(tuple(chain.from_iterable(validation_errors.values())))
        return {k: v for k, v in typed_values.items() if v}

    def list_parameters(self):
        return tuple(sorted(name.lstrip("_") for name in self.parameter_names))
