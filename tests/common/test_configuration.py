# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from pytest import raises

from modsolve.auxlib.ish import dals
from modsolve.common.configuration import (
    Configuration,
    CustomValidationError,
    InvalidTypeError,
    MapParameter,
    MultipleKeysError,
    MultiValidationError,
    ParameterFlag,
    ParameterLoader,
    PrimitiveParameter,
    SequenceParameter,
    ValidationError,
    YamlRawParameter,
    load_file_configs,
    pretty_list,
    raise_errors,
)
from modsolve.common.io import env_var
from modsolve.common.serialize import yaml_round_trip_load

NoneType = type(None)

test_yaml_raw = {
    "file1": dals(
        """
        always_yes: no

        pinned:
          numpy: '>=1.20'
          python: '3.11'

        channels_altname:
          - bugs
          - daffy
        """
    ),
    "file2": dals(
        """
        always_yes: yes
        always_an_int: 4

        pinned:
          numpy: <2

        channels:
          - porky
          - bugs
        """
    ),
    "file3": dals(
        """
        always_yes: yes  #!final
        """
    ),
    "bad_boolean": "always_yes: maybe\n",
    "not_an_int": "always_an_int: nope\n",
    "negative_limit": "limit: -3\n",
    "too_many_aliases": dals(
        """
        always_yes: yes
        assume_yes: no
        """
    ),
    "pinned_not_a_map": "pinned: numpy\n",
}


def positive_or_none(value):
    if value is not None and value <= 0:
        return "value must be positive"
    return True


class SampleConfiguration(Configuration):
    always_yes = ParameterLoader(PrimitiveParameter(False), aliases=("yes", "assume_yes"))
    always_an_int = ParameterLoader(PrimitiveParameter(0))
    channels = ParameterLoader(
        SequenceParameter(PrimitiveParameter("", element_type=str)),
        aliases=("channels_altname",),
    )
    pinned = ParameterLoader(MapParameter(PrimitiveParameter("", element_type=str)))
    limit = ParameterLoader(
        PrimitiveParameter(None, element_type=(int, NoneType), validation=positive_or_none)
    )


def load_from_string_data(*seq):
    return {
        f: YamlRawParameter.make_raw_parameters(f, yaml_round_trip_load(test_yaml_raw[f]))
        for f in seq
    }


def test_simple_merges_and_caching():
    config = SampleConfiguration()._set_raw_data(load_from_string_data("file1", "file2"))
    assert config.always_yes is True
    assert config.always_an_int == 4
    assert config.channels == ("porky", "bugs", "daffy")
    assert config.pinned == {"numpy": "<2", "python": "3.11"}

    config = SampleConfiguration()._set_raw_data(load_from_string_data("file2", "file1"))
    assert len(config._cache_) == 0
    assert config.always_yes is False
    assert config._cache_["always_yes"] is False
    assert config.channels == ("bugs", "daffy", "porky")
    assert config.pinned == {"numpy": ">=1.20", "python": "3.11"}


def test_default_values():
    config = SampleConfiguration()
    assert config.always_yes is False
    assert config.always_an_int == 0
    assert config.channels == ()
    assert config.pinned == {}
    assert config.limit is None


def test_final_flag_stops_later_sources():
    config = SampleConfiguration()._set_raw_data(load_from_string_data("file1", "file2"))
    assert config.always_yes is True
    config = SampleConfiguration()._set_raw_data(load_from_string_data("file2", "file1"))
    assert config.always_yes is False

    # file3 comes first but is final, so file1 cannot override it
    config = SampleConfiguration()._set_raw_data(load_from_string_data("file3", "file1"))
    assert config.always_yes is True
    assert config.channels == ("bugs", "daffy")


def test_env_vars(monkeypatch):
    monkeypatch.setenv("MYAPP_YES", "true")
    monkeypatch.setenv("MYAPP_CHANNELS", "channel1, channel2,")
    monkeypatch.setenv("MYAPP_LIMIT", "12")
    config = SampleConfiguration(app_name="myapp")
    assert config.always_yes is True
    assert config.channels == ("channel1", "channel2")
    assert config.limit == 12

    monkeypatch.setenv("MYAPP_CHANNELS", "")
    config = SampleConfiguration(app_name="myapp")
    assert config.channels == ()


def test_overrides_beat_env_vars_unless_important(monkeypatch):
    monkeypatch.setenv("MYAPP_ALWAYS_YES", "true")
    config = SampleConfiguration(app_name="myapp", overrides={"always_yes": False})
    assert config.always_yes is False

    monkeypatch.setenv("MYAPP_ALWAYS_YES", "true !important")
    config = SampleConfiguration(app_name="myapp", overrides={"always_yes": False})
    assert config.always_yes is True


def test_overrides_for_collections():
    config = SampleConfiguration(overrides={"channels": ["a", "b"], "pinned": {"zlib": "1.2"}})
    assert config.channels == ("a", "b")
    assert config.pinned == {"zlib": "1.2"}


def test_load_file_configs(tmp_path):
    rcd = tmp_path / "modsolverc.d"
    rcd.mkdir()
    (rcd / "file1.yml").write_text(test_yaml_raw["file1"])
    (rcd / "file2.yaml").write_text(test_yaml_raw["file2"])
    (rcd / "ignored.txt").write_text("always_yes: yes\n")
    modsolverc = tmp_path / "modsolverc"
    modsolverc.write_text(test_yaml_raw["file3"])

    search_path = [str(modsolverc), str(tmp_path / "not_a_file"), str(rcd)]
    raw_data = load_file_configs(search_path)
    assert list(raw_data) == [str(modsolverc), str(rcd / "file1.yml"), str(rcd / "file2.yaml")]
    assert raw_data[str(modsolverc)]["always_yes"].keyflag() is ParameterFlag.final

    config = SampleConfiguration(search_path=search_path)
    assert config.always_yes is True
    assert config.pinned == {"numpy": "<2", "python": "3.11"}


def test_validation():
    config = SampleConfiguration()._set_raw_data(load_from_string_data("bad_boolean"))
    raises(ValidationError, lambda: config.always_yes)

    config = SampleConfiguration()._set_raw_data(load_from_string_data("not_an_int"))
    with raises(CustomValidationError) as exc:
        config.always_an_int
    assert "nope" in str(exc.value)

    config = SampleConfiguration()._set_raw_data(load_from_string_data("negative_limit"))
    with raises(CustomValidationError) as exc:
        config.limit
    assert "value must be positive" in str(exc.value)

    config = SampleConfiguration()._set_raw_data(load_from_string_data("too_many_aliases"))
    raises(MultipleKeysError, lambda: config.always_yes)


def test_map_parameter_must_be_map():
    config = SampleConfiguration()._set_raw_data(load_from_string_data("pinned_not_a_map"))
    raises(InvalidTypeError, lambda: config.pinned)


def test_validate_all_collects_errors():
    config = SampleConfiguration()._set_raw_data(load_from_string_data("file1", "file2"))
    config.validate_all()

    config = SampleConfiguration()._set_raw_data(
        load_from_string_data("bad_boolean", "not_an_int")
    )
    with raises(MultiValidationError) as exc:
        config.validate_all()
    assert len(exc.value.errors) == 2


def test_config_resets():
    config = SampleConfiguration(app_name="myapp")
    assert config.always_an_int == 0
    with env_var("MYAPP_ALWAYS_AN_INT", "7"):
        config.__init__(app_name="myapp")
        assert config.always_an_int == 7


def test_pretty_list_and_raise_errors():
    assert pretty_list(["a", "b"]) == "  - a\n  - b"
    assert pretty_list("a") == "  - a"
    assert raise_errors([]) is True
    error = ValidationError("name", "value", "source")
    with raises(ValidationError):
        raise_errors([error])
    with raises(MultiValidationError):
        raise_errors([error, error])


def test_parameter_flag():
    assert ParameterFlag.from_string("#!final") is ParameterFlag.final
    assert ParameterFlag.from_string("# just a comment") is None
    assert ParameterFlag.from_string(None) is None
    assert SampleConfiguration().list_parameters() == (
        "always_an_int",
        "always_yes",
        "channels",
        "limit",
        "pinned",
    )
