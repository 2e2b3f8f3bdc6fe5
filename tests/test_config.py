"""Tests for option loading."""

import pytest
import yaml

from trajkit.config import (
    DEFAULT_SELECTION,
    RMSDOptions,
    load_config,
    load_options,
    update_dict_recursively,
)
from trajkit.exceptions import PreconditionError


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data))
    return path


class TestLoadConfig:
    """Defaults merged with YAML."""

    def test_defaults(self):
        options = load_options()
        assert options.sel1 == DEFAULT_SELECTION
        assert options.cache is True
        assert options.precision == 2
        assert not options.two_systems

    def test_yaml_overrides_nested(self, temp_dir):
        path = write_yaml(
            temp_dir / "opts.yaml",
            {"system1": {"selection": "resid < 5"}, "output": {"precision": 4}},
        )
        config = load_config(path)
        assert config["system1"]["selection"] == "resid < 5"
        assert config["system1"]["skip"] == 0
        assert config["output"]["precision"] == 4
        assert config["output"]["noout"] is False

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            load_config(temp_dir / "none.yaml")

    def test_not_a_mapping(self, temp_dir):
        path = temp_dir / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(PreconditionError):
            load_config(path)

    def test_invalid_yaml(self, temp_dir):
        path = temp_dir / "bad.yaml"
        path.write_text("system1: [unclosed\n")
        with pytest.raises(PreconditionError):
            load_config(path)

    def test_empty_file(self, temp_dir):
        path = temp_dir / "empty.yaml"
        path.write_text("")
        assert load_config(path)["verbosity"] == 1

    def test_update_recursively(self):
        base = {"a": {"b": 1, "c": 2}, "d": 3}
        update_dict_recursively(base, {"a": {"b": 10}, "e": 5})
        assert base == {"a": {"b": 10, "c": 2}, "d": 3, "e": 5}


class TestLoadOptions:
    """Overrides win over the file; None leaves it alone."""

    def test_override_wins(self, temp_dir):
        path = write_yaml(temp_dir / "opts.yaml", {"system1": {"skip": 3}, "compute": {"workers": 2}})
        options = load_options(path, skip1=5, workers=None)
        assert options.skip1 == 5
        assert options.workers == 2

    def test_two_systems_from_yaml(self, temp_dir):
        path = write_yaml(
            temp_dir / "opts.yaml",
            {
                "system1": {"model": "a.pdb", "trajectory": "a.dcd"},
                "system2": {"model": "b.pdb", "trajectory": "b.dcd"},
            },
        )
        options = load_options(path)
        assert options.two_systems
        options.validate()

    def test_unknown_override(self):
        with pytest.raises(PreconditionError):
            load_options(color="red")

    @pytest.mark.parametrize(
        "data",
        [
            {"system1": {"skip": "two"}},
            {"output": {"precision": [3]}},
            {"compute": {"workers": True}},
            {"compute": {"cache": "maybe"}},
            {"system2": "b.pdb"},
        ],
    )
    def test_bad_value(self, temp_dir, data):
        path = write_yaml(temp_dir / "opts.yaml", data)
        with pytest.raises(PreconditionError):
            load_options(path)

    def test_numeric_range(self, temp_dir):
        path = write_yaml(temp_dir / "opts.yaml", {"system1": {"range": 7}})
        assert load_options(path).range1 == "7"


class TestValidate:
    """Option consistency checks."""

    def base(self, **kwargs):
        return RMSDOptions(model1="m.pdb", traj1="t.dcd", **kwargs)

    def test_valid(self):
        self.base().validate()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"model1": None},
            {"model2": "m2.pdb"},
            {"skip1": -1},
            {"workers": 0},
            {"workers": 2, "cache": False},
            {"precision": -1},
        ],
    )
    def test_invalid(self, kwargs):
        options = self.base()
        for name, value in kwargs.items():
            setattr(options, name, value)
        with pytest.raises(PreconditionError):
            options.validate()

    def test_describe(self):
        text = self.base(skip1=2).describe()
        assert "skip1=2" in text
        assert "model1='m.pdb'" in text
