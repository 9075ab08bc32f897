"""
Tests for AntclockConfig validation and loading.
"""

import dataclasses
import json

import numpy as np
import pytest

from antclock.core.antclock_policy import AntclockConfig, AntclockPolicyError, default_antclock_config


class TestDefaults:
    """Default configuration."""

    def test_default_values(self):
        """Reference defaults."""
        cfg = default_antclock_config()
        assert cfg.event_threshold == 0.05
        assert cfg.event_boost == 0.5
        assert cfg.dt_nominal == 0.01
        assert cfg.dt_min == 0.001
        assert cfg.dt_max == 0.1
        assert cfg.max_semantic_ticks == 100
        assert cfg.max_coordinate_time == 10.0
        assert cfg.ticks_enabled

    def test_frozen(self):
        """Configs cannot be modified in place."""
        cfg = AntclockConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            cfg.dt_nominal = 0.02

    def test_zero_tick_budget(self):
        """A zero tick budget is valid and disables ticking."""
        cfg = AntclockConfig(max_semantic_ticks=0)
        assert not cfg.ticks_enabled


class TestValidation:
    """Bounds are enforced at construction."""

    @pytest.mark.parametrize("changes", [
        {"event_boost": 0.0},
        {"event_boost": 1.5},
        {"dt_min": 0.2, "dt_max": 0.1, "dt_nominal": 0.15},
        {"dt_nominal": 0.0005},
        {"dt_nominal": 0.5},
        {"dt_min": 0.0},
        {"max_semantic_ticks": -1},
        {"max_semantic_ticks": 2.5},
        {"max_coordinate_time": 0.0},
        {"event_threshold": -0.1},
        {"dt_nominal": float("nan")},
        {"max_coordinate_time": float("inf")},
    ])
    def test_invalid(self, changes):
        """Each violation raises AntclockPolicyError."""
        with pytest.raises(AntclockPolicyError):
            AntclockConfig(**changes)

    def test_error_is_value_error(self):
        """Policy errors are ValueErrors."""
        with pytest.raises(ValueError):
            AntclockConfig(dt_min=0.5, dt_max=0.1)

    def test_boost_of_one_allowed(self):
        """event_boost = 1 is the upper edge of (0, 1]."""
        assert AntclockConfig(event_boost=1.0).event_boost == 1.0

    def test_numpy_scalars_accepted(self):
        """numpy integers and floats validate and are stored as builtins."""
        cfg = AntclockConfig(max_semantic_ticks=np.int64(5), dt_nominal=np.float32(0.02),
                             max_coordinate_time=np.float64(2.0))
        assert cfg.max_semantic_ticks == 5
        assert type(cfg.max_semantic_ticks) is int
        assert type(cfg.dt_nominal) is float
        assert type(cfg.max_coordinate_time) is float
        assert json.loads(json.dumps(cfg.to_dict()))["max_semantic_ticks"] == 5

    def test_numpy_bool_rejected(self):
        """A numpy bool is not a tick budget."""
        with pytest.raises(AntclockPolicyError):
            AntclockConfig(max_semantic_ticks=np.bool_(True))

    def test_replace_revalidates(self):
        """replace returns a validated copy."""
        cfg = AntclockConfig()
        assert cfg.replace(max_coordinate_time=1.0).max_coordinate_time == 1.0
        assert cfg.max_coordinate_time == 10.0
        with pytest.raises(AntclockPolicyError):
            cfg.replace(event_boost=2.0)


class TestSerialization:
    """to_dict and from_file."""

    def test_to_dict_round_trip(self):
        """to_dict feeds back into from_dict."""
        cfg = AntclockConfig(max_semantic_ticks=7, max_coordinate_time=2.5)
        assert AntclockConfig.from_dict(cfg.to_dict()) == cfg

    def test_from_file_overrides_defaults(self, tmp_path):
        """Keys in the file override defaults; others keep default values."""
        path = tmp_path / "antclock.json"
        path.write_text(json.dumps({"max_semantic_ticks": 5, "event_boost": 0.25}))
        cfg = AntclockConfig.from_file(str(path))
        assert cfg.max_semantic_ticks == 5
        assert cfg.event_boost == 0.25
        assert cfg.dt_nominal == 0.01

    def test_from_file_missing(self, tmp_path):
        """Missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            AntclockConfig.from_file(str(tmp_path / "nope.json"))

    def test_from_file_invalid_json(self, tmp_path):
        """Malformed JSON is a policy error."""
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(AntclockPolicyError):
            AntclockConfig.from_file(str(path))

    def test_from_file_unknown_key(self, tmp_path):
        """Unknown keys are rejected."""
        path = tmp_path / "extra.json"
        path.write_text(json.dumps({"dt_nominal": 0.01, "warp_factor": 9}))
        with pytest.raises(AntclockPolicyError):
            AntclockConfig.from_file(str(path))

    def test_from_file_invalid_bounds(self, tmp_path):
        """Bounds are validated after loading."""
        path = tmp_path / "bounds.json"
        path.write_text(json.dumps({"dt_min": 0.5}))
        with pytest.raises(AntclockPolicyError):
            AntclockConfig.from_file(str(path))
