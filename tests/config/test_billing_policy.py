"""Tests for billing_config: YAML loading, validation and the active policy."""

from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP

import pytest
import yaml

from billing_config import CONFIG_PATH_ENV, BillingPolicy, get_active_policy, reset_active_policy
from billing_config.loader import load_policy, load_yaml_file, parse_policy


class TestParsePolicy:
    """Tests for parse_policy and BillingPolicy validation."""

    def test_defaults(self):
        policy = parse_policy({})
        assert policy == BillingPolicy()
        assert policy.currency == "USD"
        assert policy.decimal_places == 2
        assert policy.rounding == ROUND_HALF_UP

    def test_overrides(self):
        policy = parse_policy({"currency": "cad", "rounding": ROUND_HALF_EVEN, "log_level": "debug"})
        assert policy.currency == "CAD"
        assert policy.rounding == ROUND_HALF_EVEN
        assert policy.log_level == "DEBUG"

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="Unknown billing policy keys: tax_rate"):
            parse_policy({"tax_rate": 8.5})

    @pytest.mark.parametrize(
        "data",
        [
            {"currency": "US"},
            {"decimal_places": -1},
            {"decimal_places": "2"},
            {"decimal_places": True},
            {"rounding": "ROUND_NEAREST"},
            {"log_level": "LOUD"},
        ],
    )
    def test_invalid_values_rejected(self, data):
        with pytest.raises(ValueError):
            parse_policy(data)


class TestLoadPolicy:
    """Tests for reading YAML files."""

    def test_load_file(self, tmp_path):
        path = tmp_path / "billing.yaml"
        path.write_text("currency: EUR\ndecimal_places: 3\n")
        policy = load_policy(path)
        assert policy.currency == "EUR"
        assert policy.decimal_places == 3

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml_file(path) == {}
        assert load_policy(path) == BillingPolicy()

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- USD\n- EUR\n")
        with pytest.raises(ValueError, match="expected a mapping"):
            load_policy(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_policy(tmp_path / "missing.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("currency: [USD\n")
        with pytest.raises(yaml.YAMLError):
            load_policy(path)


class TestActivePolicy:
    """Tests for the single runtime entrypoint."""

    def test_defaults_yaml(self):
        assert get_active_policy() == BillingPolicy()

    def test_cached(self):
        assert get_active_policy() is get_active_policy()

    def test_env_override(self, tmp_path, monkeypatch):
        path = tmp_path / "billing.yaml"
        path.write_text("currency: GBP\n")
        monkeypatch.setenv(CONFIG_PATH_ENV, str(path))
        reset_active_policy()
        assert get_active_policy().currency == "GBP"

    def test_load_is_logged(self, captured_logs):
        get_active_policy()
        logs = captured_logs()
        loaded = [r for r in logs if r["message"] == "billing_config_loaded"]
        assert len(loaded) == 1
        assert loaded[0]["currency"] == "USD"
