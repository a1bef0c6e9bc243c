"""
CONFIG TESTS - loading, defaults and validation.
"""

import json

import pytest

from sitemap_delta.config import DEFAULT_CONFIG, get_target_site_roots, load_config, validate_config


def _write(tmp_path, data):
    path = tmp_path / "config.json"
    path.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")
    return str(path)


def test_missing_file_uses_defaults(tmp_path):
    config = load_config(str(tmp_path / "absent.json"))
    assert config == DEFAULT_CONFIG


def test_missing_file_when_required(tmp_path):
    assert load_config(str(tmp_path / "absent.json"), required=True) is None


def test_values_override_defaults(tmp_path):
    config = load_config(_write(tmp_path, {"targets": ["https://example.com"], "timeout": 5}))
    assert config["timeout"] == 5
    assert config["max_retries"] == DEFAULT_CONFIG["max_retries"]
    assert config["targets"] == ["https://example.com"]


def test_bad_json(tmp_path):
    assert load_config(_write(tmp_path, "{not json")) is None


@pytest.mark.parametrize("config", [
    [],
    {"targets": "https://example.com"},
    {"targets": ["example.com"]},
    {"targets": [{"enabled": True}]},
    {"max_retries": 0},
    {"max_concurrent_domains": "4"},
    {"timeout": -1},
    {"retry_delay": True},
])
def test_invalid_configs(config):
    assert validate_config(config) is False


def test_valid_config():
    assert validate_config({
        "targets": ["https://example.com", {"site_root": "https://example.org", "enabled": False}],
        "max_retries": 2,
        "timeout": 2.5,
    })


def test_target_site_roots_skip_disabled_and_normalize():
    config = {"targets": [
        "https://Example.com/",
        {"site_root": "https://example.org", "enabled": False},
        {"site_root": "https://example.net/"},
        "https://example.com",
    ]}
    assert get_target_site_roots(config) == ["https://example.com", "https://example.net"]
