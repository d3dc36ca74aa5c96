from pathlib import Path

import pytest

from diffnote.config import ConfigError, load_config, parse_roots


def test_defaults(tmp_path):
    config = load_config(env={"HOME": str(tmp_path)})

    assert config.repo_scan_roots == [tmp_path]
    assert config.repo_scan_max_depth == 3
    assert config.large_file_threshold == 500
    assert config.expand_quota == 10


def test_parse_roots_splits_on_commas():
    assert parse_roots(" /a, ,/b ,") == [Path("/a"), Path("/b")]


def test_environment_overrides(tmp_path):
    config = load_config(
        env={
            "HOME": str(tmp_path),
            "REPO_SCAN_ROOT": "/srv/one,/srv/two",
            "REPO_SCAN_MAX_DEPTH": "5",
            "DIFFNOTE_LARGE_FILE_THRESHOLD": "200",
            "DIFFNOTE_STORE": str(tmp_path / "store.yaml"),
        }
    )

    assert config.repo_scan_roots == [Path("/srv/one"), Path("/srv/two")]
    assert config.repo_scan_max_depth == 5
    assert config.large_file_threshold == 200
    assert config.store_path == tmp_path / "store.yaml"


def test_file_values_are_overridden_by_environment(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("repo_scan_roots:\n  - /code\nrepo_scan_max_depth: 1\nexpand_quota: 4\n")

    config = load_config(config_file, env={"HOME": str(tmp_path), "REPO_SCAN_MAX_DEPTH": "2"})

    assert config.repo_scan_roots == [Path("/code")]
    assert config.repo_scan_max_depth == 2
    assert config.expand_quota == 4


def test_invalid_values_raise(tmp_path):
    with pytest.raises(ConfigError):
        load_config(env={"HOME": str(tmp_path), "REPO_SCAN_MAX_DEPTH": "deep"})
    with pytest.raises(ConfigError):
        load_config(env={"HOME": str(tmp_path), "REPO_SCAN_MAX_DEPTH": "-1"})


def test_missing_explicit_file_raises(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.yaml", env={"HOME": str(tmp_path)})


def test_non_mapping_file_raises(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("- a\n- b\n")

    with pytest.raises(ConfigError):
        load_config(config_file, env={"HOME": str(tmp_path)})


def test_default_root_follows_the_given_environment(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("expand_quota: 5\n")

    assert load_config(config_file, env={"HOME": str(tmp_path / "me")}).repo_scan_roots == [tmp_path / "me"]
    assert load_config(config_file, env={}).repo_scan_roots == [Path("/")]
