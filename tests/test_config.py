import pytest

from slotaudit.config import DEFAULT_CONFIG, load_config
from slotaudit.errors import ConfigError


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(str(tmp_path / "absent.yml"))
    assert config == DEFAULT_CONFIG
    assert config is not DEFAULT_CONFIG


def test_merge_over_defaults(tmp_path):
    path = tmp_path / "slotaudit.yml"
    path.write_text(
        "upgrade:\n"
        "  old_path: v1/Vault.sol\n"
        "  critical_penalty: 50\n"
        "output:\n"
        "  format: markdown\n",
        encoding="utf-8",
    )
    config = load_config(str(path))

    assert config["upgrade"]["old_path"] == "v1/Vault.sol"
    assert config["upgrade"]["critical_penalty"] == 50
    assert config["upgrade"]["warning_penalty"] == 15
    assert config["output"]["format"] == "markdown"
    assert config["contracts"] == DEFAULT_CONFIG["contracts"]


def test_empty_file(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")
    assert load_config(str(path)) == DEFAULT_CONFIG


def test_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yml"
    path.write_text("upgrade: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_top_level_must_be_mapping(tmp_path):
    path = tmp_path / "list.yml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(str(path))


def test_empty_sections_keep_defaults(tmp_path):
    path = tmp_path / "sparse.yml"
    path.write_text(
        "upgrade:\n"
        "  # critical_penalty: 40\n"
        "output:\n"
        "contracts:\n"
        "  exclude_paths:\n",
        encoding="utf-8",
    )
    config = load_config(str(path))

    assert config == DEFAULT_CONFIG


def test_section_must_be_mapping(tmp_path):
    path = tmp_path / "scalar.yml"
    path.write_text("upgrade: 5\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="'upgrade' must be a mapping"):
        load_config(str(path))
