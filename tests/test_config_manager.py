"""
Tests for the configuration manager
"""
import pytest

from dbus_events.configs import ConfigManager, default_config_path
from dbus_events.core import ConfigError


def test_default_path_uses_xdg(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    assert default_config_path() == tmp_path / "dbuseventshandler" / "config.yml"


def test_default_path_without_xdg(monkeypatch, tmp_path):
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    assert default_config_path() == tmp_path / ".config" / "dbuseventshandler" / "config.yml"


def test_missing_file_is_created_empty(tmp_path):
    path = tmp_path / "dbuseventshandler" / "config.yml"
    manager = ConfigManager(path)
    assert manager.load() is None
    assert path.exists()
    assert path.read_text() == ""


def test_comment_only_file_is_empty(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("# nothing configured yet\n")
    assert ConfigManager(path).load_rule_set() is None


def test_rules_loaded_in_file_order(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(
        "waybar-bluetooth:\n"
        "  path: ^/org/bluez/\n"
        "  member: PropertiesChanged\n"
        "  signal: 13\n"
        "  signal_process: waybar\n"
        "a-notify:\n"
        "  member: UnitNew\n"
        "  data: sys-subsystem\n"
        "  data_not: true\n"
        "  exec: notify-send added\n"
    )
    manager = ConfigManager(path)
    rules = manager.load_rule_set()
    assert rules.names == ("waybar-bluetooth", "a-notify")
    assert rules[0].signal_number == 13
    assert rules[1].data_negate is True
    assert manager.rule_names == ["waybar-bluetooth", "a-notify"]
    assert manager.get("a-notify")["exec"] == "notify-send added"


def test_top_level_must_be_mapping(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("- path: /\n")
    with pytest.raises(ConfigError):
        ConfigManager(path).load()


def test_invalid_yaml(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("rule: {path: [\n")
    with pytest.raises(ConfigError):
        ConfigManager(path).load()


def test_duplicate_rule_name_rejected(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("a:\n  exec: echo 1\na:\n  exec: echo 2\n")
    with pytest.raises(ConfigError) as exc:
        ConfigManager(path).load_rule_set()
    assert exc.value.rule == "a"
    assert "line 3" in str(exc.value)


def test_duplicate_field_rejected(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("a:\n  exec: echo 1\n  exec: echo 2\n")
    with pytest.raises(ConfigError) as exc:
        ConfigManager(path).load()
    assert exc.value.field == "exec"


def test_same_field_in_different_rules_allowed(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("a:\n  exec: echo 1\nb:\n  exec: echo 2\n")
    assert ConfigManager(path).load_rule_set().names == ("a", "b")


def test_invalid_rule_reported(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("waybar:\n  signal: 3\n")
    with pytest.raises(ConfigError) as exc:
        ConfigManager(path).load_rule_set()
    assert exc.value.rule == "waybar"
