import logging

from bay_inspector.config import ConfigManager
from bay_inspector.models import InspectorConfig


def write_config(tmp_path, text):
    path = tmp_path / "bay_inspector.conf"
    path.write_text(text)
    return str(path)


def test_missing_file_uses_defaults(tmp_path):
    manager = ConfigManager(str(tmp_path / "missing.conf"))

    assert manager.config == InspectorConfig()
    assert manager.config.tolerance_bytes == 52428800
    assert manager.config.poll_interval == 60
    assert manager.config.bays == (0, 1)
    assert manager.config.run_badblocks is False


def test_missing_file_is_warned(tmp_path, caplog):
    caplog.set_level(logging.WARNING)

    ConfigManager(str(tmp_path / "missing.conf"))

    assert any("missing.conf not found" in r.message and r.levelno == logging.WARNING
               for r in caplog.records)


def test_yaml_values_override_defaults(tmp_path):
    path = write_config(tmp_path, (
        "log_dir: /var/log/bays\n"
        "run_badblocks: true\n"
        "poll_interval: 120\n"
        "tolerance_bytes: 1048576\n"
        "bays: [1]\n"
    ))

    config = ConfigManager(path).config

    assert config.log_dir == "/var/log/bays"
    assert config.run_badblocks is True
    assert config.poll_interval == 120
    assert config.tolerance_bytes == 1048576
    assert config.bays == (1,)
    assert config.bridge_type == "usbjmicron"


def test_invalid_yaml_keeps_defaults(tmp_path, caplog):
    caplog.set_level(logging.ERROR)
    path = write_config(tmp_path, "poll_interval: [unclosed\n")

    manager = ConfigManager(path)

    assert manager.config == InspectorConfig()
    assert any("Error parsing YAML" in r.message for r in caplog.records)


def test_invalid_value_keeps_defaults(tmp_path, caplog):
    caplog.set_level(logging.WARNING)
    path = write_config(tmp_path, "poll_interval: often\n")

    manager = ConfigManager(path)

    assert manager.config.poll_interval == 60
    assert any("Invalid value" in r.message for r in caplog.records)


def test_unknown_keys_are_ignored(tmp_path, caplog):
    caplog.set_level(logging.WARNING)
    path = write_config(tmp_path, "poll_interval: 30\ncolour: blue\n")

    manager = ConfigManager(path)

    assert manager.config.poll_interval == 30
    assert any("unknown configuration key: colour" in r.message for r in caplog.records)


def test_environment_overrides_file(tmp_path):
    path = write_config(tmp_path, "run_badblocks: false\npoll_interval: 120\n")
    manager = ConfigManager(path)

    manager.apply_environment({"RUN_BADBLOCKS": "1", "POLL_SECS": "5", "HOME": "/root"})

    assert manager.config.run_badblocks is True
    assert manager.config.poll_interval == 5


def test_environment_zero_disables_scan(tmp_path):
    path = write_config(tmp_path, "run_badblocks: true\n")
    manager = ConfigManager(path)

    manager.apply_environment({"RUN_BADBLOCKS": "0"})

    assert manager.config.run_badblocks is False


def test_override_ignores_unset_values(tmp_path):
    manager = ConfigManager(str(tmp_path / "missing.conf"))

    manager.override(poll_interval=None, tolerance_bytes=1024, log_dir=None)

    assert manager.config.poll_interval == 60
    assert manager.config.tolerance_bytes == 1024


def test_log_dir_is_expanded(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    manager = ConfigManager(str(tmp_path / "missing.conf"))

    assert manager.log_dir == str(tmp_path / "logs" / "rosewill_drives")
