"""
Unit tests for the command line interface
"""

import pytest
import yaml
from click.testing import CliRunner

from mqtt_camera_ftpd import cli
from mqtt_camera_ftpd.config import CONFIG_FILE_NAME


@pytest.fixture(autouse=True)
def keep_test_logging(monkeypatch):
    # the commands reconfigure the root logger; leave pytest's capture alone
    monkeypatch.setattr(cli, "setup_structured_logging", lambda **kwargs: None)


@pytest.fixture
def runner():
    return CliRunner()


def test_show_config_creates_sample(runner, tmp_path):
    result = runner.invoke(cli.main, ["show-config", "--config-dir", str(tmp_path)])

    assert result.exit_code == 0
    shown = yaml.safe_load(result.output)
    assert shown["port"] == 21
    assert shown["mqtt"]["preface"] == "cameras"
    assert (tmp_path / CONFIG_FILE_NAME).exists()


def test_show_config_masks_password(runner, tmp_path):
    (tmp_path / CONFIG_FILE_NAME).write_text(
        "mqtt:\n  username: bridge\n  password: hunter2\n", encoding="utf-8"
    )

    result = runner.invoke(cli.main, ["show-config", "--config-dir", str(tmp_path)])

    assert result.exit_code == 0
    assert "hunter2" not in result.output
    assert yaml.safe_load(result.output)["mqtt"]["password"] == "********"


def test_show_config_uses_config_dir_env(runner, tmp_path):
    (tmp_path / CONFIG_FILE_NAME).write_text("port: 2121\n", encoding="utf-8")

    result = runner.invoke(cli.main, ["show-config"], env={"CONFIG_DIR": str(tmp_path)})

    assert result.exit_code == 0
    assert yaml.safe_load(result.output)["port"] == 2121


def test_invalid_config_exits_non_zero(runner, tmp_path):
    (tmp_path / CONFIG_FILE_NAME).write_text("port: 99999\n", encoding="utf-8")

    result = runner.invoke(cli.main, ["show-config", "--config-dir", str(tmp_path)])

    assert result.exit_code == 1


def test_serve_exits_when_broker_unreachable(runner, tmp_path, monkeypatch):
    (tmp_path / CONFIG_FILE_NAME).write_text("port: 0\naddress: 127.0.0.1\n", encoding="utf-8")

    from mqtt_camera_ftpd import bridge as bridge_module

    monkeypatch.setattr(bridge_module.BrokerConnection, "connect", lambda self, timeout=10.0: False)

    result = runner.invoke(cli.main, ["serve", "--config-dir", str(tmp_path)])

    assert result.exit_code == 1
