from __future__ import annotations

from pathlib import Path

import pytest

from vnuma_rightsizer import config as config_module
from vnuma_rightsizer.config import DEFAULT_OUT_PATH, load_config, parse_args
from vnuma_rightsizer.models import OutputMode

_ENV_KEYS = (
    config_module.URL_ALIASES
    + config_module.USER_ALIASES
    + config_module.PASSWORD_ALIASES
    + config_module.INSECURE_ALIASES
    + ["OUT_PATH", "CSV_PATH", "RIGHTSIZER_WORKERS"]
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


def test_cli_values_and_defaults():
    args = parse_args(
        ["--server", "vc01.lab.local", "--user", "admin@vsphere.local", "--password", "secret"]
    )

    config = load_config(args)

    assert config.server == "vc01.lab.local"
    assert config.user == "admin@vsphere.local"
    assert config.insecure is False
    assert config.out_path == DEFAULT_OUT_PATH
    assert config.csv_path is None
    assert config.mode == OutputMode.FULL
    assert config.vm_filter == []
    assert config.workers == 1
    assert config.env_file_used is None
    assert config.offline is False


def test_env_file_and_process_environment(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "VCENTER_HOST=vc-from-file\nVCENTER_USER=file-user\nVCENTER_PASS=file-pass\n"
        "VCENTER_INSECURE=true\nCSV_PATH=out/report.csv\nRIGHTSIZER_WORKERS=4\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("VSPHERE_USER", "env-user")

    config = load_config(parse_args([]))

    assert Path(config.env_file_used).resolve() == env_file.resolve()
    assert config.server == "vc-from-file"
    assert config.user == "env-user"
    assert config.password == "file-pass"
    assert config.insecure is True
    assert config.csv_path == "out/report.csv"
    assert config.workers == 4


def test_cli_overrides_environment(monkeypatch):
    monkeypatch.setenv("VCENTER_URL", "vc-env")
    monkeypatch.setenv("VCENTER_USER", "env-user")
    monkeypatch.setenv("VCENTER_PASSWORD", "env-pass")

    config = load_config(parse_args(["--server", "vc-cli", "--workers", "2"]))

    assert config.server == "vc-cli"
    assert config.user == "env-user"
    assert config.workers == 2


def test_mode_filter_and_offline_flags():
    args = parse_args(
        ["--simple", "--vm", "sql*", "--vm", " app01 ", "--inventory-json", "inventory.json"]
    )

    config = load_config(args)

    assert config.mode == OutputMode.SIMPLE
    assert config.vm_filter == ["sql*", "app01"]
    assert config.offline is True


def test_explicit_missing_env_file_is_an_error(tmp_path):
    with pytest.raises(RuntimeError):
        load_config(parse_args(["--env-file", str(tmp_path / "missing.env")]))


@pytest.mark.parametrize("value", ["0", "many"])
def test_invalid_workers(monkeypatch, value):
    monkeypatch.setenv("RIGHTSIZER_WORKERS", value)

    with pytest.raises(RuntimeError):
        load_config(parse_args(["--inventory-json", "inventory.json"]))
