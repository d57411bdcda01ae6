import json
import os
import stat
import sys

import pytest

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from notion2memos import config as config_module
from notion2memos.config import CONFIG_TEMPLATE, load_config, write_config_template
from notion2memos.utils.errors import ConfigError

FULL_ENV = {
    "NOTION_TOKEN": "secret_env",
    "MEMOS_URL": "https://memos.example.com",
    "MEMOS_TOKEN": "memos_env",
}


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    monkeypatch.setattr(config_module, "default_config_path", lambda: str(tmp_path / "home" / "config.json"))
    monkeypatch.chdir(tmp_path)


def write_json(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))
    return str(path)


def test_environment_alone_is_enough():
    config = load_config(env=FULL_ENV)
    assert config["notion"]["token"] == "secret_env"
    assert config["memos"]["url"] == "https://memos.example.com"
    assert config["notion"]["version"] == "2025-09-03"
    assert config["migration"]["state_file"].endswith(os.path.join(".notion2memos", "state.json"))


def test_prefixed_environment_names(tmp_path):
    env = {"NOTION2MEMOS_" + k: v for k, v in FULL_ENV.items()}
    assert load_config(env=env)["memos"]["token"] == "memos_env"


def test_file_values_are_read(tmp_path):
    path = write_json(tmp_path / "c.json", {
        "notion": {"token": "secret_file"},
        "memos": {"url": "https://m.example", "token": "tok"},
        "migration": {"state_file": str(tmp_path / "s.json")},
    })
    config = load_config(path, env={})
    assert config["notion"]["token"] == "secret_file"
    assert config["migration"]["state_file"] == str(tmp_path / "s.json")
    assert config["migration"]["dry_run_dir"] == "dry-run-output"


def test_environment_overrides_file(tmp_path):
    path = write_json(tmp_path / "c.json", {
        "notion": {"token": "secret_file"},
        "memos": {"url": "https://m.example", "token": "tok"},
    })
    assert load_config(path, env={"NOTION_TOKEN": "secret_env"})["notion"]["token"] == "secret_env"


def test_default_path_then_working_directory(tmp_path):
    write_json(tmp_path / "config.json", {
        "notion": {"token": "from_cwd"},
        "memos": {"url": "https://m.example", "token": "tok"},
    })
    assert load_config(env={})["notion"]["token"] == "from_cwd"

    write_json(tmp_path / "home" / "config.json", {
        "notion": {"token": "from_home"},
        "memos": {"url": "https://m.example", "token": "tok"},
    })
    assert load_config(env={})["notion"]["token"] == "from_home"


def test_missing_required_value_names_it():
    env = dict(FULL_ENV)
    del env["MEMOS_TOKEN"]
    with pytest.raises(ConfigError) as info:
        load_config(env=env)
    assert "memos.token" in str(info.value)


def test_template_placeholders_are_rejected(tmp_path):
    path = write_json(tmp_path / "c.json", CONFIG_TEMPLATE)
    with pytest.raises(ConfigError):
        load_config(path, env={})


def test_validation_can_be_skipped():
    config = load_config(env={}, validate=False)
    assert "state_file" in config["migration"]


def test_explicit_missing_file_is_an_error(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "nope.json"), env=FULL_ENV)


def test_malformed_file_is_an_error(tmp_path):
    path = tmp_path / "c.json"
    path.write_text("[1, 2")
    with pytest.raises(ConfigError):
        load_config(str(path), env=FULL_ENV)


def test_non_object_section_is_an_error(tmp_path):
    path = write_json(tmp_path / "c.json", {"memos": "https://m.example"})
    with pytest.raises(ConfigError):
        load_config(path, env=FULL_ENV)


def test_write_template_creates_private_file(tmp_path):
    target = tmp_path / "out" / "config.json"
    written = write_config_template(str(target))
    assert written == str(target)
    assert json.loads(target.read_text()) == CONFIG_TEMPLATE
    if os.name == "posix":
        assert stat.S_IMODE(os.stat(target).st_mode) == 0o600


def test_write_template_refuses_to_overwrite(tmp_path):
    target = tmp_path / "config.json"
    target.write_text("{}")
    with pytest.raises(ConfigError):
        write_config_template(str(target))
    write_config_template(str(target), force=True)
    assert json.loads(target.read_text()) == CONFIG_TEMPLATE
