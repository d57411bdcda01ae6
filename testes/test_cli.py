import json
import os
import signal
import sys

import pytest

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from notion2memos import cli
from notion2memos.config import CONFIG_TEMPLATE
from notion2memos.migration_tool import MigrationSummary
from notion2memos.utils.errors import CancelledError, TransportError


class FakeTool:
    instances = []
    outcome = None

    def __init__(self, config_file=None, dry_run=False):
        self.config_file = config_file
        self.dry_run = dry_run
        self.calls = []
        self.cancelled = False
        FakeTool.instances.append(self)

    def cancel(self):
        self.cancelled = True

    def migrate(self, *, resume=False, filter_titles=None):
        self.calls.append({"resume": resume, "filter_titles": filter_titles})
        if FakeTool.outcome == "sigint":
            handler = signal.getsignal(signal.SIGINT)
            handler(signal.SIGINT, None)
            raise CancelledError("cancelled while waiting for a rate-limit permit")
        if FakeTool.outcome is not None:
            raise FakeTool.outcome
        return MigrationSummary(found=3, selected=2, migrated=2, memos_created=2)


@pytest.fixture
def fake_tool(monkeypatch):
    FakeTool.instances = []
    FakeTool.outcome = None
    monkeypatch.setattr(cli, "NotionToMemosMigrationTool", FakeTool)
    return FakeTool


def test_migrate_passes_flags(fake_tool):
    code = cli.main([
        "migrate", "--resume", "--dry-run",
        "--filter-title", "Groceries", "--filter-title", "Ideas",
        "--config", "custom.json",
    ])
    assert code == cli.EXIT_OK
    tool = fake_tool.instances[0]
    assert tool.config_file == "custom.json"
    assert tool.dry_run is True
    assert tool.calls == [{"resume": True, "filter_titles": ["Groceries", "Ideas"]}]


def test_migrate_without_filters(fake_tool):
    assert cli.main(["migrate"]) == cli.EXIT_OK
    assert fake_tool.instances[0].calls == [{"resume": False, "filter_titles": None}]


def test_migration_error_exits_with_failure(fake_tool):
    fake_tool.outcome = TransportError(429, "rate_limited")
    assert cli.main(["migrate"]) == cli.EXIT_FAILURE


def test_interrupt_exits_130(fake_tool):
    fake_tool.outcome = KeyboardInterrupt()
    assert cli.main(["migrate"]) == cli.EXIT_INTERRUPTED


def test_unexpected_error_exits_with_failure(fake_tool):
    fake_tool.outcome = RuntimeError("bug")
    assert cli.main(["migrate"]) == cli.EXIT_FAILURE


def test_missing_config_file_fails_before_migrating(tmp_path, monkeypatch):
    for name in ("NOTION_TOKEN", "MEMOS_URL", "MEMOS_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    assert cli.main(["migrate", "--config", str(tmp_path / "absent.json")]) == cli.EXIT_FAILURE


def test_init_writes_template_and_refuses_second_time(tmp_path, capsys):
    target = tmp_path / "config.json"
    assert cli.main(["init", "--config", str(target)]) == cli.EXIT_OK
    assert json.loads(target.read_text()) == CONFIG_TEMPLATE
    assert str(target) in capsys.readouterr().out

    assert cli.main(["init", "--config", str(target)]) == cli.EXIT_FAILURE
    assert cli.main(["init", "--config", str(target), "--force"]) == cli.EXIT_OK


def test_reset_removes_state_file(tmp_path, capsys):
    state_file = tmp_path / "state.json"
    state_file.write_text(json.dumps({"processed_pages": {"p1": True}}))
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"migration": {"state_file": str(state_file)}}))

    assert cli.main(["reset", "--config", str(config_file)]) == cli.EXIT_OK
    assert not state_file.exists()
    assert "Migration state has been reset" in capsys.readouterr().out


def test_reset_without_state_file_is_fine(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"migration": {"state_file": str(tmp_path / "none.json")}}))
    assert cli.main(["reset", "--config", str(config_file)]) == cli.EXIT_OK


def test_log_file_option(tmp_path, fake_tool):
    log_file = tmp_path / "run.log"
    assert cli.main(["migrate", "--debug", "--log-file", str(log_file)]) == cli.EXIT_OK
    assert log_file.exists()


def test_command_is_required():
    with pytest.raises(SystemExit):
        cli.main([])


def test_ctrl_c_cancels_the_run_and_exits_130(fake_tool):
    before = signal.getsignal(signal.SIGINT)
    fake_tool.outcome = "sigint"
    assert cli.main(["migrate"]) == cli.EXIT_INTERRUPTED
    assert fake_tool.instances[0].cancelled is True
    assert signal.getsignal(signal.SIGINT) is before


def test_handler_is_restored_after_a_normal_run(fake_tool):
    before = signal.getsignal(signal.SIGINT)
    assert cli.main(["migrate"]) == cli.EXIT_OK
    assert signal.getsignal(signal.SIGINT) is before
