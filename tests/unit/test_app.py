"""
Unit tests for the command line entry point.

AuthManager is patched so runs use the in-memory fake directory client.
"""
import json
from unittest.mock import Mock, patch

import pytest

from stalesweep.app import (
    EXIT_ERROR, EXIT_INTERRUPTED, EXIT_OK, build_parser, configure_logging, main
)
from stalesweep.exceptions import APIError, AuthenticationError
from tests.fixtures.mock_data import FakeDirectoryClient, create_mock_devices


@pytest.fixture
def settings_file(tmp_path, monkeypatch):
    monkeypatch.delenv("STALESWEEP_BASE_URL", raising=False)
    monkeypatch.delenv("STALESWEEP_LOG_LEVEL", raising=False)
    return tmp_path / "settings.json"


def run_cli(client, settings_file, *args):
    with patch("stalesweep.app.AuthManager") as auth_cls:
        auth_cls.return_value.build_client.return_value = client
        code = main(["--settings", str(settings_file), "--quiet", *args])
    return code, auth_cls


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.days is None
        assert args.threshold is None
        assert args.disable_threshold is False
        assert args.dry_run is False

    def test_inactivity_days_alias(self):
        assert build_parser().parse_args(["--inactivity-days", "30"]).days == 30


class TestMain:
    def test_full_run(self, settings_file):
        client = FakeDirectoryClient(create_mock_devices(3))
        code, auth_cls = run_cli(client, settings_file, "--token", "abc")

        assert code == EXIT_OK
        assert client.deleted == ["dev-0001", "dev-0002", "dev-0003"]
        assert client.closed is True
        assert auth_cls.call_args[1]["token"] == "abc"

    def test_threshold_abort_is_success(self, settings_file):
        client = FakeDirectoryClient(create_mock_devices(20))
        code, _ = run_cli(client, settings_file)

        assert code == EXIT_OK
        assert client.deleted == []

    def test_disable_threshold(self, settings_file):
        client = FakeDirectoryClient(create_mock_devices(25))
        code, _ = run_cli(client, settings_file, "--disable-threshold")

        assert code == EXIT_OK
        assert len(client.deleted) == 25

    def test_negative_threshold_disables_gate(self, settings_file):
        client = FakeDirectoryClient(create_mock_devices(25))
        code, _ = run_cli(client, settings_file, "--threshold", "-1")
        assert len(client.deleted) == 25

    def test_dry_run(self, settings_file):
        client = FakeDirectoryClient(create_mock_devices(4))
        code, _ = run_cli(client, settings_file, "--dry-run")

        assert code == EXIT_OK
        assert client.deleted == []

    def test_settings_file_supplies_defaults(self, settings_file):
        settings_file.write_text(json.dumps({"threshold": 3, "inactivity_days": 30}))
        client = FakeDirectoryClient(create_mock_devices(3))
        code, auth_cls = run_cli(client, settings_file)

        assert code == EXIT_OK
        assert client.deleted == []
        assert len(client.list_calls) == 1

    def test_list_only(self, settings_file):
        client = FakeDirectoryClient(create_mock_devices(30))
        code, _ = run_cli(client, settings_file, "--list")

        assert code == EXIT_OK
        assert client.deleted == []
        assert len(client.list_calls) == 1

    def test_listing_failure_exits_with_error(self, settings_file):
        client = FakeDirectoryClient(list_error=APIError("GET failed", status_code=500))
        code, _ = run_cli(client, settings_file)
        assert code == EXIT_ERROR

    def test_missing_token_exits_with_error(self, settings_file):
        with patch("stalesweep.app.AuthManager") as auth_cls:
            auth_cls.return_value.build_client.side_effect = AuthenticationError("No access token")
            code = main(["--settings", str(settings_file)])
        assert code == EXIT_ERROR

    def test_invalid_days_exits_with_error(self, settings_file):
        code, _ = run_cli(FakeDirectoryClient(), settings_file, "--days", "0")
        assert code == EXIT_ERROR

    def test_keyboard_interrupt(self, settings_file):
        client = FakeDirectoryClient(create_mock_devices(3), interrupt_on="dev-0002")
        code, _ = run_cli(client, settings_file)

        assert code == EXIT_INTERRUPTED
        assert client.deleted == ["dev-0001"]
        assert client.closed is True

    def test_show_settings(self, settings_file):
        code, auth_cls = run_cli(FakeDirectoryClient(), settings_file, "--show-settings")
        assert code == EXIT_OK
        auth_cls.assert_not_called()

    def test_closed_stdin_during_confirmation(self, settings_file):
        client = FakeDirectoryClient(create_mock_devices(3))
        with patch("stalesweep.ui.Confirm.ask", side_effect=EOFError):
            code, _ = run_cli(client, settings_file, "--confirm")

        assert code == EXIT_INTERRUPTED
        assert client.deleted == []
        assert client.closed is True

    def test_list_limit(self, settings_file, capsys):
        client = FakeDirectoryClient(create_mock_devices(5))
        code, _ = run_cli(client, settings_file, "--list", "--limit", "2")

        assert code == EXIT_OK
        assert "and 3 more" in capsys.readouterr().out

    def test_save_settings(self, settings_file):
        code, auth_cls = run_cli(
            FakeDirectoryClient(), settings_file,
            "--save-settings", "--days", "45", "--threshold", "5", "--include-never",
        )

        assert code == EXIT_OK
        auth_cls.assert_not_called()
        saved = json.loads(settings_file.read_text())
        assert saved["inactivity_days"] == 45
        assert saved["threshold"] == 5
        assert saved["include_never_signed_in"] is True

    def test_save_settings_rejects_invalid_days(self, settings_file):
        code, _ = run_cli(FakeDirectoryClient(), settings_file, "--save-settings", "--days", "0")
        assert code == EXIT_ERROR
        assert not settings_file.exists()

    def test_logging_configured_before_settings_load(self, settings_file):
        settings_file.write_text("{not json")
        calls = Mock()
        with patch("stalesweep.app.configure_logging", wraps=configure_logging) as cfg, \
                patch("stalesweep.settings.logger") as settings_logger:
            calls.attach_mock(cfg, "configure_logging")
            calls.attach_mock(settings_logger.warning, "warning")
            code, _ = run_cli(FakeDirectoryClient(), settings_file, "--show-settings")

        assert code == EXIT_OK
        assert [c[0] for c in calls.mock_calls] == ["configure_logging", "warning"]
        assert "Ignoring unreadable settings file" in settings_logger.warning.call_args[0][0]
