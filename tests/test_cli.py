"""
Tests for the command line entry point.
"""

import json
from unittest.mock import Mock, patch

import pytest

import main


@pytest.fixture(autouse=True)
def no_log_files():
    with patch("main.setup_logger") as setup:
        yield setup


def test_run_once_exits_zero_on_success():
    engine = Mock()
    notifier = Mock()
    service = Mock()
    service.run.return_value = Mock(ingestion_id=1, duration_ms=10, data_version="v1")

    with patch("faa_registry.ingestion.create_store_engine", return_value=engine), \
         patch("faa_registry.notifications.get_notifier", return_value=notifier), \
         patch("faa_registry.ingestion.RefreshService", return_value=service):
        assert main.main(["--run-once"]) == 0

    service.shutdown.assert_called_once()
    notifier.flush.assert_called_once()
    engine.dispose.assert_called_once()


def test_run_once_exits_non_zero_on_failure():
    engine = Mock()
    service = Mock()
    service.run.side_effect = RuntimeError("download failed")

    with patch("faa_registry.ingestion.create_store_engine", return_value=engine), \
         patch("faa_registry.notifications.get_notifier", return_value=Mock()), \
         patch("faa_registry.ingestion.RefreshService", return_value=service):
        assert main.main(["--run-once", "--log-level", "DEBUG"]) == 1

    engine.dispose.assert_called_once()


def test_status_prints_not_available_json(engine, capsys):
    with patch("faa_registry.ingestion.create_store_engine", return_value=engine):
        assert main.main(["--status"]) == 0

    out = capsys.readouterr().out
    payload = json.loads(out[out.index("{"):])
    assert payload["status"] == "NOT_AVAILABLE"
    assert payload["id"] is None


def test_run_once_and_status_are_mutually_exclusive():
    with pytest.raises(SystemExit):
        main.main(["--run-once", "--status"])


def test_log_level_flag_overrides_settings(no_log_files):
    with patch("main.run_once", return_value=0):
        main.main(["--run-once", "--log-level", "WARNING"])

    assert no_log_files.call_args.kwargs["log_level"] == "WARNING"


@pytest.mark.parametrize(
    ("argv", "expected"),
    [
        (["--run-once"], "MANUAL"),
        (["--run-once", "--trigger", "scheduled"], "SCHEDULED"),
    ],
)
def test_run_once_records_the_requested_trigger(argv, expected):
    from faa_registry.ingestion import RefreshTrigger

    service = Mock()
    service.run.return_value = Mock(ingestion_id=1, duration_ms=10, data_version="v1")

    with patch("faa_registry.ingestion.create_store_engine", return_value=Mock()), \
         patch("faa_registry.notifications.get_notifier", return_value=Mock()), \
         patch("faa_registry.ingestion.RefreshService", return_value=service):
        assert main.main(argv) == 0

    service.run.assert_called_once_with(RefreshTrigger(expected))


def test_unknown_trigger_is_rejected():
    with pytest.raises(SystemExit):
        main.main(["--run-once", "--trigger", "cron"])
