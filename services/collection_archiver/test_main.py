"""
Tests for the service entry point exit codes and signal wiring
"""

import signal
from datetime import timedelta
from unittest import mock

from . import main as entry
from .config import ArchiverConfig
from .errors import ArchiveExistsError, ConfigError, RunCancelled

CFG = ArchiverConfig(
    database_url="postgresql://dummy",
    table="events",
    storage_url="noop://",
    delay=timedelta(0),
)

STATS = {"days_archived": 2, "days_skipped": 0, "documents_archived": 3, "documents_deleted": 3}


def _run_main(run_archiver):
    with mock.patch.object(entry, "load", return_value=CFG), \
            mock.patch.object(entry, "run_archiver", run_archiver), \
            mock.patch.object(entry.signal, "signal") as install:
        return entry.main(), install


def test_success_exit_code():
    code, install = _run_main(mock.Mock(return_value=STATS))
    assert code == 0
    installed = {call.args[0] for call in install.call_args_list}
    assert installed == {signal.SIGTERM, signal.SIGINT}


def test_failure_exit_code():
    code, _ = _run_main(mock.Mock(side_effect=ArchiveExistsError("target file exists: 2024/11/01.json.gz")))
    assert code == 1


def test_cancelled_exit_code():
    code, _ = _run_main(mock.Mock(side_effect=RunCancelled(STATS)))
    assert code == entry.EXIT_CANCELLED


def test_signal_sets_stop_event():
    seen = {}

    def fake_run(cfg, stop_event):
        handler = install.call_args_list[0].args[1]
        handler(signal.SIGTERM, None)
        seen["stopped"] = stop_event.is_set()
        return STATS

    with mock.patch.object(entry, "load", return_value=CFG), \
            mock.patch.object(entry, "run_archiver", fake_run), \
            mock.patch.object(entry.signal, "signal") as install:
        assert entry.main() == 0

    assert seen["stopped"]


def test_config_error_exit_code():
    with mock.patch.object(entry, "load", side_effect=ConfigError("ARCHIVER_TABLE is required")):
        assert entry.main() == 1
