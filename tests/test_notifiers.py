"""Tests for the notifiers."""

import logging
import sys
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from config import Settings
from models import Classification
from notifiers import AggregateNotifier, LogNotifier, Notifier, build_notifier
from notifiers.command import CommandNotifier
from notifiers.sentry import SentryNotifier, build_event, fingerprint

LATE = Classification.late()
EARLY = Classification.early(timedelta(seconds=5))


class Exploding(Notifier):
    def notify(self, name, classification):
        raise RuntimeError("boom")


class TestLogNotifier:

    def test_late_is_critical(self, caplog):
        with caplog.at_level(logging.INFO, logger="alerts"):
            LogNotifier().notify("cron", LATE)

        assert caplog.records[-1].levelno == logging.CRITICAL
        assert "cron" in caplog.records[-1].getMessage()

    def test_early_mentions_seconds(self, caplog):
        with caplog.at_level(logging.INFO, logger="alerts"):
            LogNotifier().notify("job", EARLY)

        assert caplog.records[-1].levelno == logging.WARNING
        assert "5s" in caplog.records[-1].getMessage()

    def test_custom_logger(self, caplog):
        with caplog.at_level(logging.INFO, logger="ops"):
            LogNotifier(logging.getLogger("ops")).notify("cron", LATE)

        assert caplog.records[-1].name == "ops"


class TestAggregateNotifier:

    def test_calls_every_member_in_order(self):
        calls = []

        class Tracking(Notifier):
            def __init__(self, tag):
                self.tag = tag

            def notify(self, name, classification):
                calls.append(self.tag)

        AggregateNotifier([Tracking(1), Tracking(2), Tracking(3)]).notify("x", LATE)

        assert calls == [1, 2, 3]

    def test_failure_does_not_stop_others(self, notifier, caplog):
        aggregate = AggregateNotifier([Exploding(), notifier])

        aggregate.notify("cron", LATE)

        assert notifier.late == ["cron"]
        assert "Exploding" in caplog.text

    def test_members_are_fixed(self, notifier):
        members = [notifier]
        aggregate = AggregateNotifier(members)
        members.append(Exploding())

        assert len(aggregate) == 1


class TestSentryNotifier:

    def test_fingerprint_by_kind(self):
        assert fingerprint("backup", LATE) == "backup=FAIL"
        assert fingerprint("backup", EARLY) == "backup=EARLY"

    def test_late_event(self):
        event = build_event("backup", LATE)

        assert event["message"] == "Switch `backup` failed to make its deadline."
        assert event["fingerprint"] == ["backup=FAIL"]
        assert event["tags"] == {"switch": "backup"}
        assert event["logger"] == "condemn"

    def test_early_event(self):
        event = build_event("backup", EARLY)

        assert event["message"] == "Switch `backup` checked in early by 5 seconds"
        assert event["fingerprint"] == ["backup=EARLY"]

    def test_submits_to_client(self):
        client = MagicMock()

        SentryNotifier(client).notify("backup", LATE)

        client.capture_event.assert_called_once_with(build_event("backup", LATE))

    def test_client_failure_is_swallowed(self, caplog):
        client = MagicMock()
        client.capture_event.side_effect = RuntimeError("network down")

        SentryNotifier(client).notify("backup", LATE)

        assert "network down" in caplog.text


@pytest.mark.slow
class TestCommandNotifier:
    """Runs real subprocesses through the current interpreter."""

    @staticmethod
    def _writer(target):
        script = (
            "import os, sys; "
            "open(sys.argv[1], 'w').write(os.environ['CONDEMN_NAME'] + ' ' + os.environ['CONDEMN_EARLY'])"
        )
        return CommandNotifier([sys.executable, "-c", script, str(target)])

    @pytest.mark.asyncio
    async def test_late_sets_zero(self, tmp_path):
        out = tmp_path / "out.txt"
        cmd = self._writer(out)

        cmd.notify("cron job", LATE)
        await cmd.drain()

        assert out.read_text() == "cron job 0"

    @pytest.mark.asyncio
    async def test_early_sets_seconds(self, tmp_path):
        out = tmp_path / "out.txt"
        cmd = self._writer(out)

        cmd.notify("job", EARLY)
        await cmd.drain()

        assert out.read_text() == "job 5"

    @pytest.mark.asyncio
    async def test_spawn_failure_is_logged(self, tmp_path, caplog):
        cmd = CommandNotifier([str(tmp_path / "does-not-exist")])

        cmd.notify("job", LATE)
        await cmd.drain()

        assert "Failed to spawn command" in caplog.text

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_only_logged(self, caplog):
        cmd = CommandNotifier([sys.executable, "-c", "raise SystemExit(3)"])

        with caplog.at_level(logging.INFO, logger="notifiers.command"):
            cmd.notify("job", LATE)
            await cmd.drain()

        assert "status 3" in caplog.text

    def test_from_command_line_splits_shell_words(self):
        cmd = CommandNotifier.from_command_line("notify-send 'switch fired' --urgency=critical")

        assert cmd.cmd == ["notify-send", "switch fired", "--urgency=critical"]

    def test_empty_command_rejected(self):
        with pytest.raises(ValueError):
            CommandNotifier([])


class TestBuildNotifier:

    def test_log_only_by_default(self):
        aggregate = build_notifier(Settings())

        assert [type(n) for n in aggregate.notifiers] == [LogNotifier]

    def test_command_and_sentry(self, monkeypatch):
        monkeypatch.setattr(SentryNotifier, "from_dsn", classmethod(lambda cls, dsn: cls(MagicMock())))
        settings = Settings(notify="sentry", sentry_dsn="https://key@sentry.example/1",
                            notify_command="echo hi")

        aggregate = build_notifier(settings)

        assert [type(n) for n in aggregate.notifiers] == [LogNotifier, CommandNotifier, SentryNotifier]
