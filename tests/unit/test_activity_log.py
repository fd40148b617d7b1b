import json
import logging
import threading

import pytest

from ircbot.activity import ActivityLog, InMemoryActivityLog, JsonLinesActivityLog
from ircbot.irc.codec import LineType
from ircbot.irc.models import ActivityEntry


def _entry(channel="#x", message="hi", ts=1700000000):
    return ActivityEntry(LineType.CHANNEL_MESSAGE, "awesomebot", "awesome", channel, message, ts)


def test_sinks_satisfy_protocol(tmp_path):
    assert isinstance(InMemoryActivityLog(), ActivityLog)
    assert isinstance(JsonLinesActivityLog(tmp_path / "a.jsonl"), ActivityLog)


def test_in_memory_log_is_bounded():
    log = InMemoryActivityLog(limit=2)
    for i in range(3):
        log.record(_entry(message=str(i)))
    assert [e.message for e in log.entries] == ["1", "2"]


def test_in_memory_filter_by_channel():
    log = InMemoryActivityLog()
    log.record(_entry("#a"))
    log.record(_entry("#B"))
    assert len(log.for_channel("#b")) == 1


def test_json_lines_log_appends(tmp_path):
    path = tmp_path / "activity.jsonl"
    log = JsonLinesActivityLog(path)
    log.record(_entry(message="one"))
    log.record(_entry(message="två"))

    rows = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert rows[0] == {
        "type": "chanmsg",
        "nickname": "awesomebot",
        "ident": "awesome",
        "channel": "#x",
        "message": "one",
        "time": 1700000000,
    }
    assert rows[1]["message"] == "två"


def test_entry_as_tuple():
    assert _entry().as_tuple() == (
        "chanmsg", "awesomebot", "awesome", "#x", "hi", 1700000000
    )


@pytest.mark.asyncio
async def test_json_lines_log_writes_off_the_loop_in_order(tmp_path, monkeypatch):
    path = tmp_path / "activity.jsonl"
    log = JsonLinesActivityLog(path)
    loop_thread = threading.get_ident()
    writers: list[int] = []
    real_append = log._append

    def tracking_append(line):
        writers.append(threading.get_ident())
        real_append(line)

    monkeypatch.setattr(log, "_append", tracking_append)

    for i in range(5):
        log.record(_entry(message=str(i)))
    await log.close()

    rows = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [r["message"] for r in rows] == ["0", "1", "2", "3", "4"]
    assert writers and loop_thread not in writers


@pytest.mark.asyncio
async def test_json_lines_write_failure_is_logged(tmp_path, caplog):
    caplog.set_level(logging.WARNING)
    log = JsonLinesActivityLog(tmp_path / "missing" / "activity.jsonl")

    log.record(_entry())
    await log.close()

    assert "Activity log write failed" in caplog.text
