import json
from unittest import mock

import pytest
import requests

from prayer_extractor.core.errors import BotConfigurationError
from prayer_extractor.core.exporter import (
    BotSender,
    SendStatus,
    export_to_file,
    serialize_records,
)
from prayer_extractor.core.validation import parse_prayer_json

from .conftest import make_response

POST = "prayer_extractor.core.exporter.requests.post"


class FakeScheduler:
    def __init__(self):
        self.calls = []

    def __call__(self, delay, callback):
        self.calls.append((delay, callback))

    def fire(self):
        for _, callback in self.calls:
            callback()
        self.calls.clear()


@pytest.fixture
def scheduler():
    return FakeScheduler()


def make_sender(scheduler, base_url="http://bot.local:3001/", statuses=None):
    return BotSender(
        base_url,
        scheduler=scheduler,
        on_status_change=statuses.append if statuses is not None else None,
    )


def test_export_writes_pretty_json(tmp_path, records):
    path = export_to_file(records, tmp_path)
    assert path == tmp_path / "prayer-times.json"
    text = path.read_text(encoding="utf-8")
    assert text == json.dumps(records, indent=2)
    assert parse_prayer_json(text) == records


def test_export_creates_directory(tmp_path, records):
    path = export_to_file(records, tmp_path / "out", filename="march.json")
    assert path.exists()
    assert path.name == "march.json"


def test_serialize_roundtrip_after_edit(records):
    records[0]["isha"] = "19:05"
    assert parse_prayer_json(serialize_records(records)) == records


def test_send_success(scheduler, records):
    statuses = []
    sender = make_sender(scheduler, statuses=statuses)
    with mock.patch(POST, return_value=make_response(200)) as post:
        assert sender.send(records) is True

    url = post.call_args.args[0]
    assert url == "http://bot.local:3001/api/update_times"
    assert post.call_args.kwargs["headers"] == {"Content-Type": "application/json"}
    assert json.loads(post.call_args.kwargs["data"]) == records
    assert statuses == [SendStatus.SENDING, SendStatus.SUCCESS]
    assert scheduler.calls[0][0] == 3

    scheduler.fire()
    assert sender.status == SendStatus.IDLE
    assert statuses[-1] == SendStatus.IDLE


def test_send_http_500_goes_error_then_idle(scheduler, records):
    statuses = []
    sender = make_sender(scheduler, statuses=statuses)
    with mock.patch(POST, return_value=make_response(500, reason="Internal Server Error")):
        assert sender.send(records) is False

    assert statuses == [SendStatus.SENDING, SendStatus.ERROR]
    assert sender.status == SendStatus.ERROR
    assert "500" in sender.last_error
    scheduler.fire()
    assert statuses == [SendStatus.SENDING, SendStatus.ERROR, SendStatus.IDLE]


def test_send_transport_error(scheduler, records):
    sender = make_sender(scheduler)
    with mock.patch(POST, side_effect=requests.exceptions.ConnectionError("refused")) as post:
        sender.send(records)
    assert post.call_count == 1
    assert sender.status == SendStatus.ERROR
    assert len(scheduler.calls) == 1


@pytest.mark.parametrize("base_url", [None, ""])
def test_send_refused_without_base_url(scheduler, records, base_url):
    sender = make_sender(scheduler, base_url=base_url)
    with mock.patch(POST) as post:
        with pytest.raises(BotConfigurationError):
            sender.send(records)
    post.assert_not_called()
    assert sender.status == SendStatus.IDLE
    assert scheduler.calls == []


def test_from_config(scheduler):
    sender = BotSender.from_config({"base_url": "https://bot.example", "revert_delay": 1}, scheduler=scheduler)
    assert sender.endpoint == "https://bot.example/api/update_times"
    assert sender.revert_delay == 1
    assert BotSender.from_config(None).endpoint is None


def test_earlier_revert_does_not_end_a_later_send(scheduler, records):
    sender = make_sender(scheduler)
    with mock.patch(POST, return_value=make_response(200)):
        sender.send(records)
    first_revert = scheduler.calls[0][1]

    nested = []

    def slow_post(*args, **kwargs):
        # The first send's timer fires while this POST is in flight
        first_revert()
        assert sender.status == SendStatus.SENDING
        nested.append(sender.send(records))
        return make_response(200)

    with mock.patch(POST, side_effect=slow_post) as post:
        assert sender.send(records) is True

    assert nested == [False]
    assert post.call_count == 1
    assert sender.status == SendStatus.SUCCESS

    scheduler.calls[-1][1]()
    assert sender.status == SendStatus.IDLE
