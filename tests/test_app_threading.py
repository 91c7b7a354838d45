import threading
from queue import Queue
from unittest import mock

import pytest

pytest.importorskip("tkinter")

from prayer_extractor.core.app import ExtractorApp  # noqa: E402


@pytest.fixture
def app():
    # No window: only the main-loop handoff is exercised
    app = ExtractorApp.__new__(ExtractorApp)
    app.ui_calls = Queue()
    app.refresh = mock.Mock()
    return app


def call_from_worker(app, fn):
    outcome = {}

    def work():
        try:
            outcome["value"] = app.run_on_main(fn, timeout=5)
        except Exception as e:
            outcome["error"] = e

    worker = threading.Thread(target=work)
    worker.start()
    app.ui_calls.get(timeout=5)()
    worker.join(5)
    return outcome


def test_run_on_main_executes_on_main_thread(app):
    outcome = call_from_worker(app, lambda: threading.current_thread().name)
    assert outcome["value"] == threading.main_thread().name
    app.refresh.assert_called_once()


def test_run_on_main_reraises_in_caller(app):
    def fail():
        raise ValueError("boom")

    outcome = call_from_worker(app, fail)
    assert isinstance(outcome["error"], ValueError)
    app.refresh.assert_called_once()


def test_run_on_main_inline_on_main_thread(app):
    assert app.run_on_main(lambda: 42) == 42
    assert app.ui_calls.empty()
    app.refresh.assert_called_once()
