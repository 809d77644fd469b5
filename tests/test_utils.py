import io
import json
import logging

from proctrace.event import ProcessExecution
from proctrace.projector import TimelineEntry
from proctrace.utils import Once, json_default, log_extra, setup_logging


def test_once_caches_first_outcome() -> None:
    calls: list[int] = []

    def fn() -> int:
        calls.append(1)
        return len(calls)

    once = Once(fn)
    assert not once.has_run
    assert once.run() == 1
    assert once.run() == 1
    assert once.has_run
    assert calls == [1]


def test_json_default() -> None:
    execution = ProcessExecution("make", 1, 0, 0, "/usr/bin/make", ("make",), 5, 6, 0)
    assert json_default(execution)["duration_ns"] == 6
    assert json_default(TimelineEntry("a", None, False, 0, 1)) == {
        "label": "a",
        "annotation": None,
        "critical": False,
        "start_ms": 0,
        "end_ms": 1,
    }


def test_setup_logging_writes_json() -> None:
    stream = io.StringIO()
    setup_logging("INFO", stream)
    execution = ProcessExecution("make", 1, 0, 0, "/usr/bin/make", ("make",), 5, 6, 0)
    logging.getLogger("proctrace.test").info(
        "hello", extra=log_extra(execution=execution)
    )
    logged = json.loads(stream.getvalue().splitlines()[-1])
    assert logged["message"] == "hello"
    assert logged["levelname"] == "INFO"
    assert logged["execution"]["name"] == "make"

    # a second setup replaces the handler rather than adding one
    setup_logging("INFO", stream)
    handlers = [
        h
        for h in logging.getLogger().handlers
        if getattr(h, "stream", None) is stream
    ]
    assert len(handlers) == 1
