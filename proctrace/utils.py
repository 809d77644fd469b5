import collections.abc
import dataclasses
import inspect
import json
import logging
import sys
import typing

import pythonjsonlogger.defaults as d
import pythonjsonlogger.json


T = typing.TypeVar("T")


class Once(typing.Generic[T]):
    """
    Run a function at most once.  Later calls return the first outcome without
    calling the function again.
    """

    _has_run: bool = False
    _result: T | None = None
    _fn: collections.abc.Callable[[], T]

    def __init__(self, fn: collections.abc.Callable[[], T]) -> None:
        self._fn = fn

    @property
    def has_run(self) -> bool:
        return self._has_run

    def run(self) -> T:
        if not self._has_run:
            self._result = self._fn()
            self._has_run = True
        return typing.cast(T, self._result)


def setup_logging(
    level: int | str = "INFO", stream: typing.TextIO | None = None
) -> None:
    logger = logging.getLogger()

    log_handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    formatter = pythonjsonlogger.json.JsonFormatter(
        "{message}{asctime}{exc_info}{levelname}{funcName}{lineno}{module}"
        "{name}{process}{stack_info}",
        style="{",
        json_default=json_default,
    )
    log_handler.setFormatter(formatter)

    # setup may run more than once per process (tests); don't stack handlers
    for h in list(logger.handlers):
        if isinstance(h.formatter, pythonjsonlogger.json.JsonFormatter):
            logger.removeHandler(h)
    logger.addHandler(log_handler)

    logger.setLevel(level)


def log_extra(**kwargs: typing.Any) -> dict[str, typing.Any]:
    return {"extra": kwargs}


_encoder = json.JSONEncoder()


def _has_obj_json_default(obj: typing.Any) -> bool:
    jd = getattr(obj, "obj_json_default", None)
    if jd is None or not callable(jd):
        return False
    # expect 0 arguments.  "self" is removed by inspect.signature
    return not inspect.signature(jd).parameters


def json_default(obj: typing.Any) -> typing.Any:
    """
    json_default for the log formatter.  Objects may provide
    obj_json_default() to choose their own log representation; dataclasses are
    logged field by field.  Everything else goes through python-json-logger's
    defaults.
    """
    if _has_obj_json_default(obj):
        return obj.obj_json_default()

    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            field.name: getattr(obj, field.name) for field in dataclasses.fields(obj)
        }

    if d.use_datetime_any(obj):
        return d.datetime_any(obj)

    if d.use_exception_default(obj):
        return d.exception_default(obj)

    if d.use_traceback_default(obj):
        return d.traceback_default(obj)

    if d.use_enum_default(obj):
        return d.enum_default(obj)

    if d.use_bytes_default(obj):
        return d.bytes_default(obj)

    if d.use_type_default(obj):
        return d.type_default(obj)

    try:
        return _encoder.default(obj)
    except TypeError:
        return d.unknown_default(obj)
