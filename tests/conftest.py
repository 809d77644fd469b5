import json
import pathlib
import typing

import pytest

from proctrace import utils


@pytest.fixture(autouse=True)
def configure_logging() -> None:
    utils.setup_logging("DEBUG")


def record(
    name: str,
    start_time_ns: int,
    duration_ns: int,
    exit_code: int = 0,
    **kwargs: typing.Any,
) -> dict[str, typing.Any]:
    obj: dict[str, typing.Any] = {
        "name": name,
        "pid": 100,
        "ppid": 1,
        "uid": 1001,
        "fileName": f"/usr/bin/{name}",
        "args": [name],
        "startTimeNs": start_time_ns,
        "durationNs": duration_ns,
        "exitCode": exit_code,
    }
    obj.update(kwargs)
    return obj


def write_trace(
    path: pathlib.Path, lines: list[dict[str, typing.Any] | str], newline: str = "\n"
) -> pathlib.Path:
    text = newline.join(
        line if isinstance(line, str) else json.dumps(line) for line in lines
    )
    path.write_bytes((text + newline).encode("utf-8"))
    return path


SCENARIO_RECORDS = [
    record("build", 0, 500_000_000, 0),
    record("test", 500_000_000, 2_000_000_000, 1),
    record("lint", 2_600_000_000, 100_000_000, 0),
]


@pytest.fixture
def scenario_trace(tmp_path: pathlib.Path) -> pathlib.Path:
    return write_trace(tmp_path / "proc-trace.out", list(SCENARIO_RECORDS))
