"""
The unit of trace data: one completed process execution as written by the
recorder.  The recorder emits one JSON object per line, e.g.

    {"name": "make", "pid": 4242, "ppid": 4200, "uid": 1001,
     "fileName": "/usr/bin/make", "args": ["make", "-j4"],
     "startTimeNs": 1700000000000000000, "durationNs": 2500000000,
     "exitCode": 0}

Records are read once and never modified afterwards; reports only select,
reorder and derive from them.
"""

import dataclasses
import json
import typing


class InvalidEventError(ValueError):
    """A trace line that can't be decoded into a ProcessExecution"""


def _int_field(
    obj: dict[str, typing.Any],
    key: str,
    default: int | None = None,
    non_negative: bool = False,
) -> int:
    value = obj.get(key, default)
    if value is None:
        raise InvalidEventError(f"missing field: {key}")
    # bool is an int subclass but never a valid id or timestamp
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidEventError(f"field {key} is not an integer: {value!r}")
    if non_negative and value < 0:
        raise InvalidEventError(f"field {key} is negative: {value}")
    return value


@dataclasses.dataclass(frozen=True)
class ProcessExecution:
    name: str
    pid: int
    ppid: int
    uid: int
    file_name: str
    args: tuple[str, ...]
    start_time_ns: int
    duration_ns: int
    exit_code: int

    @property
    def end_time_ns(self) -> int:
        return self.start_time_ns + self.duration_ns

    @classmethod
    def from_json(cls, obj: typing.Any) -> "ProcessExecution":
        if not isinstance(obj, dict):
            raise InvalidEventError(f"record is not an object: {obj!r}")

        name = obj.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidEventError(f"missing or empty name: {name!r}")

        file_name = obj.get("fileName", "")
        if not isinstance(file_name, str):
            raise InvalidEventError(f"fileName is not a string: {file_name!r}")

        args = obj.get("args", [])
        if args is None:
            args = []
        if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
            raise InvalidEventError(f"args is not a list of strings: {args!r}")

        return cls(
            name=name,
            pid=_int_field(obj, "pid", non_negative=True),
            ppid=_int_field(obj, "ppid", default=0, non_negative=True),
            uid=_int_field(obj, "uid", default=0),
            file_name=file_name,
            args=tuple(args),
            start_time_ns=_int_field(obj, "startTimeNs", non_negative=True),
            duration_ns=_int_field(obj, "durationNs", non_negative=True),
            exit_code=_int_field(obj, "exitCode", default=0),
        )

    @classmethod
    def decode_line(cls, line: str) -> "ProcessExecution":
        try:
            obj = json.loads(line)
        except json.JSONDecodeError as ex:
            raise InvalidEventError(f"invalid json: {ex}") from ex
        except (ValueError, RecursionError) as ex:
            # over-long integer literals or nesting too deep for the decoder
            raise InvalidEventError(f"undecodable json: {type(ex).__name__}") from ex
        return cls.from_json(obj)

    def obj_json_default(self) -> typing.Any:
        """Overrides json serialization for logging"""
        return {
            "name": self.name,
            "pid": self.pid,
            "ppid": self.ppid,
            "start_time_ns": self.start_time_ns,
            "duration_ns": self.duration_ns,
            "exit_code": self.exit_code,
        }

    def __str__(self) -> str:
        return (
            f"(ProcessExecution: name={self.name}. pid={self.pid}. "
            f"duration_ns={self.duration_ns})"
        )
