"""
Inputs for the tracer and the report.  The CI runner hands action inputs to
the process as INPUT_<NAME> environment variables; everything is read from a
mapping so tests can pass their own.
"""

import collections.abc
import dataclasses
import logging
import os

from proctrace.utils import log_extra

logger = logging.getLogger(__name__)

DEFAULT_TIMELINE_MAX_COUNT = 100
DEFAULT_MIN_DURATION_NS = -1
TRACE_OUTPUT_FILE_NAME = "proc-trace.out"


def _input(environ: collections.abc.Mapping[str, str], name: str) -> str:
    return environ.get(f"INPUT_{name.upper()}", "").strip()


def parse_bool(value: str, default: bool) -> bool:
    if not value:
        return default
    return value.strip().lower() == "true"


def parse_int(value: str, default: int, name: str = "") -> int:
    if not value:
        return default
    try:
        return int(value.strip())
    except ValueError:
        logger.warning(
            "ignoring invalid integer input",
            extra=log_extra(input_name=name, value=value, default=default),
        )
        return default


@dataclasses.dataclass(frozen=True)
class ReportOptions:
    min_duration_ns: int = DEFAULT_MIN_DURATION_NS
    include_system_noise: bool = False
    show_timeline: bool = True
    timeline_max_count: int = DEFAULT_TIMELINE_MAX_COUNT
    show_table: bool = False

    @classmethod
    def from_env(cls, environ: collections.abc.Mapping[str, str]) -> "ReportOptions":
        return cls(
            min_duration_ns=parse_int(
                _input(environ, "proc_trace_min_duration"),
                DEFAULT_MIN_DURATION_NS,
                "proc_trace_min_duration",
            ),
            include_system_noise=parse_bool(
                _input(environ, "proc_trace_sys_enable"), False
            ),
            show_timeline=parse_bool(_input(environ, "proc_trace_chart_show"), True),
            timeline_max_count=parse_int(
                _input(environ, "proc_trace_chart_max_count"),
                DEFAULT_TIMELINE_MAX_COUNT,
                "proc_trace_chart_max_count",
            ),
            show_table=parse_bool(_input(environ, "proc_trace_table_show"), False),
        )


@dataclasses.dataclass(frozen=True)
class TracerConfig:
    tracer_dir: str
    output_path: str
    use_sudo: bool = True

    @classmethod
    def from_env(cls, environ: collections.abc.Mapping[str, str]) -> "TracerConfig":
        tracer_dir = environ.get("PROC_TRACE_TRACER_DIR") or os.path.join(
            os.getcwd(), "proc-tracer"
        )
        output_path = environ.get("PROC_TRACE_OUTPUT_FILE") or os.path.join(
            tracer_dir, TRACE_OUTPUT_FILE_NAME
        )
        return cls(
            tracer_dir=tracer_dir,
            output_path=output_path,
            use_sudo=parse_bool(environ.get("PROC_TRACE_USE_SUDO", ""), True),
        )


def log_level_from_env(environ: collections.abc.Mapping[str, str]) -> str:
    level = environ.get("PROC_TRACE_LOG_LEVEL", "").strip().upper()
    if level in logging.getLevelNamesMapping():
        return level
    if environ.get("RUNNER_DEBUG") == "1":
        return "DEBUG"
    return "INFO"
