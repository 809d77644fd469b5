"""
Read the recorder's output into an ordered list of ProcessExecutions.

The recorder is interrupted while it may be mid-write, so the last line can be
a truncated fragment.  Any line that doesn't decode is logged at debug level
and skipped; only failing to open or read the file raises.

The system noise filter is applied here and nowhere else.  Report builders
receive already-filtered executions.
"""

import dataclasses
import logging

from proctrace.event import InvalidEventError, ProcessExecution
from proctrace.utils import log_extra

logger = logging.getLogger(__name__)

# short-lived shell helpers that clutter a report without saying much
SYSTEM_NOISE_COMMANDS: frozenset[str] = frozenset(
    {
        "awk",
        "basename",
        "cat",
        "cut",
        "date",
        "dirname",
        "echo",
        "envsubst",
        "expr",
        "grep",
        "head",
        "id",
        "ip",
        "ln",
        "ls",
        "lsblk",
        "mkdir",
        "mktemp",
        "mv",
        "ps",
        "readlink",
        "rm",
        "sed",
        "seq",
        "sh",
        "uname",
        "whoami",
    }
)


@dataclasses.dataclass(frozen=True)
class ParseOptions:
    # negative means keep everything
    min_duration_ns: int = -1
    include_system_noise: bool = False


def is_system_noise(execution: ProcessExecution) -> bool:
    return execution.name in SYSTEM_NOISE_COMMANDS


def _keep(execution: ProcessExecution, options: ParseOptions) -> bool:
    if options.min_duration_ns >= 0 and execution.duration_ns < options.min_duration_ns:
        return False
    if not options.include_system_noise and is_system_noise(execution):
        return False
    return True


def parse(path: str, options: ParseOptions | None = None) -> list[ProcessExecution]:
    if options is None:
        options = ParseOptions()

    executions: list[ProcessExecution] = []
    malformed = 0
    filtered = 0

    # universal newlines: \r\n and \n are both a single line break
    with open(path, encoding="utf-8", errors="replace", newline=None) as f:
        for lineno, raw_line in enumerate(f, start=1):
            line = raw_line.strip()
            if not line:
                continue
            try:
                execution = ProcessExecution.decode_line(line)
            except InvalidEventError as ex:
                malformed += 1
                logger.debug(
                    "unable to parse process trace event",
                    extra=log_extra(
                        path=path, line_number=lineno, line=line, error=str(ex)
                    ),
                )
                continue

            if not _keep(execution, options):
                filtered += 1
                continue
            executions.append(execution)

    # sorted() is stable so equal start times keep file order
    executions = sorted(executions, key=lambda e: e.start_time_ns)

    logger.debug(
        "parsed process trace",
        extra=log_extra(
            path=path,
            kept=len(executions),
            malformed=malformed,
            filtered=filtered,
        ),
    )
    return executions
