"""
Projections of parsed executions for the report.

The timeline keeps only the longest running executions but shows them in
start order.  The table keeps every execution in the order given.  Both
builders are pure: the same input always gives the same output.
"""

import collections.abc
import dataclasses

from proctrace.event import ProcessExecution

NS_PER_MS = 1_000_000

# node processes started from here are javascript actions
ACTIONS_INSTALL_PREFIX = "/home/runner/work/_actions/"


def to_ms(ns: int) -> int:
    """Nanoseconds to whole milliseconds, halves rounded up"""
    return (ns + NS_PER_MS // 2) // NS_PER_MS


def escape_timeline_label(name: str) -> str:
    # ":" separates a task's label from its data in a gantt line
    return name.replace(":", "#colon;")


def action_annotation(execution: ProcessExecution) -> str | None:
    """
    Name of the action behind a node process, e.g. "checkout" for
    node /home/runner/work/_actions/actions/checkout/v4/dist/index.js
    """
    if execution.name != "node" or len(execution.args) < 2:
        return None
    script = execution.args[1]
    if not script.startswith(ACTIONS_INSTALL_PREFIX):
        return None
    parts = script[len(ACTIONS_INSTALL_PREFIX) :].split("/")
    # owner/repo/... : both separators must be present
    if len(parts) < 3:
        return None
    return parts[1]


@dataclasses.dataclass(frozen=True)
class TimelineEntry:
    label: str
    annotation: str | None
    critical: bool
    start_ms: int
    end_ms: int


@dataclasses.dataclass(frozen=True)
class TableRow:
    name: str
    uid: int
    pid: int
    ppid: int
    start_ms: int
    duration_ms: int
    exit_code: int
    command: str


def select_longest(
    executions: collections.abc.Sequence[ProcessExecution], max_count: int
) -> list[ProcessExecution]:
    """The max_count longest executions, re-sorted by start time"""
    if max_count <= 0:
        return []
    # stable sort: among equal durations and starts the earlier line wins
    by_duration = sorted(executions, key=lambda e: (-e.duration_ns, e.start_time_ns))
    return sorted(by_duration[:max_count], key=lambda e: e.start_time_ns)


def build_timeline(
    executions: collections.abc.Sequence[ProcessExecution], max_count: int
) -> list[TimelineEntry]:
    return [
        TimelineEntry(
            label=escape_timeline_label(e.name),
            annotation=action_annotation(e),
            critical=e.exit_code != 0,
            start_ms=to_ms(e.start_time_ns),
            end_ms=to_ms(e.end_time_ns),
        )
        for e in select_longest(executions, max_count)
    ]


def build_table(
    executions: collections.abc.Sequence[ProcessExecution],
) -> list[TableRow]:
    return [
        TableRow(
            name=e.name,
            uid=e.uid,
            pid=e.pid,
            ppid=e.ppid,
            start_ms=to_ms(e.start_time_ns),
            duration_ms=to_ms(e.duration_ns),
            exit_code=e.exit_code,
            command=" ".join([e.file_name, *e.args]),
        )
        for e in executions
    ]


def render_timeline(
    title: str, entries: collections.abc.Sequence[TimelineEntry]
) -> str:
    """mermaid gantt source for the timeline"""
    lines = [
        "gantt",
        f"\ttitle {escape_timeline_label(title)}",
        "\tdateFormat x",
        "\taxisFormat %H:%M:%S",
    ]
    for entry in entries:
        label = entry.label
        if entry.annotation:
            label = f"{label} ({escape_timeline_label(entry.annotation)})"
        crit = "crit, " if entry.critical else ""
        lines.append(f"\t{label} : {crit}{entry.start_ms}, {entry.end_ms}")
    return "\n".join(lines)


TABLE_HEADER = (
    f"{'NAME':<16} {'UID':>7} {'PID':>7} {'PPID':>7} {'START TIME':>15} "
    f"{'DURATION (ms)':>15} {'EXIT CODE':>10} {'FILE NAME + ARGS':<20}"
)


def render_table(rows: collections.abc.Sequence[TableRow]) -> str:
    lines = [TABLE_HEADER.rstrip()]
    for row in rows:
        lines.append(
            f"{row.name:<16} {row.uid:>7} {row.pid:>7} {row.ppid:>7} "
            f"{row.start_ms:>15} {row.duration_ms:>15} {row.exit_code:>10} "
            f"{row.command}".rstrip()
        )
    return "\n".join(lines)
