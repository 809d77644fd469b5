import logging

from proctrace import parser, projector
from proctrace.config import ReportOptions
from proctrace.utils import log_extra

logger = logging.getLogger(__name__)

REPORT_HEADING = "### Process Trace"


def _fenced(content: str, lang: str = "") -> str:
    return f"```{lang}\n{content}\n```"


def build_report(
    trace_path: str,
    job_name: str,
    options: ReportOptions,
    finished: bool,
) -> str | None:
    """
    Markdown report for the trace at trace_path, or None if there is nothing
    trustworthy to report.  Never raises for a missing or unreadable trace.

    finished must come from the controller that interrupted the recorder in
    this same invocation; without it the trace may still be growing.
    """
    logger.info("reporting process tracer result", extra=log_extra(path=trace_path))
    if not finished:
        logger.info("skipped reporting process tracer since it did not finish")
        return None

    try:
        executions = parser.parse(
            trace_path,
            parser.ParseOptions(
                min_duration_ns=options.min_duration_ns,
                include_system_noise=options.include_system_noise,
            ),
        )
    except OSError as ex:
        logger.error(
            "unable to report process tracer result",
            exc_info=ex,
            extra=log_extra(path=trace_path),
        )
        return None

    items = ["", REPORT_HEADING]

    if options.show_timeline:
        entries = projector.build_timeline(executions, options.timeline_max_count)
        if entries:
            items += [
                "",
                f"#### Top {options.timeline_max_count} processes"
                " with highest duration",
                "",
                _fenced(projector.render_timeline(job_name, entries), "mermaid"),
            ]

    if options.show_table:
        rows = projector.build_table(executions)
        if rows:
            items += [
                "",
                "#### All processes with detail",
                "",
                _fenced(projector.render_table(rows)),
            ]

    logger.info(
        "reported process tracer result",
        extra=log_extra(path=trace_path, executions=len(executions)),
    )
    return "\n".join(items)
