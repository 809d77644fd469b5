"""
proc-trace start
proc-trace finish [JOB_NAME]

start runs before the job's steps and launches the recorder.  finish runs
after them, stops the recorder and writes the report to the step summary
(or stdout outside of a runner).  Tracing problems never change the exit
status; only usage errors do.
"""

import collections.abc
import functools
import logging
import os
import sys

from proctrace import host, report
from proctrace.config import ReportOptions, TracerConfig, log_level_from_env
from proctrace.state import state_store_from_env
from proctrace.tracer import TracerController
from proctrace.utils import log_extra, setup_logging

logger = logging.getLogger(__name__)

USAGE = "usage: proc-trace start | proc-trace finish [JOB_NAME]\n"


def make_controller(
    config: TracerConfig, environ: collections.abc.Mapping[str, str]
) -> TracerController:
    return TracerController(
        config,
        state_store_from_env(environ),
        functools.partial(host.resolve_tracer_binary, config.tracer_dir),
    )


def write_report(content: str, environ: collections.abc.Mapping[str, str]) -> None:
    summary_path = environ.get("GITHUB_STEP_SUMMARY")
    if summary_path:
        with open(summary_path, "a", encoding="utf-8") as f:
            f.write(content)
            f.write("\n")
    else:
        sys.stdout.write(content + "\n")


def run_start(environ: collections.abc.Mapping[str, str]) -> None:
    make_controller(TracerConfig.from_env(environ), environ).start()


def run_finish(job_name: str, environ: collections.abc.Mapping[str, str]) -> None:
    config = TracerConfig.from_env(environ)
    controller = make_controller(config, environ)
    controller.finish()
    content = report.build_report(
        config.output_path,
        job_name,
        ReportOptions.from_env(environ),
        controller.finished,
    )
    if content is None:
        return
    try:
        write_report(content, environ)
    except OSError as ex:
        logger.error("unable to write process trace report", exc_info=ex)


def main(argv: list[str] | None = None) -> None:
    if argv is None:
        argv = sys.argv
    environ = os.environ
    setup_logging(log_level_from_env(environ))

    if len(argv) < 2:
        sys.stderr.write(USAGE)
        sys.exit(1)

    command = argv[1]
    match command:
        case "start":
            run_start(environ)
        case "finish":
            job_name = argv[2] if len(argv) > 2 else environ.get("GITHUB_JOB", "job")
            run_finish(job_name, environ)
        case _:
            sys.stderr.write(f"unknown command: [{command}]\n{USAGE}")
            sys.exit(1)

    logger.debug("done", extra=log_extra(command=command))
