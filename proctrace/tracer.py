"""
Lifecycle of the background recorder across two invocations of this program.

The start invocation launches the recorder in its own session and saves the
recorder's pid to the durable state store, then exits while the recorder keeps
running for the rest of the job.  The finish invocation reads the pid back and
interrupts the recorder so it flushes and closes its output file.

Tracing is instrumentation around someone else's job.  Neither start nor
finish raises for tracing problems; both log and return False.

There is no wait for the recorder to exit after it is interrupted.  A report
built right after finish may miss records the recorder had not yet flushed.
"""

import collections.abc
import enum
import logging
import os
import signal
import subprocess
import typing

from proctrace.config import TracerConfig
from proctrace.state import StateStore
from proctrace.utils import Once, log_extra

logger = logging.getLogger(__name__)

TRACER_PID_KEY = "PROC_TRACER_PID"
SUDO_KILL_TIMEOUT_S = 30

ResolveTracerBinary: typing.TypeAlias = collections.abc.Callable[[], str | None]


class TracerState(enum.Enum):
    IDLE = "idle"
    STARTED = "started"
    STOPPED = "stopped"


class TracerController:
    _config: TracerConfig
    _state_store: StateStore
    _resolve_binary: ResolveTracerBinary

    _state: TracerState
    _finished: bool
    _start_once: Once[bool]
    _finish_once: Once[bool]

    def __init__(
        self,
        config: TracerConfig,
        state_store: StateStore,
        resolve_binary: ResolveTracerBinary,
    ) -> None:
        self._config = config
        self._state_store = state_store
        self._resolve_binary = resolve_binary
        self._state = TracerState.IDLE
        self._finished = False
        self._start_once = Once(self._start)
        self._finish_once = Once(self._finish)

    @property
    def state(self) -> TracerState:
        return self._state

    @property
    def finished(self) -> bool:
        """
        True only once finish has interrupted a recorder in this invocation.
        Reports are gated on this.
        """
        return self._finished

    def _recorder_args(self, binary: str) -> list[str]:
        args = [binary, "--format", "json", "--output", self._config.output_path]
        if self._config.use_sudo:
            return ["sudo", *args]
        return args

    def start(self) -> bool:
        if self._start_once.has_run:
            logger.warning("process tracer start already attempted")
        return self._start_once.run()

    def _start(self) -> bool:
        logger.info("starting process tracer")
        # a pid left by an earlier run must never be signalled by this one
        try:
            self._state_store.delete(TRACER_PID_KEY)
        except (OSError, ValueError) as ex:
            logger.error("unable to clear process tracer state", exc_info=ex)
            return False

        binary = self._resolve_binary()
        if binary is None:
            return False

        args = self._recorder_args(binary)
        try:
            os.makedirs(
                os.path.dirname(os.path.abspath(self._config.output_path)),
                exist_ok=True,
            )
            # new session: the recorder outlives this process and is not
            # interrupted along with it
            popen = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                start_new_session=True,
            )
        except (OSError, subprocess.SubprocessError, ValueError) as ex:
            logger.error(
                "unable to start process tracer",
                exc_info=ex,
                extra=log_extra(argv=args),
            )
            return False

        try:
            self._state_store.set(TRACER_PID_KEY, str(popen.pid))
        except (OSError, ValueError) as ex:
            # nobody could stop the recorder later without its pid
            logger.error(
                "unable to save process tracer pid",
                exc_info=ex,
                extra=log_extra(pid=popen.pid),
            )
            try:
                self._interrupt(popen.pid)
            except (OSError, subprocess.SubprocessError) as interrupt_ex:
                logger.error(
                    "unable to stop unrecorded process tracer",
                    exc_info=interrupt_ex,
                    extra=log_extra(pid=popen.pid),
                )
            return False

        self._state = TracerState.STARTED
        logger.info(
            "started process tracer",
            extra=log_extra(
                pid=popen.pid, binary=binary, output=self._config.output_path
            ),
        )
        return True

    def finish(self) -> bool:
        if self._finish_once.has_run:
            logger.warning("process tracer finish already attempted")
        return self._finish_once.run()

    def _finish(self) -> bool:
        logger.info("finishing process tracer")
        saved_pid = self._state_store.get(TRACER_PID_KEY)
        if not saved_pid:
            logger.info("skipped finishing process tracer since it was not started")
            return False

        # read once: a later finish must not signal the same pid again
        try:
            self._state_store.delete(TRACER_PID_KEY)
        except (OSError, ValueError) as ex:
            logger.warning(
                "unable to clear process tracer state",
                exc_info=ex,
                extra=log_extra(pid=saved_pid),
            )

        try:
            pid = int(saved_pid)
        except ValueError:
            logger.error(
                "invalid process tracer pid in state", extra=log_extra(pid=saved_pid)
            )
            return False
        if pid <= 0:
            # kill(0) or kill(-1) would signal whole process groups
            logger.error(
                "invalid process tracer pid in state", extra=log_extra(pid=pid)
            )
            return False

        try:
            self._interrupt(pid)
        except (OSError, subprocess.SubprocessError) as ex:
            logger.error(
                "unable to finish process tracer", exc_info=ex, extra=log_extra(pid=pid)
            )
            return False

        self._state = TracerState.STOPPED
        self._finished = True
        logger.info("finished process tracer", extra=log_extra(pid=pid))
        return True

    def _interrupt(self, pid: int) -> None:
        logger.debug(
            "interrupting process tracer to stop gracefully", extra=log_extra(pid=pid)
        )
        if self._config.use_sudo:
            # the recorder runs as root.  kill returns once the signal is
            # delivered; the recorder itself is not waited on
            subprocess.run(
                ["sudo", "kill", "-s", "INT", str(pid)],
                stdin=subprocess.DEVNULL,
                capture_output=True,
                check=True,
                timeout=SUDO_KILL_TIMEOUT_S,
            )
        else:
            os.kill(pid, signal.SIGINT)
