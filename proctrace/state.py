"""
Durable key/value state shared between the start invocation and the later
finish invocation.  The two invocations are separate processes, so nothing
held in memory survives between them.

Single writer, single reader: start sets a key once, finish reads it once.
A missing key is a normal outcome (tracing never started), not an error.
"""

import collections.abc
import json
import logging
import os
import tempfile
import typing

from proctrace.utils import log_extra

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE_NAME = "proc-trace-state.json"


class StateStore(typing.Protocol):
    def set(self, key: str, value: str) -> None: ...

    def get(self, key: str) -> str | None: ...

    def delete(self, key: str) -> None: ...


class FileStateStore(StateStore):
    """State kept as a json object in a single file"""

    _path: str

    def __init__(self, path: str) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def _load(self) -> dict[str, str]:
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as ex:
            logger.warning(
                "unable to read state file",
                extra=log_extra(path=self._path, error=str(ex)),
            )
            return {}
        if not isinstance(data, dict):
            logger.warning(
                "state file is not an object", extra=log_extra(path=self._path)
            )
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, data: dict[str, str]) -> None:
        directory = os.path.dirname(os.path.abspath(self._path))
        os.makedirs(directory, exist_ok=True)
        # readers never see a half written file
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".state-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self._path)
        except BaseException:
            os.unlink(tmp_path)
            raise

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)
        logger.debug("saved state", extra=log_extra(path=self._path, key=key))

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def delete(self, key: str) -> None:
        data = self._load()
        if key not in data:
            return
        del data[key]
        self._save(data)
        logger.debug("deleted state", extra=log_extra(path=self._path, key=key))


class GitHubActionsStateStore(StateStore):
    """
    The runner's own state channel.  Values appended to the file named by
    GITHUB_STATE during one step are handed to the post step of the same
    action as STATE_<key> environment variables.
    """

    _environ: collections.abc.Mapping[str, str]
    # the environment is read only; consumed keys are hidden for this process
    _deleted: set[str]

    def __init__(self, environ: collections.abc.Mapping[str, str]) -> None:
        self._environ = environ
        self._deleted = set()

    def set(self, key: str, value: str) -> None:
        if "\n" in key or "\n" in value:
            raise ValueError(f"state key and value must be single line: {key!r}")
        state_file = self._environ.get("GITHUB_STATE")
        if not state_file:
            raise OSError("GITHUB_STATE is not set")
        with open(state_file, "a", encoding="utf-8") as f:
            f.write(f"{key}={value}\n")
        self._deleted.discard(key)

    def get(self, key: str) -> str | None:
        if key in self._deleted:
            return None
        value = self._environ.get(f"STATE_{key}")
        return value or None

    def delete(self, key: str) -> None:
        self._deleted.add(key)
        state_file = self._environ.get("GITHUB_STATE")
        if state_file:
            # an empty value reads back as absent in any later step
            with open(state_file, "a", encoding="utf-8") as f:
                f.write(f"{key}=\n")


def state_store_from_env(environ: collections.abc.Mapping[str, str]) -> StateStore:
    if environ.get("GITHUB_STATE"):
        return GitHubActionsStateStore(environ)
    path = environ.get("PROC_TRACE_STATE_FILE") or os.path.join(
        tempfile.gettempdir(), DEFAULT_STATE_FILE_NAME
    )
    return FileStateStore(path)
