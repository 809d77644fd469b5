"""Pick the recorder binary for the host, if the host can run one at all."""

import logging
import os
import platform

from proctrace.utils import log_extra

logger = logging.getLogger(__name__)

TRACER_BINARY_NAME_UBUNTU = "proc-tracer"
SUPPORTED_UBUNTU_MAJOR_VERSIONS = frozenset({20, 22, 24})


def _read_os_release() -> dict[str, str] | None:
    try:
        return platform.freedesktop_os_release()
    except OSError:
        return None


def resolve_tracer_binary(
    tracer_dir: str, os_release: dict[str, str] | None = None
) -> str | None:
    if os_release is None:
        os_release = _read_os_release()

    if os_release and os_release.get("NAME") == "Ubuntu":
        major = os_release.get("VERSION_ID", "").split(".")[0]
        if major.isdigit() and int(major) in SUPPORTED_UBUNTU_MAJOR_VERSIONS:
            binary = os.path.join(tracer_dir, TRACER_BINARY_NAME_UBUNTU)
            logger.info("using process tracer", extra=log_extra(binary=binary))
            return binary

    logger.info(
        "process tracing disabled because of unsupported os",
        extra=log_extra(os_release=os_release),
    )
    return None
