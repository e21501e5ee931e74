import logging
import os
from typing import Mapping, Optional, Sequence

log = logging.getLogger(__name__)

DIAGNOSTIC_PATHS = ("/var/log/sayhi.log", "/tmp/sayhi.log")
_HANDLER_NAME = "sayhi-diagnostic"


def diagnostics_enabled(env: Optional[Mapping[str, str]] = None) -> bool:
    env = os.environ if env is None else env
    return "PAM_USER" in env or "DEBUG_AUTH" in env


def configure_diagnostic_log(
    paths: Sequence[str] = DIAGNOSTIC_PATHS,
    env: Optional[Mapping[str, str]] = None,
    logger_name: str = "sayhi",
) -> Optional[logging.Handler]:
    """
    Append '[<epoch>] message' lines to the first writable path, but only when
    running under PAM or with DEBUG_AUTH set. Returns the attached handler.
    """
    if not diagnostics_enabled(env):
        return None

    target = logging.getLogger(logger_name)
    for h in target.handlers:
        if h.get_name() == _HANDLER_NAME:
            return h

    for path in paths:
        try:
            handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        except OSError as e:
            log.debug("Diagnostic log %s not writable: %s", path, e)
            continue
        handler.set_name(_HANDLER_NAME)
        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.Formatter("[%(created).0f] %(message)s"))
        target.addHandler(handler)
        if target.level == logging.NOTSET or target.level > logging.INFO:
            target.setLevel(logging.INFO)
        return handler

    return None
