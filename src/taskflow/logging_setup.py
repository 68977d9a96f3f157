from __future__ import annotations

import logging
import sys

_HANDLER_NAME = "taskflow-console"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable:
    - allow all taskflow logs
    - third-party libraries (uvicorn, httpx, ...) only at WARNING+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "taskflow" or record.name.startswith("taskflow."):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(level: str = "INFO") -> None:
    """
    Configure a single stderr handler on the root logger.

    Safe to call more than once; the handler installed by an earlier call is
    replaced rather than duplicated.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        if h.get_name() == _HANDLER_NAME:
            root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.set_name(_HANDLER_NAME)
    ch.setLevel(getattr(logging, level.upper(), logging.INFO))
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    logging.captureWarnings(True)
