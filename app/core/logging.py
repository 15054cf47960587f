"""
Logging configuration for the provisioning service.

One stdout handler on the root logger so every ``logging.getLogger(__name__)``
in the app shares the same format.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | int = logging.INFO) -> logging.Logger:
    """
    Attach a stdout handler to the root logger once and set its level.

    Args:
        level: A level name ("INFO", "DEBUG") or a logging constant.

    Returns:
        The root logger.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    if not any(getattr(h, "_siteops", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        handler._siteops = True
        root.addHandler(handler)

    for handler in root.handlers:
        if getattr(handler, "_siteops", False):
            handler.setLevel(level)

    return root
