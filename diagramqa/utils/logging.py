from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Route the ``diagramqa`` logger tree to the current stderr.

    Warnings and errors only, unless ``verbose`` asks for everything.
    Calling it again replaces the handler installed by the previous call.
    """
    logger = logging.getLogger("diagramqa")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    for handler in list(logger.handlers):
        if getattr(handler, "_diagramqa", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler._diagramqa = True  # type: ignore[attr-defined]
    logger.addHandler(handler)

    logger.propagate = False
    return logger
