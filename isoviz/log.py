from __future__ import annotations

import logging

LOG_FORMAT = '%(asctime)s - %(levelname)s - [%(name)s:%(module)s.%(funcName)s:%(lineno)d] - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

_ROOT = "isoviz"


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Attach a single stream handler to the package logger (idempotent)."""
    root = logging.getLogger(_ROOT)
    if not any(type(h) is logging.StreamHandler for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)
    return root


def get_logger(name: str) -> logging.Logger:
    root = logging.getLogger(_ROOT)
    # Silent unless the application calls setup_logging()
    if not root.handlers:
        root.addHandler(logging.NullHandler())
    return logging.getLogger(name)
