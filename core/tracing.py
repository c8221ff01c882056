"""Трассировка решений движка.

Движок не пишет в stdout: все функции принимают необязательный tracer
(logging.Logger). Логгер по умолчанию молчит, пока не вызван enable_tracing.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

TRACER_NAME = "discount_engine"
# выше CRITICAL: записи не создаются вовсе
SILENT = logging.CRITICAL + 1

_default = logging.getLogger(TRACER_NAME)
_default.addHandler(logging.NullHandler())
_default.propagate = False
_default.setLevel(SILENT)


def get_tracer(tracer: Optional[logging.Logger] = None) -> logging.Logger:
    return tracer if tracer is not None else _default


def enable_tracing(level: int = logging.DEBUG, log_path: Optional[str] = None) -> logging.Logger:
    """Подключает вывод в консоль (и в файл) для логгера по умолчанию"""
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_path:
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    for handler in list(_default.handlers):
        if not isinstance(handler, logging.NullHandler):
            _default.removeHandler(handler)
            handler.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        _default.addHandler(handler)
    _default.setLevel(level)
    return _default


def disable_tracing() -> None:
    for handler in list(_default.handlers):
        if not isinstance(handler, logging.NullHandler):
            _default.removeHandler(handler)
            handler.close()
    _default.setLevel(SILENT)
