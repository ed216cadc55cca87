"""
Central logging setup.

- stdlib logging configured through dictConfig from the `logging` config section
- optional file handler next to the console one
- every record carries the X-Request-Id of the request it was logged under
"""

from __future__ import annotations

import logging
import logging.config
import os
import time
import uuid
from typing import Any, Dict, Optional

from flask import Flask, g, has_request_context, request

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"


class RequestIdFilter(logging.Filter):
    """Stamps `request_id` on records; '-' outside a request (e.g. job threads)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = g.get("request_id", "-") if has_request_context() else "-"
        return True


def build_logging_config(cfg: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    cfg = cfg or {}
    log_cfg = cfg.get("logging", {}) if isinstance(cfg, dict) else {}
    level = str(log_cfg.get("level", "INFO")).upper()
    fmt = str(log_cfg.get("format") or DEFAULT_FORMAT)
    log_file = log_cfg.get("file")

    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "filters": ["request_id"],
        }
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "default",
            "filters": ["request_id"],
            "filename": str(log_file),
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_id": {"()": RequestIdFilter}},
        "formatters": {"default": {"format": fmt}},
        "handlers": handlers,
        "root": {"handlers": list(handlers), "level": level},
    }


def setup_logging(cfg: Optional[Dict[str, Any]] = None) -> None:
    config = build_logging_config(cfg)
    file_handler = config["handlers"].get("file")
    if file_handler:
        log_dir = os.path.dirname(file_handler["filename"])
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
    logging.config.dictConfig(config)


def init_request_logging(app: Flask) -> None:
    """Access log line per request, with upload count for multipart posts."""
    logger = logging.getLogger("http")

    @app.before_request
    def _assign_request_id() -> None:
        g.request_started = time.time()
        g.request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex

    @app.after_request
    def _log_request(response):
        started = g.get("request_started")
        elapsed_ms = round((time.time() - started) * 1000, 2) if started else None
        uploads = len(request.files.getlist("files")) if request.files else 0
        logger.info(
            "%s %s -> %s in %sms (%d uploads)",
            request.method,
            request.path,
            response.status_code,
            elapsed_ms,
            uploads,
        )
        response.headers["X-Request-Id"] = g.get("request_id", "")
        return response
