"""Structured request/action logging for route handlers.

Every record is one JSON object: timestamp, level, action, user_id,
correlation_id and a context dict. Records go to stdout, and additionally to a
midnight-rotated file when settings.LOG_FILE is set (never under TESTING).
"""
import json
import logging
import logging.handlers
import os
import traceback
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request

from config import settings

LOGGER_NAME = "StockBusterLogger"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return json.dumps({
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "action": record.getMessage(),
            "user_id": getattr(record, "user_id", "anonymous"),
            "correlation_id": getattr(record, "correlation_id", ""),
            "context": getattr(record, "context", {}),
        }, ensure_ascii=False, default=str)


class StructuredLogger:
    def __init__(self, log_file: str = settings.LOG_FILE, backup_days: int = 7):
        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
        self.logger.propagate = False
        self.logger.handlers.clear()

        formatter = JsonFormatter()
        stdout = logging.StreamHandler()
        stdout.setFormatter(formatter)
        self.logger.addHandler(stdout)

        if log_file and not os.environ.get("TESTING"):
            directory = os.path.dirname(log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            rotating = logging.handlers.TimedRotatingFileHandler(
                filename=log_file, when="midnight", interval=1, backupCount=backup_days, encoding="utf-8"
            )
            rotating.setFormatter(formatter)
            self.logger.addHandler(rotating)

    def log_action(
        self,
        action: str,
        level: str = "INFO",
        user_id: Optional[str] = None,
        correlation_id: str = "",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.logger.log(
            getattr(logging, level.upper(), logging.INFO),
            action,
            extra={"user_id": user_id or "anonymous", "correlation_id": correlation_id, "context": context or {}},
        )

    async def log_request(
        self,
        request: Request,
        action: str,
        user_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Record the request and return a fresh correlation id (also kept on request.state)."""
        correlation_id = str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        details = dict(context or {})
        details["method"] = request.method
        details["path"] = request.url.path
        details["query"] = str(request.url.query)
        details["client_ip"] = request.client.host if request.client else "unknown"
        self.log_action(action, "INFO", user_id, correlation_id, details)
        return correlation_id

    def log_error(
        self,
        action: str,
        error: BaseException,
        user_id: Optional[str] = None,
        correlation_id: str = "",
        context: Optional[Dict[str, Any]] = None,
    ):
        details = dict(context or {})
        details["error"] = str(error)
        details["error_type"] = type(error).__name__
        if error.__traceback__:
            details["stack_trace"] = "".join(traceback.format_tb(error.__traceback__))
        self.log_action(action, "ERROR", user_id, correlation_id, details)


structured_logger = StructuredLogger()


def log_action(action: str, user_id: Optional[str] = None, correlation_id: str = "", context: Optional[Dict[str, Any]] = None):
    structured_logger.log_action(action, "INFO", user_id, correlation_id, context)


async def log_request(request: Request, action: str, user_id: Optional[str] = None, context: Optional[Dict[str, Any]] = None) -> str:
    return await structured_logger.log_request(request, action, user_id, context)


def log_error(action: str, error: BaseException, user_id: Optional[str] = None, correlation_id: str = "", context: Optional[Dict[str, Any]] = None):
    structured_logger.log_error(action, error, user_id, correlation_id, context)
