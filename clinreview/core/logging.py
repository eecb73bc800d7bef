import logging
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger
from contextvars import ContextVar

from clinreview.core.config import settings

# Request id of the request being served, set by CorrelationIdMiddleware
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super(CustomJsonFormatter, self).add_fields(log_record, record, message_dict)

        req_id = request_id_var.get()
        if req_id:
            log_record["request_id"] = req_id

        log_record.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        log_record["level"] = (log_record.get("level") or record.levelname).upper()
        log_record["env"] = settings.environment
        log_record["build"] = settings.build_id


def setup_logging(level: str = None):
    root = logging.getLogger()
    # Importing the app twice (tests, reload) must not stack handlers
    if not any(isinstance(h.formatter, CustomJsonFormatter) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(CustomJsonFormatter("%(timestamp) %(level) %(name) %(message)"))
        root.addHandler(handler)
    root.setLevel((level or settings.log_level).upper())

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "multipart"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
