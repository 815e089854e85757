"""
Structured JSON logging for the context engine.

Every line is one JSON object. Engine code passes context through ``extra``
using the keys in ``CONTEXT_KEYS``:

    from kube_context.utils.logger import get_logger
    logger = get_logger(__name__)

    # watch / reconciliation
    logger.info("Reconciled kind", extra={"action": "reconcile", "kind": "Pod", "count": 3})
    # event ingestion
    logger.warning("Failed to extract snapshot", exc_info=True,
                   extra={"action": "extract_failed", "kind": "Pod", "event_type": "MODIFIED"})
    # chat history
    logger.info("Migrated legacy chat history", extra={"action": "migrate_history", "count": 2})

Values that are not JSON-native (datetimes, sets, ResourceKey tuples) are
rendered with ``str``.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

CONTEXT_KEYS = (
    "action",       # short snake_case verb, e.g. "reconcile", "cluster_switch"
    "kind",         # resource kind the line is about
    "event_type",   # ADDED / MODIFIED / DELETED, or a notification type
    "resource",     # namespace/name or a ResourceKey
    "count",
    "generation",   # watch generation token
    "session_id",   # chat session
    "extra",        # free-form payload, e.g. config changes
)


class JSONFormatter(logging.Formatter):
    """Formats log records as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in CONTEXT_KEYS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with JSON formatting on stdout.

    The level comes from LOG_LEVEL (default INFO). Loggers do not propagate,
    so uvicorn's own handlers never print engine lines a second time.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        level = os.environ.get("LOG_LEVEL", "INFO").upper()
        logger.setLevel(getattr(logging, level, logging.INFO))
        logger.propagate = False

    return logger
