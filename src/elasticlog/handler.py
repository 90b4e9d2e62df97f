"""
Standard logging handler for integration with Python's logging module.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .logger import ElasticLog
from .wire import Mappings

# LogRecord attributes that are not user-supplied ``extra`` values
_RESERVED_ATTRS = frozenset(
    (
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "pathname", "process", "processName", "relativeCreated",
        "stack_info", "exc_info", "exc_text", "thread", "threadName",
        "message", "asctime", "taskName",
    )
)

def _not_from_elasticlog(record: logging.LogRecord) -> bool:
    """Drop the library's own records, which would otherwise be shipped back
    through the handler that produced them."""
    return not (record.name == "elasticlog" or record.name.startswith("elasticlog."))


DEFAULT_MAPPINGS: Mappings = {
    "timestamp": {"type": "date"},
    "level": {"type": "keyword"},
    "level_num": {"type": "long"},
    "message": {"type": "text"},
    "logger": {"type": "keyword"},
    "module": {"type": "keyword"},
    "function": {"type": "keyword"},
    "line": {"type": "long"},
}


class ElasticHandler(logging.Handler):
    """
    Python logging handler that ships records through an ElasticLog.

    Example:
        import logging
        from elasticlog import ElasticHandler, ElasticLog, ElasticLogConfig

        shipper = ElasticLog(ElasticLogConfig(host="localhost:9200"))
        shipper.initialize()

        logger = logging.getLogger("my_app")
        logger.addHandler(ElasticHandler(shipper, index="app-logs"))
        logger.setLevel(logging.DEBUG)

        logger.info("Hello from standard logging!")

        # Don't forget to close on shutdown
        shipper.close()
    """

    def __init__(
        self,
        shipper: ElasticLog,
        index: str,
        mappings: Optional[Mappings] = DEFAULT_MAPPINGS,
        doc_type: str = "doc",
        extra_fields: Optional[Dict[str, Any]] = None,
        close_shipper: bool = False,
        level: int = logging.NOTSET,
    ):
        """
        Initialize ElasticHandler.

        Args:
            shipper: Initialized ElasticLog the documents go through
            index: Base index name for every record
            mappings: Mappings used when the index is created, None lets
                the server infer them
            doc_type: Document type for servers before 7.0
            extra_fields: Extra fields to include in every document
            close_shipper: Close the shipper when the handler closes
            level: Minimum log level to process
        """
        super().__init__(level)

        if not index:
            raise ValueError("index is required")

        self.shipper = shipper
        self.index = index
        self.mappings = mappings
        self.doc_type = doc_type
        self.extra_fields = extra_fields or {}
        self.close_shipper = close_shipper
        self.addFilter(_not_from_elasticlog)

    def _format_record(self, record: logging.LogRecord) -> Dict[str, Any]:
        """Convert LogRecord to dictionary."""
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "level_num": record.levelno,
            "message": self.format(record),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            **self.extra_fields,
        }

        if record.exc_info:
            formatter = self.formatter or logging.Formatter()
            entry["exception"] = formatter.formatException(record.exc_info)

        extra_attrs = {}
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            try:
                json.dumps(value)
                extra_attrs[key] = value
            except (TypeError, ValueError):
                extra_attrs[key] = str(value)

        if extra_attrs:
            entry["extra"] = extra_attrs

        return entry

    def emit(self, record: logging.LogRecord) -> None:
        """Process a log record."""
        try:
            entry = self._format_record(record)
            self.shipper.log(self.index, entry, self.mappings, self.doc_type)
        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        """Send the shipper's buffers now."""
        self.shipper.flush()

    def close(self) -> None:
        """Close the handler."""
        if self.close_shipper:
            self.shipper.close()
        super().close()
