"""
Structured JSON Logging Module.

Every controller component logs through an injected ``StructuredLogger``
whose records are rendered as one JSON object per line.  Audit events are
tagged with ``extra={"event": "<NAME>"}``; the formatter lifts that tag to
the top level so the trail can be filtered on it.

Credentials never reach a handler: extra fields whose key names a token,
password or key are replaced with a fixed marker before serialisation.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, TextIO, Union

REDACTED: str = "[redacted]"

SENSITIVE_FIELDS: frozenset[str] = frozenset({
    "access_token",
    "refresh_token",
    "password",
    "new_password",
    "anon_key",
    "api_key",
    "token",
})

_JSON_NATIVE = (bool, int, float, type(None))


class JSONFormatter(logging.Formatter):
    """Formats log records as structured JSON objects.

    Each log entry contains:
        - timestamp  (ISO-8601, UTC)
        - level
        - logger_name
        - event      (only when the caller tagged the record)
        - message
        - extra      (remaining caller-supplied fields, credentials redacted)
        - exception  (formatted traceback, when present)
    """

    _STANDARD_ATTRS: frozenset[str] = frozenset(
        logging.LogRecord(
            name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None
        ).__dict__.keys()
    ) | {"message", "asctime"}

    def __init__(self, sensitive_fields: frozenset[str] = SENSITIVE_FIELDS) -> None:
        super().__init__()
        self._sensitive_fields = sensitive_fields

    def _render_value(self, key: str, value: Any) -> Any:
        if key.lower() in self._sensitive_fields:
            return REDACTED
        if isinstance(value, _JSON_NATIVE):
            return value
        return str(value)

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger_name": record.name,
        }

        extra_fields: dict[str, Any] = {
            key: self._render_value(key, value)
            for key, value in record.__dict__.items()
            if key not in self._STANDARD_ATTRS
        }
        event = extra_fields.pop("event", None)
        if event is not None:
            entry["event"] = event
        entry["message"] = record.getMessage()
        if extra_fields:
            entry["extra"] = extra_fields

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            entry["exception"] = record.exc_text

        return json.dumps(entry, ensure_ascii=False)


class StructuredLogger:
    """Injectable logger for the controller's audit trail.

    Level, log file and rotation default to ``AppConfig``; pass explicit
    values to override.  An empty ``log_file`` keeps output on the stream
    only.  Handlers are attached once per logger name.

    Usage::

        log = StructuredLogger(name="auth_session")
        log.info("Signed in", extra={"event": "SIGN_IN", "email": email})
    """

    def __init__(
        self,
        name: str = "auth_session",
        level: Optional[int] = None,
        stream: Union[TextIO, None] = None,
        log_file: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
    ) -> None:
        # Lazy import to avoid circular dependency at module level
        from auth_session.config import get_config
        cfg = get_config()

        self._level: int = level if level is not None else cfg.log_level
        self._logger: logging.Logger = logging.getLogger(name)
        self._logger.setLevel(self._level)
        # Each named logger owns its handlers; parents must not re-emit.
        self._logger.propagate = False

        if not self._logger.handlers:
            formatter = JSONFormatter()
            self._add_stream_handler(stream or sys.stdout, formatter)
            self._add_file_handler(
                log_file if log_file is not None else cfg.LOG_FILE,
                max_bytes if max_bytes is not None else cfg.LOG_MAX_BYTES,
                backup_count if backup_count is not None else cfg.LOG_BACKUP_COUNT,
                formatter,
            )

    def _add_stream_handler(self, stream: TextIO, formatter: logging.Formatter) -> None:
        handler = logging.StreamHandler(stream)
        handler.setLevel(self._level)
        handler.setFormatter(formatter)
        self._logger.addHandler(handler)

    def _add_file_handler(
        self,
        log_file: str,
        max_bytes: int,
        backup_count: int,
        formatter: logging.Formatter,
    ) -> None:
        if not log_file:
            return
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handler = RotatingFileHandler(
                filename=str(log_path),
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        except (PermissionError, OSError) as exc:
            self._logger.warning(
                "Could not open audit log '%s': %s. Logging to the stream only.",
                log_file, exc,
                extra={"event": "LOG_FILE_UNAVAILABLE"},
            )
            return
        handler.setLevel(self._level)
        handler.setFormatter(formatter)
        self._logger.addHandler(handler)

    @property
    def logger(self) -> logging.Logger:
        """Access the underlying ``logging.Logger`` directly."""
        return self._logger

    def debug(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.error(msg, *args, **kwargs)


def get_logger(component: Optional[str] = None) -> StructuredLogger:
    """Return a ``StructuredLogger`` named ``auth_session.<component>``."""
    name = f"auth_session.{component}" if component else "auth_session"
    return StructuredLogger(name=name)
