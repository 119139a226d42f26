import logging
import logging.config
import os
import yaml
import json
import threading
from datetime import datetime, timezone
from collections import deque
from typing import Dict, Any, Optional
import contextvars

from .config import LOG_FORMAT, LOG_LEVEL, HTTP_LOG_EXCLUDE_PATHS, HTTP_LOG_SAMPLE_RATE

# Context variable for trace ID
trace_id_var = contextvars.ContextVar('trace_id', default=None)

# Fields rendered explicitly by JsonFormatter or internal to LogRecord
_RESERVED = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'taskName', 'getMessage',
    'exc_info', 'exc_text', 'stack_info', 'method', 'path', 'status',
    'latency_ms', 'client_ip', 'component',
}

# Settings consumed by TracingMiddleware, refreshed by setup_logging()
http_log_config: Dict[str, Any] = {
    "exclude_paths": set(HTTP_LOG_EXCLUDE_PATHS),
    "sample_rate": HTTP_LOG_SAMPLE_RATE,
}


def get_trace_id() -> Optional[str]:
    """Get the current trace ID from context"""
    return trace_id_var.get()


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


class JsonFormatter(logging.Formatter):
    """Custom JSON formatter with structured fields"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": _utc_timestamp(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "trace_id": get_trace_id(),
            "method": getattr(record, 'method', None),
            "path": getattr(record, 'path', None),
            "status": getattr(record, 'status', None),
            "latency_ms": getattr(record, 'latency_ms', None),
            "client_ip": getattr(record, 'client_ip', None),
            "component": getattr(record, 'component', 'api')
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        # Add extra fields
        for key, value in record.__dict__.items():
            if key not in _RESERVED and key not in log_entry:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class MemoryLogHandler(logging.Handler):
    """In-memory log handler with ring buffer for live logs"""

    def __init__(self, max_size: int = 10000):
        super().__init__()
        self.max_size = max_size
        self.logs = deque(maxlen=max_size)
        self._lock = threading.Lock()

    def emit(self, record: logging.LogRecord):
        try:
            msg = self.format(record)

            if isinstance(self.formatter, JsonFormatter):
                try:
                    log_entry = json.loads(msg)
                except json.JSONDecodeError:
                    log_entry = {"msg": msg, "timestamp": _utc_timestamp()}
            else:
                log_entry = {
                    "msg": msg,
                    "timestamp": _utc_timestamp(),
                    "level": record.levelname,
                    "logger": record.name
                }

            with self._lock:
                self.logs.append(log_entry)

        except Exception:
            self.handleError(record)

    def get_logs(self, since: Optional[str] = None, level: Optional[str] = None, limit: int = 1000) -> list:
        """Get logs from memory buffer with optional filtering"""
        with self._lock:
            logs = list(self.logs)

        if since:
            try:
                since_dt = datetime.fromisoformat(since.replace('Z', ''))
                logs = [log for log in logs if log.get('timestamp') and
                        datetime.fromisoformat(log['timestamp'].replace('Z', '')) >= since_dt]
            except ValueError:
                pass  # Invalid timestamp, return all logs

        if level:
            logs = [log for log in logs if log.get('level') == level.upper()]

        return logs[-limit:] if limit else logs

    def clear(self):
        with self._lock:
            self.logs.clear()


# Global memory handler instance
memory_handler = MemoryLogHandler()

_APP_LOGGERS = ("edlhub", "uvicorn", "uvicorn.error", "uvicorn.access")


def setup_logging(log_level: str = LOG_LEVEL, log_format: str = LOG_FORMAT):
    """Setup logging configuration from YAML file or environment"""

    config = None
    yaml_path = os.getenv("LOGGING_CONFIG", "LOGGING.yaml")
    if os.path.exists(yaml_path):
        try:
            with open(yaml_path, 'r') as f:
                config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            print(f"Warning: Could not load {yaml_path}: {e}")

    # Fallback to basic config if YAML not available
    if not config:
        config = {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {"()": JsonFormatter},
                "text": {
                    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S"
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": log_level,
                    "formatter": log_format,
                    "stream": "ext://sys.stdout"
                }
            },
            "loggers": {
                name: {"level": log_level, "handlers": ["console"], "propagate": False}
                for name in _APP_LOGGERS
            },
            "root": {
                "level": log_level,
                "handlers": ["console"]
            }
        }

    if log_format == "text":
        for handler in config.get("handlers", {}).values():
            if "formatter" in handler:
                handler["formatter"] = "text"

    for logger_cfg in config.get("loggers", {}).values():
        logger_cfg["level"] = log_level

    logging.config.dictConfig(config)

    if log_format == "json":
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    memory_handler.setFormatter(formatter)

    # Attach the shared ring buffer once per logger
    for logger in [logging.getLogger()] + [logging.getLogger(n) for n in _APP_LOGGERS]:
        logger.handlers = [h for h in logger.handlers if not isinstance(h, MemoryLogHandler)]
        logger.addHandler(memory_handler)

    http_log_config["exclude_paths"] = set(HTTP_LOG_EXCLUDE_PATHS)
    http_log_config["sample_rate"] = HTTP_LOG_SAMPLE_RATE

    return config


def get_memory_handler() -> MemoryLogHandler:
    """Get the singleton memory handler instance"""
    return memory_handler
