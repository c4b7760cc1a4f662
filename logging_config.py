"""
Logging configuration with structured JSON output and secret masking
"""
import json
import logging
import re
import sys
from typing import Dict, Optional

from config import get_settings

_RESERVED = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'message', 'pathname', 'process',
    'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'taskName',
}


class SensitiveDataFilter(logging.Filter):
    """Filter to mask sensitive data in log messages"""

    SENSITIVE_PATTERNS = [
        (r'api[_-]?key=([^\s&"\']+)', r'api_key=***'),
        (r'api[_-]?key["\']?\s*:\s*["\']?([^"\'\s&,}]+)', r'api_key": "***'),
        (r'secret["\']?\s*[:=]\s*["\']?([^"\'\s&,}]+)', r'secret": "***'),
        (r'token["\']?\s*[:=]\s*["\']?([^"\'\s&,}]+)', r'token": "***'),
        (r'Bearer\s+([^\s"]+)', r'Bearer ***'),
        (r'Basic\s+([^\s"]+)', r'Basic ***'),
    ]

    def __init__(self, enabled: bool = True):
        super().__init__()
        self.enabled = enabled

    def _mask(self, text: str) -> str:
        for pattern, replacement in self.SENSITIVE_PATTERNS:
            text = re.sub(pattern, replacement, text, flags=re.IGNORECASE)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.enabled:
            return True
        if isinstance(record.msg, str):
            record.msg = self._mask(record.msg)
        if record.args and isinstance(record.args, tuple):
            record.args = tuple(self._mask(a) if isinstance(a, str) else a for a in record.args)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line"""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
            'message': record.getMessage(),
        }
        if record.exc_info:
            payload['exception'] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key in _RESERVED or key.startswith('_'):
                continue
            try:
                json.dumps(value)
                payload[key] = value
            except (TypeError, ValueError):
                payload[key] = str(value)
        return json.dumps(payload, ensure_ascii=False, default=str)


class LoggingConfig:
    """Centralized logging configuration"""

    _configured = False

    @classmethod
    def configure(cls, module_levels: Optional[Dict[str, str]] = None):
        """Configure the root logger once"""
        if cls._configured:
            return

        settings = get_settings()
        handler = logging.StreamHandler(sys.stdout)
        if settings.log_format == "json":
            handler.setFormatter(JsonFormatter())
        else:
            handler.setFormatter(logging.Formatter(
                "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
            ))
        handler.addFilter(SensitiveDataFilter())

        root = logging.getLogger()
        root.handlers.clear()
        root.addHandler(handler)
        root.setLevel(settings.log_level.upper())

        levels = {"httpx": "WARNING", "httpcore": "WARNING", "uvicorn.access": "WARNING"}
        levels.update(module_levels or {})
        for name, level in levels.items():
            logging.getLogger(name).setLevel(level.upper())

        cls._configured = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        return logging.getLogger(name)
