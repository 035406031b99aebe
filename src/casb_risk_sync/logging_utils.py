"""Logging setup: Rich console output or JSON lines, with secret redaction."""

import json
import logging
import sys
from collections.abc import Iterable
from datetime import datetime, timezone

from rich.console import Console
from rich.logging import RichHandler

REDACTED = "***REDACTED***"

console = Console(stderr=True)


class SecretRedactionFilter(logging.Filter):
    """Logging filter that replaces raw secrets with ``***REDACTED***``."""

    def __init__(self, secrets: Iterable[str]) -> None:
        super().__init__()
        self._secrets = [s for s in secrets if s]

    def _redact(self, value: str) -> str:
        for secret in self._secrets:
            value = value.replace(secret, REDACTED)
        return value

    def _contains_secret(self, value: object) -> bool:
        text = str(value)
        return any(secret in text for secret in self._secrets)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        if self._contains_secret(record.msg):
            record.msg = self._redact(str(record.msg))
        if record.args:
            args = record.args
            if isinstance(args, tuple):
                record.args = tuple(
                    self._redact(str(a)) if self._contains_secret(a) else a for a in args
                )
            elif isinstance(args, dict):
                record.args = {
                    k: self._redact(str(v)) if self._contains_secret(v) else v
                    for k, v in args.items()
                }
        return True


class JsonFormatter(logging.Formatter):
    """Format each record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def build_handler(json_format: bool = False) -> logging.Handler:
    """Create the console handler for the chosen log format."""
    if json_format:
        handler: logging.Handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        return handler
    handler = RichHandler(console=console, rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    return handler


def setup_logging(
    verbose: bool = False,
    json_format: bool = False,
    secrets: Iterable[str] = (),
) -> None:
    """Configure the root logger.

    Safe to call again (e.g. after a config reload) to switch formats.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handler = build_handler(json_format)
    handler.addFilter(SecretRedactionFilter(secrets))
    logging.basicConfig(level=level, handlers=[handler], force=True)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)
