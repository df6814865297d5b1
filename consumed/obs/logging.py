"""JSON logging with per-request context for the points service."""

from __future__ import annotations

import json
import logging
import random
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from consumed.settings import settings

_LOGGER_NAME = "consumed"

_CONTEXT: Dict[str, ContextVar[Optional[str]]] = {
	"request_id": ContextVar("obs_request_id", default=None),
	"route": ContextVar("obs_route", default=None),
	"user_id": ContextVar("obs_user_id", default=None),
}

# review text and auth material never reach the log stream
_REDACTED_KEYS = ("token", "secret", "authorization", "password", "email", "notes")

_MAX_STR = 256
_MAX_ITEMS = 10

_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def bind_context(
	*,
	request_id: Optional[str] = None,
	route: Optional[str] = None,
	user_id: Optional[str] = None,
) -> Dict[str, Token]:
	"""Set the given context fields and return the tokens needed to undo them."""
	values = {"request_id": request_id, "route": route, "user_id": user_id}
	return {name: _CONTEXT[name].set(value) for name, value in values.items() if value is not None}


def reset_context(tokens: Dict[str, Token]) -> None:
	for name, token in tokens.items():
		_CONTEXT[name].reset(token)


def current_request_id(default: str = "unknown") -> str:
	return _CONTEXT["request_id"].get() or default


def _is_redacted(key: str) -> bool:
	lowered = key.lower()
	return any(marker in lowered for marker in _REDACTED_KEYS)


def _scrub(value: Any) -> Any:
	if isinstance(value, str):
		return value if len(value) <= _MAX_STR else value[:_MAX_STR] + "…"
	if isinstance(value, dict):
		items = list(value.items())
		cleaned = {
			str(key): "[redacted]" if _is_redacted(str(key)) else _scrub(nested)
			for key, nested in items[:_MAX_ITEMS]
		}
		if len(items) > _MAX_ITEMS:
			cleaned["…"] = f"+{len(items) - _MAX_ITEMS} keys"
		return cleaned
	if isinstance(value, (list, tuple, set)):
		seq = [_scrub(item) for item in value]
		return seq if len(seq) <= _MAX_ITEMS else seq[:_MAX_ITEMS] + ["…"]
	return value


class JSONLogFormatter(logging.Formatter):
	"""One JSON object per line: base fields, request context, then extras."""

	def format(self, record: logging.LogRecord) -> str:  # noqa: A003
		payload: Dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"logger": record.name,
			"msg": record.getMessage(),
			"service": settings.service_name,
			"env": settings.environment,
			"commit": settings.git_commit,
		}
		for name, var in _CONTEXT.items():
			value = var.get()
			if value:
				payload[name] = value
		for key, value in vars(record).items():
			if key in _STANDARD_ATTRS or key in payload:
				continue
			payload[key] = "[redacted]" if _is_redacted(key) else _scrub(value)
		if record.exc_info:
			payload["exc_info"] = self.formatException(record.exc_info)
		return json.dumps(payload, separators=(",", ":"), default=str)


class InfoSamplingFilter(logging.Filter):
	"""Drop a share of INFO records; every other level passes."""

	def __init__(self, rate: float) -> None:
		super().__init__()
		self.rate = max(0.0, min(1.0, rate))

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO or self.rate >= 1.0:
			return True
		return random.random() < self.rate


def configure_logging() -> logging.Logger:
	"""Install the JSON handler on the root logger."""
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter(settings.obs_log_sampling_rate_info))
	root = logging.getLogger()
	root.handlers[:] = [handler]
	root.setLevel(settings.obs_log_level)
	# the middleware already logs one line per request
	logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
	return logging.getLogger(_LOGGER_NAME)


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or _LOGGER_NAME)
