import os
import json
import logging
from logging.handlers import TimedRotatingFileHandler
from datetime import datetime, timezone
from pathlib import Path
import contextvars
from typing import Optional

from fastapi import Request
from starlette.responses import Response

# Correlation id for the request currently being handled
correlation_id_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("correlation_id", default=None)

# Structured fields copied from `extra=` into the JSON payload when present
STRUCTURED_FIELDS = (
	"path", "method", "status_code", "latency_ms", "client_host", "error",
	"doc_id", "dataset_id", "dataset_ids", "dataset_name", "file_name", "status",
	"quality_score", "mime", "size_bytes", "count", "op", "event", "version",
	"documents", "datasets", "edges_repaired", "edges_dropped", "format",
)


class ContextFilter(logging.Filter):
	def filter(self, record: logging.LogRecord) -> bool:
		record.correlation_id = correlation_id_ctx.get()
		return True


class JsonFormatter(logging.Formatter):
	def format(self, record: logging.LogRecord) -> str:
		payload = {
			"timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
			"level": record.levelname,
			"logger": record.name,
			"message": record.getMessage(),
			"correlation_id": getattr(record, "correlation_id", None),
		}
		for key in STRUCTURED_FIELDS:
			val = getattr(record, key, None)
			if val is not None:
				payload[key] = val
		if record.exc_info:
			payload["exc_info"] = self.formatException(record.exc_info)
		return json.dumps(payload, ensure_ascii=False, default=str)


def _make_rotating_file_handler(path: Path, level: int) -> logging.Handler:
	path.parent.mkdir(parents=True, exist_ok=True)
	handler = TimedRotatingFileHandler(path, when="midnight", backupCount=int(os.getenv("LOG_BACKUP_COUNT", "7")), utc=True)
	handler.setLevel(level)
	handler.setFormatter(JsonFormatter())
	handler.addFilter(ContextFilter())
	return handler


def init_logging():
	"""Initialize application logging with console + rotating file handlers."""
	log_dir = Path(os.getenv("LOG_DIR", "logs"))
	level_name = os.getenv("LOG_LEVEL", "INFO").upper()
	level = getattr(logging, level_name, logging.INFO)

	root = logging.getLogger()
	root.setLevel(level)

	# Remove existing handlers to avoid duplicates on reload
	for h in list(root.handlers):
		root.removeHandler(h)
		h.close()

	console = logging.StreamHandler()
	console.setLevel(level)
	console.setFormatter(JsonFormatter())
	console.addFilter(ContextFilter())
	root.addHandler(console)

	root.addHandler(_make_rotating_file_handler(log_dir / "app.log", level))
	root.addHandler(_make_rotating_file_handler(log_dir / "error.log", logging.ERROR))

	logging.getLogger(__name__).info("Logging initialized")


def install_request_logging(app):
	"""Attach request logging middleware to the FastAPI app."""
	logger = logging.getLogger("request")

	@app.middleware("http")
	async def _log_middleware(request: Request, call_next):
		corr = request.headers.get("X-Request-ID") or request.headers.get("X-Correlation-ID")
		if not corr:
			corr = os.urandom(8).hex()
		token = correlation_id_ctx.set(corr)

		start = datetime.now(timezone.utc)
		try:
			response: Response = await call_next(request)
			latency_ms = int((datetime.now(timezone.utc) - start).total_seconds() * 1000)
			logger.info(
				"request_completed",
				extra={
					"path": request.url.path,
					"method": request.method,
					"status_code": response.status_code,
					"latency_ms": latency_ms,
					"client_host": request.client.host if request.client else None,
				},
			)
			response.headers["X-Request-ID"] = corr
			return response
		except Exception:
			latency_ms = int((datetime.now(timezone.utc) - start).total_seconds() * 1000)
			logger.error(
				"request_failed",
				exc_info=True,
				extra={
					"path": request.url.path,
					"method": request.method,
					"status_code": 500,
					"latency_ms": latency_ms,
					"client_host": request.client.host if request.client else None,
				},
			)
			raise
		finally:
			correlation_id_ctx.reset(token)
