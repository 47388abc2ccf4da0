import logging
import logging.handlers
import sys
from pathlib import Path

from vapidpush.config import Settings

LOG_LINE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"
LOG_FORMATTER = logging.Formatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT)

_LOGGING_INITIALIZED = False


def _build_handlers(settings: Settings) -> list[logging.Handler]:
  """Create the stream handler and, when configured, a rotating file handler."""
  stream = logging.StreamHandler(sys.stderr)
  stream.setFormatter(LOG_FORMATTER)
  handlers: list[logging.Handler] = [stream]

  if settings.log_file:
    log_path = Path(settings.log_file)
    try:
      log_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
      raise RuntimeError(f"Failed to create log directory at {log_path.parent}: {exc}") from exc

    file_handler = logging.handlers.RotatingFileHandler(log_path, encoding="utf-8", maxBytes=settings.log_max_bytes, backupCount=settings.log_backup_count)
    file_handler.setFormatter(LOG_FORMATTER)
    handlers.append(file_handler)

  return handlers


def setup_logging(settings: Settings) -> None:
  """Route the package loggers through our handlers at the configured level."""
  global _LOGGING_INITIALIZED
  if _LOGGING_INITIALIZED:
    return

  handlers = _build_handlers(settings)
  package_logger = logging.getLogger("vapidpush")
  package_logger.handlers = handlers
  package_logger.setLevel(settings.log_level)
  package_logger.propagate = False

  # httpx logs every request at INFO; keep it quiet unless we are debugging.
  logging.getLogger("httpx").setLevel(logging.DEBUG if settings.log_level == "DEBUG" else logging.WARNING)

  _LOGGING_INITIALIZED = True
  package_logger.info("Logging initialized at level %s", settings.log_level)
