"""Sender configuration loaded from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from vapidpush.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

logger = logging.getLogger(__name__)

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for a single sender identity."""

  vapid_public_key: str | None
  vapid_private_key: str | None
  vapid_subject: str | None
  gcm_api_key: str | None
  timeout_seconds: float
  default_ttl: int
  log_level: str
  log_file: str | None
  log_max_bytes: int
  log_backup_count: int

  @property
  def vapid_configured(self) -> bool:
    """Return True when both halves of the VAPID key pair are present."""
    return bool(self.vapid_public_key and self.vapid_private_key)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def load_settings() -> Settings:
  """Build settings from the current process environment."""

  vapid_public_key = _optional_str(os.getenv("VAPIDPUSH_VAPID_PUBLIC_KEY"))
  vapid_private_key = _optional_str(os.getenv("VAPIDPUSH_VAPID_PRIVATE_KEY"))
  vapid_subject = _optional_str(os.getenv("VAPIDPUSH_VAPID_SUBJECT"))
  gcm_api_key = _optional_str(os.getenv("VAPIDPUSH_GCM_API_KEY"))

  timeout_seconds = float(os.getenv("VAPIDPUSH_TIMEOUT_SECONDS", "10"))
  if timeout_seconds <= 0:
    raise ValueError("VAPIDPUSH_TIMEOUT_SECONDS must be a positive number.")

  # 28 days matches the longest retention most push services honour.
  default_ttl = int(os.getenv("VAPIDPUSH_DEFAULT_TTL", "2419200"))
  if default_ttl < 0:
    raise ValueError("VAPIDPUSH_DEFAULT_TTL must be zero or a positive integer.")

  log_level = (os.getenv("VAPIDPUSH_LOG_LEVEL") or "INFO").strip().upper()
  if _parse_bool(os.getenv("VAPIDPUSH_DEBUG")):
    log_level = "DEBUG"
  if log_level not in _LOG_LEVELS:
    raise ValueError(f"VAPIDPUSH_LOG_LEVEL must be one of {', '.join(sorted(_LOG_LEVELS))}.")

  log_max_bytes = int(os.getenv("VAPIDPUSH_LOG_MAX_BYTES", "5242880"))  # 5MB default
  if log_max_bytes <= 0:
    raise ValueError("VAPIDPUSH_LOG_MAX_BYTES must be a positive integer.")

  log_backup_count = int(os.getenv("VAPIDPUSH_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("VAPIDPUSH_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # A half-configured key pair is a deployment mistake, not "VAPID disabled".
  if bool(vapid_public_key) != bool(vapid_private_key):
    raise ValueError("VAPIDPUSH_VAPID_PUBLIC_KEY and VAPIDPUSH_VAPID_PRIVATE_KEY must be set together.")

  if vapid_public_key and vapid_private_key:
    if not vapid_subject:
      raise ValueError("VAPIDPUSH_VAPID_SUBJECT must be set when VAPID keys are configured.")

    if not (vapid_subject.startswith("mailto:") or vapid_subject.startswith("https:")):
      raise ValueError("VAPIDPUSH_VAPID_SUBJECT must start with 'mailto:' or 'https:'.")

  return Settings(
    vapid_public_key=vapid_public_key,
    vapid_private_key=vapid_private_key,
    vapid_subject=vapid_subject,
    gcm_api_key=gcm_api_key,
    timeout_seconds=timeout_seconds,
    default_ttl=default_ttl,
    log_level=log_level,
    log_file=_optional_str(os.getenv("VAPIDPUSH_LOG_FILE")),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
  )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  settings = load_settings()
  logger.debug("Settings loaded vapid_configured=%s gcm_configured=%s", settings.vapid_configured, bool(settings.gcm_api_key))
  return settings
