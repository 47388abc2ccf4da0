"""Read ``VAPIDPUSH_*`` settings from a local .env file.

Only keys carrying the package prefix are applied, so a shared .env full of
unrelated service settings never leaks into the process through this loader.
Malformed lines are reported with their location instead of being skipped.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

ENV_PREFIX = "VAPIDPUSH_"
_ENV_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_QUOTES = ('"', "'")


def default_env_path() -> Path:
  return Path(__file__).resolve().parents[2] / ".env"


def _unquote(value: str, *, location: str) -> str:
  if not value or value[0] not in _QUOTES:
    return value

  # Keys are pasted quoted often enough that an unbalanced quote is worth flagging.
  if len(value) < 2 or value[-1] != value[0]:
    raise ValueError(f"{location}: unterminated quoted value")
  return value[1:-1]


def parse_env_file(path: Path) -> dict[str, str]:
  """Return the prefixed key/value pairs in ``path``; a missing file yields nothing."""
  if not path.is_file():
    return {}

  values: dict[str, str] = {}
  for lineno, raw_line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
    line = raw_line.strip()
    if not line or line.startswith("#"):
      continue

    location = f"{path}:{lineno}"
    line = line.removeprefix("export ").lstrip()
    key, sep, value = line.partition("=")
    key = key.strip()
    if not sep or not _ENV_KEY_RE.fullmatch(key):
      raise ValueError(f"{location}: expected KEY=VALUE, got {raw_line.strip()!r}")

    if not key.startswith(ENV_PREFIX):
      continue
    values[key] = _unquote(value.strip(), location=location)

  return values


def load_env_file(path: Path, *, override: bool = False) -> dict[str, str]:
  """Apply the file's ``VAPIDPUSH_*`` values to os.environ and return what was set."""
  applied: dict[str, str] = {}
  for key, value in parse_env_file(path).items():
    if not override and key in os.environ:
      continue
    os.environ[key] = value
    applied[key] = value
  return applied
