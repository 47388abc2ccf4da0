from __future__ import annotations

import logging
import os

import pytest
from vapidpush.config import load_settings
from vapidpush.notifications.factory import build_push_sender, build_push_service
from vapidpush.notifications.keys import b64url_encode, generate_key_pair, save_private_key, save_public_key
from vapidpush.notifications.push_sender import HttpxPushSender, NullPushSender
from vapidpush.utils.env import load_env_file, parse_env_file

_ENV_VARS = ["VAPIDPUSH_VAPID_PUBLIC_KEY", "VAPIDPUSH_VAPID_PRIVATE_KEY", "VAPIDPUSH_VAPID_SUBJECT", "VAPIDPUSH_GCM_API_KEY", "VAPIDPUSH_TIMEOUT_SECONDS", "VAPIDPUSH_DEFAULT_TTL", "VAPIDPUSH_LOG_LEVEL", "VAPIDPUSH_DEBUG", "VAPIDPUSH_LOG_FILE"]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
  for name in _ENV_VARS:
    monkeypatch.delenv(name, raising=False)


def _set_vapid_env(monkeypatch, key_pair=None, subject="mailto:ops@example.com"):
  key_pair = key_pair or generate_key_pair()
  monkeypatch.setenv("VAPIDPUSH_VAPID_PUBLIC_KEY", b64url_encode(save_public_key(key_pair.public_key)))
  monkeypatch.setenv("VAPIDPUSH_VAPID_PRIVATE_KEY", b64url_encode(save_private_key(key_pair.private_key)))
  monkeypatch.setenv("VAPIDPUSH_VAPID_SUBJECT", subject)
  return key_pair


def test_defaults_without_credentials():
  settings = load_settings()

  assert settings.vapid_configured is False
  assert settings.timeout_seconds == 10.0
  assert settings.default_ttl == 2419200
  assert settings.log_level == "INFO"
  assert isinstance(build_push_sender(settings), NullPushSender)


def test_vapid_settings_build_enabled_service(monkeypatch):
  _set_vapid_env(monkeypatch)
  settings = load_settings()

  service = build_push_service(settings)
  assert service.vapid_enabled
  assert service.subject == "mailto:ops@example.com"
  assert isinstance(build_push_sender(settings), HttpxPushSender)


def test_gcm_only_settings_build_sender(monkeypatch):
  monkeypatch.setenv("VAPIDPUSH_GCM_API_KEY", "legacy")
  settings = load_settings()

  service = build_push_service(settings)
  assert service.gcm_api_key == "legacy"
  assert not service.vapid_enabled
  assert isinstance(build_push_sender(settings), HttpxPushSender)


def test_half_configured_key_pair_is_rejected(monkeypatch):
  monkeypatch.setenv("VAPIDPUSH_VAPID_PUBLIC_KEY", "abc")

  with pytest.raises(ValueError):
    load_settings()


def test_subject_is_required_and_validated(monkeypatch):
  _set_vapid_env(monkeypatch, subject="ops@example.com")

  with pytest.raises(ValueError):
    load_settings()

  monkeypatch.delenv("VAPIDPUSH_VAPID_SUBJECT")
  with pytest.raises(ValueError):
    load_settings()


def test_numeric_and_level_validation(monkeypatch):
  monkeypatch.setenv("VAPIDPUSH_TIMEOUT_SECONDS", "0")
  with pytest.raises(ValueError):
    load_settings()

  monkeypatch.setenv("VAPIDPUSH_TIMEOUT_SECONDS", "5")
  monkeypatch.setenv("VAPIDPUSH_LOG_LEVEL", "chatty")
  with pytest.raises(ValueError):
    load_settings()

  monkeypatch.setenv("VAPIDPUSH_DEBUG", "true")
  assert load_settings().log_level == "DEBUG"


def test_env_file_loader_respects_existing_values(tmp_path, monkeypatch):
  # The loader writes straight into os.environ; give it a throwaway copy.
  monkeypatch.setattr(os, "environ", dict(os.environ))
  env_file = tmp_path / ".env"
  env_file.write_text("# comment\nexport VAPIDPUSH_GCM_API_KEY='from-file'\nVAPIDPUSH_VAPID_SUBJECT=mailto:file@example.com\nUNRELATED_PUSH_TEST_SETTING=postgres://db\n", encoding="utf-8")
  monkeypatch.setenv("VAPIDPUSH_VAPID_SUBJECT", "mailto:env@example.com")

  load_env_file(env_file)

  settings = load_settings()
  assert settings.gcm_api_key == "from-file"
  assert settings.vapid_subject == "mailto:env@example.com"
  assert "UNRELATED_PUSH_TEST_SETTING" not in os.environ


def test_env_file_reports_malformed_lines(tmp_path):
  env_file = tmp_path / ".env"
  env_file.write_text("VAPIDPUSH_GCM_API_KEY=ok\nnot a pair\n", encoding="utf-8")

  with pytest.raises(ValueError, match=r"\.env:2"):
    parse_env_file(env_file)

  env_file.write_text("VAPIDPUSH_VAPID_PRIVATE_KEY=\"unterminated\n", encoding="utf-8")
  with pytest.raises(ValueError, match="unterminated"):
    parse_env_file(env_file)


def test_env_file_parses_only_prefixed_keys(tmp_path):
  env_file = tmp_path / ".env"
  env_file.write_text("# local\nexport VAPIDPUSH_VAPID_SUBJECT=\"mailto:ops@example.com\"\nOTHER_SERVICE_TOKEN=secret\n", encoding="utf-8")

  assert parse_env_file(env_file) == {"VAPIDPUSH_VAPID_SUBJECT": "mailto:ops@example.com"}
  assert parse_env_file(tmp_path / "missing.env") == {}


def test_setup_logging_installs_stream_and_file_handlers(tmp_path, monkeypatch):
  from vapidpush.core import logging as push_logging

  monkeypatch.setattr(push_logging, "_LOGGING_INITIALIZED", False)
  monkeypatch.setenv("VAPIDPUSH_LOG_FILE", str(tmp_path / "logs" / "push.log"))
  monkeypatch.setenv("VAPIDPUSH_LOG_LEVEL", "DEBUG")
  package_logger = logging.getLogger("vapidpush")
  monkeypatch.setattr(package_logger, "handlers", [])
  monkeypatch.setattr(package_logger, "propagate", True)
  monkeypatch.setattr(package_logger, "level", package_logger.level)

  push_logging.setup_logging(load_settings())

  assert package_logger.level == logging.DEBUG
  assert len(package_logger.handlers) == 2
  assert (tmp_path / "logs" / "push.log").exists()
  for handler in package_logger.handlers:
    handler.close()
