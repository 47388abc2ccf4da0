"""Factory helpers for push services."""

from __future__ import annotations

import logging

from vapidpush.config import Settings
from vapidpush.notifications.contracts import PushSender
from vapidpush.notifications.push_sender import HttpxPushSender, NullPushSender
from vapidpush.notifications.request_builder import PushService

logger = logging.getLogger(__name__)


def build_push_service(settings: Settings) -> PushService:
  """Construct the immutable sender identity from environment configuration."""
  if settings.vapid_public_key and settings.vapid_private_key:
    return PushService.from_encoded_keys(settings.vapid_public_key, settings.vapid_private_key, settings.vapid_subject or "", gcm_api_key=settings.gcm_api_key)

  return PushService(gcm_api_key=settings.gcm_api_key)


def build_push_sender(settings: Settings) -> PushSender:
  """Construct a sender, or a no-op sender when no credential is configured."""
  # Without VAPID keys or a GCM key only unauthenticated pushes are possible, which services reject.
  if not settings.vapid_configured and not settings.gcm_api_key:
    logger.info("No VAPID keys or GCM API key configured; push delivery disabled")
    return NullPushSender()

  return HttpxPushSender(service=build_push_service(settings), timeout_seconds=settings.timeout_seconds)
