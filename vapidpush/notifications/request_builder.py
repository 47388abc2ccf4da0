"""Assemble Web Push HTTP requests from notifications and sender configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from vapidpush.notifications.contracts import KeyPair, MissingCredential, Notification, PushRequest
from vapidpush.notifications.encryption import CONTENT_ENCODING, encrypt
from vapidpush.notifications.keys import load_key_pair
from vapidpush.notifications.vapid import VapidSigner, merge_crypto_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PushService:
  """Immutable sender identity: legacy GCM key and/or a VAPID key pair.

  The key pair is checked once here, so a service that constructs successfully
  can be shared by concurrent sends without further validation.
  """

  gcm_api_key: str | None = None
  subject: str | None = None
  key_pair: KeyPair | None = None
  _signer: VapidSigner | None = field(default=None, init=False, repr=False, compare=False)

  def __post_init__(self) -> None:
    if self.key_pair is None:
      return

    if not self.subject:
      raise ValueError("A VAPID subject is required when a key pair is configured.")

    object.__setattr__(self, "_signer", VapidSigner(key_pair=self.key_pair, subject=self.subject))

  @classmethod
  def from_encoded_keys(cls, public_key: bytes | str, private_key: bytes | str, subject: str, *, gcm_api_key: str | None = None) -> PushService:
    """Build a VAPID-enabled service from base64url (or raw) key material."""
    return cls(gcm_api_key=gcm_api_key, subject=subject, key_pair=load_key_pair(public_key, private_key))

  @property
  def vapid_enabled(self) -> bool:
    return self._signer is not None

  @property
  def vapid_public_key(self) -> str | None:
    """Base64url application server key to hand to browsers, if VAPID is on."""
    if self._signer is None:
      return None
    return self._signer.public_key

  def prepare_request(self, notification: Notification) -> PushRequest:
    """Compute the endpoint, headers and body for one notification without sending it."""
    # Fail before doing any crypto work so a missing credential leaves nothing behind.
    if notification.is_gcm and not self.gcm_api_key:
      raise MissingCredential("A GCM API key is needed to send a push notification to a GCM endpoint.")

    headers: dict[str, str] = {"TTL": str(notification.ttl)}
    body = b""

    if notification.has_payload:
      subscription = notification.subscription
      result = encrypt(notification.payload, subscription.user_public_key, subscription.user_auth)
      headers["Content-Type"] = "application/octet-stream"
      headers["Content-Encoding"] = CONTENT_ENCODING
      body = result.ciphertext

    if notification.urgency is not None:
      headers["Urgency"] = notification.urgency.value

    if notification.topic is not None:
      headers["Topic"] = notification.topic

    if notification.is_gcm:
      headers["Authorization"] = f"key={self.gcm_api_key}"
    elif self._signer is not None:
      token = self._signer.sign(notification.origin)
      headers["Authorization"] = token.authorization
      headers["Crypto-Key"] = merge_crypto_key(headers.get("Crypto-Key"), token.crypto_key)

    logger.debug("Prepared push request origin=%s payload=%s gcm=%s vapid=%s", notification.origin, notification.has_payload, notification.is_gcm, self.vapid_enabled and not notification.is_gcm)
    return PushRequest(endpoint=notification.endpoint, headers=headers, body=body)
