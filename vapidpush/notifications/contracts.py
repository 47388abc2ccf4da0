"""Contracts shared by the Web Push encryption, signing and delivery layers."""

from __future__ import annotations

import re
import urllib.parse
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from cryptography.hazmat.primitives.asymmetric import ec

GCM_ENDPOINT_PREFIX = "https://android.googleapis.com/gcm/send"
DEFAULT_TTL_SECONDS = 2419200
AUTH_SECRET_LENGTH = 16

_TOPIC_RE = re.compile(r"^[A-Za-z0-9_-]{1,32}$")
_DEFAULT_PORTS = {"https": 443, "http": 80}


class PushError(Exception):
  """Base class for all Web Push failures."""


class InvalidKeyFormat(PushError):
  """Raised when key material cannot be decoded into a P-256 key."""


class InvalidRecipientKey(InvalidKeyFormat):
  """Raised when a public key is well formed but not a usable P-256 point."""


class KeyPairMismatch(PushError):
  """Raised when a VAPID private key does not produce the configured public key."""


class MissingCredential(PushError):
  """Raised when a legacy GCM endpoint is targeted without an API key."""


class CryptoFailure(PushError):
  """Raised when an ECDH, AEAD or signature operation fails internally."""


class InvalidEnvelope(PushError):
  """Raised when an aes128gcm envelope cannot be parsed."""


class InvalidVapidToken(PushError):
  """Raised when a VAPID token is malformed or its signature does not verify."""


class PushProviderError(PushError):
  """Raised when the push service rejects a request or cannot be reached."""

  def __init__(self, message: str, *, status_code: int | None = None) -> None:
    super().__init__(message)
    self.status_code = status_code


class InvalidPushSubscriptionError(PushProviderError):
  """Raised when a push subscription endpoint is expired or invalid."""


class Urgency(str, Enum):
  """Delivery urgency hint understood by push services."""

  VERY_LOW = "very-low"
  LOW = "low"
  NORMAL = "normal"
  HIGH = "high"


@dataclass(frozen=True)
class KeyPair:
  """Application server key pair used for VAPID signing."""

  public_key: ec.EllipticCurvePublicKey
  private_key: ec.EllipticCurvePrivateKey


@dataclass(frozen=True)
class Subscription:
  """A browser push subscription: where to deliver and whom to encrypt for."""

  endpoint: str
  user_public_key: ec.EllipticCurvePublicKey
  user_auth: bytes

  def __post_init__(self) -> None:
    if len(self.user_auth) != AUTH_SECRET_LENGTH:
      raise InvalidKeyFormat(f"Auth secret must be {AUTH_SECRET_LENGTH} bytes, got {len(self.user_auth)}.")

  @classmethod
  def from_keys(cls, endpoint: str, p256dh: str | bytes, auth: str | bytes) -> Subscription:
    """Build a subscription from the base64url key strings a browser hands out."""
    from vapidpush.notifications.keys import b64url_decode, load_public_key

    user_auth = b64url_decode(auth) if isinstance(auth, str) else bytes(auth)
    return cls(endpoint=endpoint, user_public_key=load_public_key(p256dh), user_auth=user_auth)


@dataclass(frozen=True)
class Notification:
  """A single message addressed to one subscription."""

  subscription: Subscription
  payload: bytes | None = None
  ttl: int = DEFAULT_TTL_SECONDS
  urgency: Urgency | None = None
  topic: str | None = None

  def __post_init__(self) -> None:
    if isinstance(self.payload, str):
      object.__setattr__(self, "payload", self.payload.encode("utf-8"))

    if self.ttl < 0:
      raise ValueError("TTL must be zero or a positive number of seconds.")

    if self.urgency is not None and not isinstance(self.urgency, Urgency):
      object.__setattr__(self, "urgency", Urgency(self.urgency))

    # Topics travel in a header and must fit the URL-safe base64 alphabet.
    if self.topic is not None and not _TOPIC_RE.fullmatch(self.topic):
      raise ValueError("Topic must be 1-32 characters from the URL-safe base64 alphabet.")

  @property
  def endpoint(self) -> str:
    return self.subscription.endpoint

  @property
  def has_payload(self) -> bool:
    return bool(self.payload)

  @property
  def is_gcm(self) -> bool:
    """Return True for pre-VAPID GCM endpoints that authenticate with an API key."""
    return self.endpoint.startswith(GCM_ENDPOINT_PREFIX)

  @property
  def origin(self) -> str:
    """Return the endpoint origin used as the VAPID audience.

    The host is lowercased and a port equal to the scheme default is dropped,
    so ``https://Push.Example:443/x`` and ``https://push.example/x`` share one
    audience.
    """
    parsed = urllib.parse.urlsplit(self.endpoint)
    scheme = parsed.scheme.lower()
    host = parsed.hostname or ""
    if ":" in host:
      host = f"[{host}]"

    port = parsed.port
    if port is None or _DEFAULT_PORTS.get(scheme) == port:
      return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


@dataclass(frozen=True)
class EncryptionResult:
  """Output of one aes128gcm encryption; the ciphertext is the full envelope."""

  ciphertext: bytes
  salt: bytes
  sender_public_key: ec.EllipticCurvePublicKey


@dataclass(frozen=True)
class VapidToken:
  """A signed VAPID JWT and the public key that verifies it."""

  token: str
  public_key: str

  @property
  def authorization(self) -> str:
    return f"vapid t={self.token},k={self.public_key}"

  @property
  def crypto_key(self) -> str:
    return f"p256ecdsa={self.public_key}"


@dataclass(frozen=True)
class PushRequest:
  """Everything an HTTP client needs to deliver one push message."""

  endpoint: str
  headers: dict[str, str] = field(hash=False)
  body: bytes = b""


class PushSender(Protocol):
  """Delivery contract for sending push notifications."""

  def send(self, notification: Notification) -> object:
    """Send a push notification synchronously."""
