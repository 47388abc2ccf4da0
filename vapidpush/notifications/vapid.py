"""VAPID (RFC 8292) token signing for push service authentication.

Each token is an ES256 JWS whose claims name the push service origin (``aud``),
an expiry twelve hours out (``exp``) and a contact URI for the sender
(``sub``). Tokens are cheap to produce and the audience differs per endpoint,
so nothing here caches.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

from vapidpush.notifications.contracts import CryptoFailure, InvalidVapidToken, KeyPair, KeyPairMismatch, VapidToken
from vapidpush.notifications.keys import b64url_encode, load_public_key, save_public_key

logger = logging.getLogger(__name__)

VAPID_EXPIRATION_SECONDS = 12 * 60 * 60
JWT_ALGORITHM = "ES256"
_SUBJECT_PREFIXES = ("mailto:", "https:")


def verify_key_pair(key_pair: KeyPair) -> bool:
  """Return True when the private scalar times the generator equals the public point."""
  derived = key_pair.private_key.public_key().public_numbers()
  return derived == key_pair.public_key.public_numbers()


def ensure_key_pair(key_pair: KeyPair) -> None:
  """Raise KeyPairMismatch unless the key pair is internally consistent."""
  if not verify_key_pair(key_pair):
    raise KeyPairMismatch("VAPID private key does not correspond to the configured public key.")


def merge_crypto_key(existing: str | None, contribution: str) -> str:
  """Append a Crypto-Key parameter to an existing header value."""
  if existing:
    return f"{existing};{contribution}"
  return contribution


class VapidSigner:
  """Signs VAPID tokens for one application server identity."""

  def __init__(self, *, key_pair: KeyPair, subject: str) -> None:
    if not subject or not subject.startswith(_SUBJECT_PREFIXES):
      raise ValueError("VAPID subject must be a mailto: or https: URI.")

    # Catch a mismatched pair here instead of letting push services reject every token.
    ensure_key_pair(key_pair)
    self._key_pair = key_pair
    self._subject = subject
    self._public_key = b64url_encode(save_public_key(key_pair.public_key))

  @property
  def subject(self) -> str:
    return self._subject

  @property
  def public_key(self) -> str:
    """Base64url uncompressed public key, as sent in the ``k`` parameter."""
    return self._public_key

  def sign(self, audience: str, *, now: int | None = None) -> VapidToken:
    """Sign a token for the push service origin ``audience``."""
    if "://" not in audience:
      raise ValueError("VAPID audience must be an origin such as https://push.example.net.")

    issued_at = int(time.time()) if now is None else int(now)
    claims = {"aud": audience, "exp": issued_at + VAPID_EXPIRATION_SECONDS, "sub": self._subject}

    # PyJWT emits the raw r || s signature JWS requires for ES256.
    try:
      token = jwt.encode(claims, self._key_pair.private_key, algorithm=JWT_ALGORITHM, headers={"typ": "JWT"})
    except (jwt.PyJWTError, ValueError) as exc:
      raise CryptoFailure("ECDSA signing failed.") from exc

    logger.debug("Signed VAPID token aud=%s exp=%d", audience, claims["exp"])
    return VapidToken(token=token, public_key=self._public_key)


def verify_token(token: str, public_key: ec.EllipticCurvePublicKey | bytes | str) -> dict[str, Any]:
  """Verify a compact ES256 token and return its claims.

  Audience and expiry are returned for the caller to judge; only the
  signature and algorithm are enforced here.
  """
  key = load_public_key(public_key)
  try:
    return jwt.decode(token, key, algorithms=[JWT_ALGORITHM], options={"verify_aud": False, "verify_exp": False})
  except jwt.PyJWTError as exc:
    raise InvalidVapidToken(f"VAPID token rejected: {exc}") from exc
