"""P-256 key codec for push subscriptions and VAPID headers.

Push subscriptions carry the browser key as a base64url uncompressed point and
VAPID keys are usually exchanged as a base64url raw scalar, so these helpers
only deal in those two compact encodings.
"""

from __future__ import annotations

import base64
import binascii

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from vapidpush.notifications.contracts import InvalidKeyFormat, InvalidRecipientKey, KeyPair

CURVE_NAME = "secp256r1"
FIELD_SIZE = 32
UNCOMPRESSED_POINT_SIZE = 1 + 2 * FIELD_SIZE


def b64url_encode(data: bytes) -> str:
  """URL-safe base64 encode without padding."""
  return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
  """Decode base64url text, tolerating padding and the standard alphabet."""
  normalized = data.strip().replace("+", "-").replace("/", "_").rstrip("=")
  padded = normalized + "=" * (-len(normalized) % 4)
  try:
    return base64.b64decode(padded, altchars=b"-_", validate=True)
  except (binascii.Error, ValueError) as exc:
    raise InvalidKeyFormat("Key material is not valid base64url.") from exc


def _coerce_bytes(encoded: bytes | str) -> bytes:
  if isinstance(encoded, str):
    return b64url_decode(encoded)
  return bytes(encoded)


def _require_p256(curve: ec.EllipticCurve) -> None:
  if curve.name != CURVE_NAME:
    raise InvalidRecipientKey(f"Only P-256 keys are supported, got {curve.name}.")


def load_public_key(encoded: bytes | str | ec.EllipticCurvePublicKey) -> ec.EllipticCurvePublicKey:
  """Decode an uncompressed P-256 point (0x04 || X || Y)."""
  if isinstance(encoded, ec.EllipticCurvePublicKey):
    _require_p256(encoded.curve)
    return encoded

  raw = _coerce_bytes(encoded)
  if len(raw) != UNCOMPRESSED_POINT_SIZE:
    raise InvalidKeyFormat(f"Public key must be {UNCOMPRESSED_POINT_SIZE} bytes, got {len(raw)}.")

  if raw[0] != 0x04:
    raise InvalidKeyFormat("Public key must use the uncompressed point encoding.")

  try:
    return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), raw)
  except ValueError as exc:
    raise InvalidRecipientKey("Public key is not a point on P-256.") from exc


def load_private_key(encoded: bytes | str | ec.EllipticCurvePrivateKey) -> ec.EllipticCurvePrivateKey:
  """Decode a raw big-endian P-256 scalar."""
  if isinstance(encoded, ec.EllipticCurvePrivateKey):
    if encoded.curve.name != CURVE_NAME:
      raise InvalidKeyFormat(f"Only P-256 keys are supported, got {encoded.curve.name}.")
    return encoded

  raw = _coerce_bytes(encoded)
  if len(raw) != FIELD_SIZE:
    raise InvalidKeyFormat(f"Private key must be {FIELD_SIZE} bytes, got {len(raw)}.")

  try:
    return ec.derive_private_key(int.from_bytes(raw, "big"), ec.SECP256R1())
  except ValueError as exc:
    raise InvalidKeyFormat("Private key scalar is out of range for P-256.") from exc


def save_public_key(key: ec.EllipticCurvePublicKey) -> bytes:
  """Encode a public key as the 65-byte uncompressed point."""
  _require_p256(key.curve)
  return key.public_bytes(encoding=serialization.Encoding.X962, format=serialization.PublicFormat.UncompressedPoint)


def save_private_key(key: ec.EllipticCurvePrivateKey) -> bytes:
  """Encode a private key as its 32-byte big-endian scalar."""
  if key.curve.name != CURVE_NAME:
    raise InvalidKeyFormat(f"Only P-256 keys are supported, got {key.curve.name}.")
  return key.private_numbers().private_value.to_bytes(FIELD_SIZE, "big")


def generate_key_pair() -> KeyPair:
  """Generate a fresh P-256 key pair."""
  private_key = ec.generate_private_key(ec.SECP256R1())
  return KeyPair(public_key=private_key.public_key(), private_key=private_key)


def load_key_pair(public_key: bytes | str, private_key: bytes | str) -> KeyPair:
  """Decode both halves of an application server key pair."""
  return KeyPair(public_key=load_public_key(public_key), private_key=load_private_key(private_key))
