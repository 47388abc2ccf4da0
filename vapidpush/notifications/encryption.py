"""Web Push message encryption using the aes128gcm content coding.

The sender generates a fresh P-256 key pair for every message and agrees on a
shared secret with the browser's subscription key. That secret is mixed with
the subscription auth secret and a per-message salt through HKDF-SHA256 to get
a 16-byte AES-GCM key and a 12-byte nonce. The sealed payload is prefixed with
the content coding header:

  salt (16) | record size (uint32 BE) | key id length (1) | sender public key | ciphertext

Only a single record is ever produced, so the plaintext always ends with the
0x02 "last record" delimiter followed by optional zero padding.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from vapidpush.notifications.contracts import AUTH_SECRET_LENGTH, CryptoFailure, EncryptionResult, InvalidEnvelope, InvalidKeyFormat
from vapidpush.notifications.keys import load_private_key, load_public_key, save_public_key

logger = logging.getLogger(__name__)

CONTENT_ENCODING = "aes128gcm"
RECORD_SIZE = 4096
SALT_LENGTH = 16
KEY_LENGTH = 16
NONCE_LENGTH = 12
TAG_LENGTH = 16
HEADER_FIXED_LENGTH = SALT_LENGTH + 4 + 1

LAST_RECORD_DELIMITER = 0x02
RECORD_DELIMITER = 0x01

_KEY_INFO_PREFIX = b"WebPush: info\x00"
_CEK_INFO = b"Content-Encoding: aes128gcm\x00"
_NONCE_INFO = b"Content-Encoding: nonce\x00"


@dataclass(frozen=True)
class EnvelopeHeader:
  """Parsed content coding header of an aes128gcm envelope."""

  salt: bytes
  record_size: int
  key_id: bytes

  @property
  def length(self) -> int:
    return HEADER_FIXED_LENGTH + len(self.key_id)


def _hkdf(ikm: bytes, *, salt: bytes, info: bytes, length: int) -> bytes:
  return HKDF(algorithm=hashes.SHA256(), length=length, salt=salt, info=info).derive(ikm)


def _derive_key_and_nonce(*, ecdh_secret: bytes, auth_secret: bytes, ua_public: bytes, as_public: bytes, salt: bytes) -> tuple[bytes, bytes]:
  """Derive the content encryption key and base nonce for one message."""
  # Bind the auth secret and both public keys into the input keying material.
  ikm = _hkdf(ecdh_secret, salt=auth_secret, info=_KEY_INFO_PREFIX + ua_public + as_public, length=32)
  cek = _hkdf(ikm, salt=salt, info=_CEK_INFO, length=KEY_LENGTH)
  nonce = _hkdf(ikm, salt=salt, info=_NONCE_INFO, length=NONCE_LENGTH)
  return cek, nonce


def _record_nonce(base_nonce: bytes, sequence: int) -> bytes:
  # XOR the record sequence number into the low-order bytes of the nonce.
  value = int.from_bytes(base_nonce, "big") ^ sequence
  return value.to_bytes(NONCE_LENGTH, "big")


def _check_auth_secret(user_auth: bytes) -> bytes:
  auth = bytes(user_auth)
  if len(auth) != AUTH_SECRET_LENGTH:
    raise InvalidKeyFormat(f"Auth secret must be {AUTH_SECRET_LENGTH} bytes, got {len(auth)}.")
  return auth


def encrypt(payload: bytes | str, user_public_key: ec.EllipticCurvePublicKey | bytes | str, user_auth: bytes, *, padding_length: int = 0) -> EncryptionResult:
  """Encrypt a payload for a subscription and return the full aes128gcm envelope."""
  if padding_length < 0:
    raise ValueError("padding_length must be zero or positive.")

  recipient = load_public_key(user_public_key)
  auth_secret = _check_auth_secret(user_auth)
  ua_public = save_public_key(recipient)

  # A new key pair per message; the private half never leaves this frame.
  ephemeral_key = ec.generate_private_key(ec.SECP256R1())
  sender_public_key = ephemeral_key.public_key()
  as_public = save_public_key(sender_public_key)
  try:
    ecdh_secret = ephemeral_key.exchange(ec.ECDH(), recipient)
  except ValueError as exc:
    raise CryptoFailure("ECDH key agreement failed.") from exc
  finally:
    del ephemeral_key

  salt = os.urandom(SALT_LENGTH)
  cek, nonce = _derive_key_and_nonce(ecdh_secret=ecdh_secret, auth_secret=auth_secret, ua_public=ua_public, as_public=as_public, salt=salt)

  data = payload.encode("utf-8") if isinstance(payload, str) else bytes(payload)
  plaintext = data + bytes([LAST_RECORD_DELIMITER]) + b"\x00" * padding_length
  try:
    sealed = AESGCM(cek).encrypt(nonce, plaintext, None)
  except (OverflowError, ValueError) as exc:
    raise CryptoFailure("AES-GCM sealing failed.") from exc

  # Keep the envelope a single record even when the payload outgrows the default size.
  record_size = max(RECORD_SIZE, len(sealed))
  header = salt + record_size.to_bytes(4, "big") + bytes([len(as_public)]) + as_public

  logger.debug("Encrypted push payload plaintext_bytes=%d padding=%d envelope_bytes=%d", len(data), padding_length, len(header) + len(sealed))
  return EncryptionResult(ciphertext=header + sealed, salt=salt, sender_public_key=sender_public_key)


def parse_header(envelope: bytes) -> EnvelopeHeader:
  """Read the salt, record size and key id from the front of an envelope."""
  if len(envelope) < HEADER_FIXED_LENGTH:
    raise InvalidEnvelope("Envelope is shorter than the content coding header.")

  salt = bytes(envelope[:SALT_LENGTH])
  record_size = int.from_bytes(envelope[SALT_LENGTH : SALT_LENGTH + 4], "big")
  key_id_length = envelope[SALT_LENGTH + 4]
  if len(envelope) < HEADER_FIXED_LENGTH + key_id_length:
    raise InvalidEnvelope("Envelope is truncated inside the key id.")

  if record_size <= TAG_LENGTH + 1:
    raise InvalidEnvelope(f"Record size {record_size} is too small.")

  key_id = bytes(envelope[HEADER_FIXED_LENGTH : HEADER_FIXED_LENGTH + key_id_length])
  return EnvelopeHeader(salt=salt, record_size=record_size, key_id=key_id)


def _unpad(record: bytes, *, last: bool) -> bytes:
  # Padding is zeros after the delimiter; the delimiter tells us if this is the final record.
  stripped = record.rstrip(b"\x00")
  if not stripped:
    raise InvalidEnvelope("Record contains no delimiter.")

  expected = LAST_RECORD_DELIMITER if last else RECORD_DELIMITER
  if stripped[-1] != expected:
    raise InvalidEnvelope("Record delimiter does not match its position.")

  return stripped[:-1]


def decrypt(envelope: bytes, user_private_key: ec.EllipticCurvePrivateKey | bytes | str, user_auth: bytes) -> bytes:
  """Decrypt an aes128gcm envelope with the subscription's private key and auth secret."""
  header = parse_header(envelope)
  private_key = load_private_key(user_private_key)
  auth_secret = _check_auth_secret(user_auth)

  sender_public_key = load_public_key(header.key_id)
  try:
    ecdh_secret = private_key.exchange(ec.ECDH(), sender_public_key)
  except ValueError as exc:
    raise CryptoFailure("ECDH key agreement failed.") from exc

  ua_public = save_public_key(private_key.public_key())
  cek, base_nonce = _derive_key_and_nonce(ecdh_secret=ecdh_secret, auth_secret=auth_secret, ua_public=ua_public, as_public=header.key_id, salt=header.salt)

  body = envelope[header.length :]
  if not body:
    raise InvalidEnvelope("Envelope carries no ciphertext.")

  aead = AESGCM(cek)
  records = [body[start : start + header.record_size] for start in range(0, len(body), header.record_size)]
  plaintext = bytearray()
  for sequence, record in enumerate(records):
    if len(record) <= TAG_LENGTH:
      raise InvalidEnvelope("Record is too short to hold a tag.")

    try:
      opened = aead.decrypt(_record_nonce(base_nonce, sequence), bytes(record), None)
    except InvalidTag as exc:
      raise CryptoFailure("AES-GCM authentication failed.") from exc

    plaintext += _unpad(opened, last=sequence == len(records) - 1)

  return bytes(plaintext)
