"""Shared fixtures: throwaway browser and application server keys."""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402
from cryptography.hazmat.primitives.asymmetric import ec  # noqa: E402

from vapidpush.notifications.contracts import KeyPair, Subscription  # noqa: E402
from vapidpush.notifications.keys import generate_key_pair  # noqa: E402

FCM_ENDPOINT = "https://fcm.googleapis.com/fcm/send/abc123"


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def browser_private_key() -> ec.EllipticCurvePrivateKey:
  return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def auth_secret() -> bytes:
  return os.urandom(16)


@pytest.fixture
def subscription(browser_private_key, auth_secret) -> Subscription:
  return Subscription(endpoint=FCM_ENDPOINT, user_public_key=browser_private_key.public_key(), user_auth=auth_secret)


@pytest.fixture
def vapid_key_pair() -> KeyPair:
  return generate_key_pair()
