from __future__ import annotations

import pytest
from pydantic import ValidationError
from vapidpush.notifications.encryption import decrypt, encrypt
from vapidpush.notifications.keys import b64url_encode, save_public_key
from vapidpush.notifications.subscriptions import PushSubscriptionInfo


def _browser_payload(browser_private_key, auth_secret, **overrides) -> dict:
  payload = {
    "endpoint": "https://updates.push.services.mozilla.com/wpush/v2/gAAAAABk",
    "expirationTime": None,
    "keys": {"p256dh": b64url_encode(save_public_key(browser_private_key.public_key())), "auth": b64url_encode(auth_secret)},
  }
  payload.update(overrides)
  return payload


def test_browser_subscription_parses_into_usable_subscription(browser_private_key, auth_secret):
  info = PushSubscriptionInfo.model_validate(_browser_payload(browser_private_key, auth_secret))
  subscription = info.to_subscription()

  assert subscription.endpoint == "https://updates.push.services.mozilla.com/wpush/v2/gAAAAABk"
  assert subscription.user_auth == auth_secret
  assert subscription.user_public_key == browser_private_key.public_key()

  envelope = encrypt(b"ping", subscription.user_public_key, subscription.user_auth).ciphertext
  assert decrypt(envelope, browser_private_key, auth_secret) == b"ping"


def test_plain_http_endpoint_is_rejected(browser_private_key, auth_secret):
  with pytest.raises(ValidationError):
    PushSubscriptionInfo.model_validate(_browser_payload(browser_private_key, auth_secret, endpoint="http://push.example.net/sub"))


def test_non_base64url_keys_are_rejected(browser_private_key, auth_secret):
  payload = _browser_payload(browser_private_key, auth_secret)
  payload["keys"]["auth"] = "not/base64+url!!!!!!"

  with pytest.raises(ValidationError):
    PushSubscriptionInfo.model_validate(payload)


def test_unknown_fields_are_rejected(browser_private_key, auth_secret):
  with pytest.raises(ValidationError):
    PushSubscriptionInfo.model_validate(_browser_payload(browser_private_key, auth_secret, extra="nope"))
