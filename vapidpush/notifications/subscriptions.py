"""Parsing of the browser PushSubscription JSON object."""

from __future__ import annotations

import re
import urllib.parse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

from vapidpush.notifications.contracts import Subscription

_BASE64URL_RE = re.compile(r"^[A-Za-z0-9_-]+={0,2}$")


class PushSubscriptionKeys(BaseModel):
  """Browser-provided key material for Web Push encryption."""

  p256dh: str = Field(min_length=80, max_length=100)
  auth: str = Field(min_length=16, max_length=32)
  model_config = ConfigDict(extra="forbid")

  @field_validator("p256dh", "auth")
  @classmethod
  def validate_base64url(cls, value: str) -> str:
    """Validate key shape using a strict base64url policy."""
    normalized = value.strip()
    if not _BASE64URL_RE.fullmatch(normalized):
      raise PydanticCustomError("push_key_format", "push subscription keys must be base64url encoded.")

    return normalized


class PushSubscriptionInfo(BaseModel):
  """Standard browser push subscription object payload."""

  endpoint: str = Field(min_length=1, max_length=2048)
  expiration_time: int | None = Field(default=None, alias="expirationTime")
  keys: PushSubscriptionKeys
  model_config = ConfigDict(extra="forbid", populate_by_name=True)

  @field_validator("endpoint")
  @classmethod
  def validate_endpoint(cls, value: str) -> str:
    """Require an absolute https endpoint."""
    normalized = value.strip()
    parsed = urllib.parse.urlparse(normalized)

    if parsed.scheme.lower() != "https":
      raise PydanticCustomError("push_endpoint_https", "endpoint must use https.")

    if not parsed.hostname:
      raise PydanticCustomError("push_endpoint_host", "endpoint must include a host.")

    return normalized

  def to_subscription(self) -> Subscription:
    """Decode the key material into a Subscription ready for encryption."""
    return Subscription.from_keys(self.endpoint, self.keys.p256dh, self.keys.auth)
