"""Push notification delivery implementations."""

from __future__ import annotations

import logging
from http import HTTPStatus

import httpx

from vapidpush.notifications.contracts import InvalidPushSubscriptionError, Notification, PushProviderError, PushSender
from vapidpush.notifications.request_builder import PushService

logger = logging.getLogger(__name__)

_BODY_LOG_BYTES = 512


class HttpxPushSender(PushSender):
  """`httpx` backed sender that posts one assembled request per notification.

  Failures are classified and raised; retrying is left to the caller.
  """

  def __init__(self, *, service: PushService, timeout_seconds: float = 10.0, client: httpx.Client | None = None, async_client: httpx.AsyncClient | None = None) -> None:
    self._service = service
    self._timeout_seconds = timeout_seconds
    self._client = client
    self._async_client = async_client

  @property
  def service(self) -> PushService:
    return self._service

  def send(self, notification: Notification) -> httpx.Response:
    """Send a notification and wait for the push service response."""
    request = self._service.prepare_request(notification)

    try:
      if self._client is not None:
        response = self._client.post(request.endpoint, headers=request.headers, content=request.body, timeout=self._timeout_seconds)
      else:
        with httpx.Client(timeout=self._timeout_seconds) as client:
          response = client.post(request.endpoint, headers=request.headers, content=request.body)

    except httpx.RequestError as exc:
      logger.error("Push request to %s failed: %s", notification.origin, exc)
      raise PushProviderError(f"Push request failed: {exc}") from exc

    return _check_response(notification.origin, response)

  async def send_async(self, notification: Notification) -> httpx.Response:
    """Send a notification from async code; assembly runs inline, only the HTTP call is awaited."""
    request = self._service.prepare_request(notification)

    try:
      if self._async_client is not None:
        response = await self._async_client.post(request.endpoint, headers=request.headers, content=request.body, timeout=self._timeout_seconds)
      else:
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
          response = await client.post(request.endpoint, headers=request.headers, content=request.body)

    except httpx.RequestError as exc:
      logger.error("Push request to %s failed: %s", notification.origin, exc)
      raise PushProviderError(f"Push request failed: {exc}") from exc

    return _check_response(notification.origin, response)


class NullPushSender(PushSender):
  """No-op push sender used when push notifications are disabled or unconfigured."""

  def send(self, notification: Notification) -> None:
    """Drop the notification while recording a debug log."""
    logger.debug("Push notifications disabled; dropping push endpoint_present=%s", bool(notification.endpoint))


def _check_response(origin: str, response: httpx.Response) -> httpx.Response:
  """Raise for push service rejections, returning the response otherwise."""
  status_code = response.status_code

  if status_code in {HTTPStatus.GONE, HTTPStatus.NOT_FOUND}:
    raise InvalidPushSubscriptionError(f"Push subscription is invalid (status={status_code})", status_code=status_code)

  if status_code >= 400:
    logger.error("Push service rejected request origin=%s status=%s body=%s", origin, status_code, response.text[:_BODY_LOG_BYTES])
    raise PushProviderError(f"Push delivery failed (status={status_code})", status_code=status_code)

  logger.debug("Push accepted origin=%s status=%s", origin, status_code)
  return response
