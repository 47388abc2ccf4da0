"""Send one push message to a saved browser subscription.

The subscription file is the JSON a browser returns from
``PushManager.subscribe()``; sender identity comes from the VAPIDPUSH_* environment.

Usage:
  python scripts/send_test_push.py --subscription sub.json --title "Hello" --body "Preview text"
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from vapidpush.config import get_settings
from vapidpush.core.logging import setup_logging
from vapidpush.notifications.contracts import Notification, PushError, PushSender
from vapidpush.notifications.factory import build_push_sender
from vapidpush.notifications.subscriptions import PushSubscriptionInfo


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
  parser = argparse.ArgumentParser(description="Send one Web Push message.")
  parser.add_argument("--subscription", required=True, help="path to the browser subscription JSON")
  parser.add_argument("--title", default="Test notification")
  parser.add_argument("--body", default="Sent from vapidpush")
  parser.add_argument("--ttl", type=int, default=None, help="seconds the push service may queue the message")
  parser.add_argument("--urgency", choices=["very-low", "low", "normal", "high"], default=None)
  parser.add_argument("--topic", default=None)
  return parser.parse_args(argv)


def main(argv: list[str] | None = None, *, sender: PushSender | None = None) -> int:
  """Send the message and return a process exit code."""
  args = _parse_args(argv)
  settings = get_settings()
  setup_logging(settings)

  try:
    info = PushSubscriptionInfo.model_validate(json.loads(Path(args.subscription).read_text(encoding="utf-8")))
  except (OSError, json.JSONDecodeError, ValidationError) as exc:
    print(f"ERROR: could not read subscription: {exc}", file=sys.stderr)
    return 1

  payload = json.dumps({"title": args.title, "body": args.body})
  ttl = settings.default_ttl if args.ttl is None else args.ttl

  try:
    notification = Notification(subscription=info.to_subscription(), payload=payload, ttl=ttl, urgency=args.urgency, topic=args.topic)
    (sender or build_push_sender(settings)).send(notification)
  except (PushError, ValueError) as exc:
    print(f"ERROR: {exc}", file=sys.stderr)
    return 1

  print("Sent")
  return 0


if __name__ == "__main__":
  sys.exit(main())
