"""Generate a VAPID key pair for Web Push.

Prints env lines for the sender configuration:
- VAPIDPUSH_VAPID_PUBLIC_KEY (base64url uncompressed point) -> also the browser applicationServerKey
- VAPIDPUSH_VAPID_PRIVATE_KEY (base64url raw scalar) -> keep secret
"""

from __future__ import annotations

import argparse
import sys

from vapidpush.notifications.keys import b64url_encode, generate_key_pair, save_private_key, save_public_key


def render_env_lines(subject: str | None = None) -> list[str]:
  """Generate a fresh key pair and render it as .env assignments."""
  key_pair = generate_key_pair()
  lines = [f"VAPIDPUSH_VAPID_PUBLIC_KEY={b64url_encode(save_public_key(key_pair.public_key))}", f"VAPIDPUSH_VAPID_PRIVATE_KEY={b64url_encode(save_private_key(key_pair.private_key))}"]
  if subject:
    lines.append(f"VAPIDPUSH_VAPID_SUBJECT={subject}")
  return lines


def main(argv: list[str] | None = None) -> int:
  """Print a new key pair; a subject is validated but optional."""
  parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
  parser.add_argument("--subject", help="mailto: or https: contact URI to include")
  args = parser.parse_args(argv)

  if args.subject and not args.subject.startswith(("mailto:", "https:")):
    print("ERROR: --subject must start with 'mailto:' or 'https:'.", file=sys.stderr)
    return 1

  for line in render_env_lines(args.subject):
    print(line)
  return 0


if __name__ == "__main__":
  sys.exit(main())
