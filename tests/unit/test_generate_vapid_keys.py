from __future__ import annotations

from scripts.generate_vapid_keys import main, render_env_lines
from vapidpush.notifications.keys import load_key_pair
from vapidpush.notifications.vapid import verify_key_pair


def test_rendered_keys_form_a_consistent_pair():
  lines = render_env_lines("mailto:ops@example.com")
  values = dict(line.split("=", 1) for line in lines)

  key_pair = load_key_pair(values["VAPIDPUSH_VAPID_PUBLIC_KEY"], values["VAPIDPUSH_VAPID_PRIVATE_KEY"])
  assert verify_key_pair(key_pair)
  assert values["VAPIDPUSH_VAPID_SUBJECT"] == "mailto:ops@example.com"
  assert "=" not in values["VAPIDPUSH_VAPID_PUBLIC_KEY"]


def test_main_rejects_bad_subject(capsys):
  assert main(["--subject", "ops@example.com"]) == 1
  assert "ERROR" in capsys.readouterr().err


def test_main_prints_env_lines(capsys):
  assert main([]) == 0
  out = capsys.readouterr().out.splitlines()
  assert [line.split("=", 1)[0] for line in out] == ["VAPIDPUSH_VAPID_PUBLIC_KEY", "VAPIDPUSH_VAPID_PRIVATE_KEY"]
