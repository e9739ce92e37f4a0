#!/usr/bin/env python3
"""submit_application.py: Post a sample guild application to a running service.

Usage:
    python scripts/submit_application.py                      # debug mode, localhost
    python scripts/submit_application.py --token XXXX --live   # really deliver
    python scripts/submit_application.py --base-url https://example.vercel.app

Cloudflare publishes test secrets/site keys that always pass; pair the
always-pass secret on the server with the dummy token
``XXXX.DUMMY.TOKEN.XXXX`` to exercise the whole pipeline locally.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass
from typing import Any, Optional

import httpx

DUMMY_TOKEN = "XXXX.DUMMY.TOKEN.XXXX"

SAMPLE_APPLICATION: dict[str, Any] = {
    "character": "Thrall",
    "realm": "Stormrage",
    "btag": "Thrall#1234",
    "classes": ["Shaman"],
    "roles": ["Healer", "DPS"],
    "rio": "https://raider.io/characters/us/stormrage/Thrall",
    "wcl": "https://www.warcraftlogs.com/character/us/stormrage/thrall",
    "availability": "Weeknights 20:00-23:00 server time",
    "notes": "Cleared last tier on heroic, looking for a mythic progression team.",
    "consent": True,
    "discord": "  thrall ",
    "website": "",
}


@dataclass
class VerificationState:
    """Verification token owned by the form, read once per submit."""

    token: Optional[str] = None
    status: str = "idle"  # idle | ready | submitting | failed | done

    def set_token(self, token: str) -> None:
        self.token = token
        self.status = "ready"

    def take(self) -> Optional[str]:
        token = self.token if self.status == "ready" else None
        self.status = "submitting"
        return token

    def reset(self) -> None:
        self.token = None
        self.status = "failed"


def describe_failure(data: dict[str, Any]) -> str:
    """Applicant-facing text for a failed submission."""
    stage = data.get("stage")
    if stage == "turnstile":
        return "Verification failed. Please complete the challenge again."
    if stage == "validation":
        details = data.get("details") or {}
        missing = ", ".join(details.get("missing", []))
        invalid = ", ".join(details.get("invalid", []))
        parts = [p for p in (missing and f"missing: {missing}", invalid and f"invalid: {invalid}") if p]
        return "Please check the form (" + "; ".join(parts) + ")." if parts else data.get("error", "")
    if stage == "discord":
        return "We could not deliver your application. Please try again later."
    return "Submission failed. Please try again later."


def submit(base_url: str, state: VerificationState, live: bool) -> bool:
    payload = dict(SAMPLE_APPLICATION)
    payload["turnstileToken"] = state.take()

    params = {} if live else {"debug": "1"}
    try:
        resp = httpx.post(f"{base_url}/api/apply", json=payload, params=params, timeout=30)
        data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        print(f"❌ Request failed: {exc}")
        state.reset()
        return False

    if not data.get("ok"):
        print(f"❌ HTTP {resp.status_code} [{data.get('stage')}] {data.get('error')}")
        print(f"   {describe_failure(data)}")
        state.reset()
        return False

    state.status = "done"
    print(f"✅ HTTP {resp.status_code}: accepted")
    if data.get("debug"):
        print(json.dumps(data.get("details"), indent=2, ensure_ascii=False))
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Submit a sample guild application")
    parser.add_argument("--base-url", default="http://localhost:8000", help="Service base URL")
    parser.add_argument("--token", default=DUMMY_TOKEN, help="Turnstile token to redeem")
    parser.add_argument("--live", action="store_true", help="Deliver to Discord instead of debug mode")
    args = parser.parse_args()

    verification = VerificationState()
    verification.set_token(args.token)
    sys.exit(0 if submit(args.base_url.rstrip("/"), verification, args.live) else 1)
