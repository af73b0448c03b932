from __future__ import annotations

import json
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any


class EmailProviderError(RuntimeError):
    pass


@dataclass(frozen=True)
class ResendClient:
    api_key: str
    sender: str
    api_url: str = "https://api.resend.com/emails"
    timeout_seconds: int = 20

    def send(self, *, to: str, subject: str, html: str) -> dict[str, Any]:
        """POST one email; returns the provider's JSON body (contains the message id)."""
        body = json.dumps({"from": self.sender, "to": [to], "subject": subject, "html": html}).encode("utf-8")
        req = urllib.request.Request(self.api_url, data=body, method="POST")
        req.add_header("Authorization", f"Bearer {self.api_key}")
        req.add_header("Content-Type", "application/json")
        req.add_header("Accept", "application/json")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as e:
            try:
                detail = e.read().decode("utf-8", errors="ignore")
            except Exception:
                detail = ""
            raise EmailProviderError(f"HTTP {e.code} from email provider: {detail[:300]}") from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            raise EmailProviderError(f"Email provider unreachable: {e}") from e

        if not raw:
            return {}
        try:
            parsed = json.loads(raw.decode("utf-8"))
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}


def email_client_from_config(config: dict) -> ResendClient | None:
    api_key = (config.get("RESEND_API_KEY") or "").strip()
    if not api_key:
        return None
    return ResendClient(
        api_key=api_key,
        sender=(config.get("EMAIL_FROM") or "ARC HOPE <noreply@archope.org>").strip(),
        api_url=(config.get("EMAIL_API_URL") or "https://api.resend.com/emails").strip(),
    )
