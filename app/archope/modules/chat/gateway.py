from __future__ import annotations

import json
import urllib.error
import urllib.request
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, BinaryIO

CHUNK_SIZE = 1024


class GatewayError(RuntimeError):
    status_code = 500


class GatewayRateLimited(GatewayError):
    status_code = 429


class GatewayPaymentRequired(GatewayError):
    status_code = 402


@dataclass(frozen=True)
class LLMGatewayClient:
    """OpenAI-compatible chat completions endpoint, streamed."""

    api_key: str
    url: str
    model: str
    timeout_seconds: int = 60

    def open_stream(self, messages: list[dict[str, Any]]) -> BinaryIO:
        """
        Start a streaming completion. Returns the open upstream response; the
        caller reads it with `iter_chunks` and closes it.
        """
        body = json.dumps({"model": self.model, "messages": messages, "stream": True}).encode("utf-8")
        req = urllib.request.Request(self.url, data=body, method="POST")
        req.add_header("Authorization", f"Bearer {self.api_key}")
        req.add_header("Content-Type", "application/json")
        req.add_header("Accept", "text/event-stream")
        try:
            return urllib.request.urlopen(req, timeout=self.timeout_seconds)
        except urllib.error.HTTPError as e:
            if e.code == 429:
                raise GatewayRateLimited("Rate limited (429)") from e
            if e.code == 402:
                raise GatewayPaymentRequired("Payment required (402)") from e
            try:
                detail = e.read().decode("utf-8", errors="ignore")
            except Exception:
                detail = ""
            raise GatewayError(f"HTTP {e.code} from LLM gateway: {detail[:300]}") from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            raise GatewayError(f"LLM gateway unreachable: {e}") from e


def iter_chunks(resp: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield upstream bytes as soon as they arrive (read1 does not wait for a full buffer)."""
    read = getattr(resp, "read1", None) or resp.read
    while True:
        chunk = read(chunk_size)
        if not chunk:
            return
        yield chunk


def gateway_client_from_config(config: dict) -> LLMGatewayClient | None:
    api_key = (config.get("LLM_API_KEY") or "").strip()
    if not api_key:
        return None
    return LLMGatewayClient(
        api_key=api_key,
        url=(config.get("LLM_GATEWAY_URL") or "").strip(),
        model=(config.get("LLM_MODEL") or "").strip(),
        timeout_seconds=int(config.get("LLM_TIMEOUT_SECONDS") or 60),
    )
