from __future__ import annotations

import codecs
import json
import logging

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


class SSEAccumulator:
    """
    Collects the assistant text out of an OpenAI-style SSE stream.

    Bytes are fed as they arrive; chunk boundaries may fall anywhere, including
    inside a line or a multi-byte UTF-8 character. Only complete lines are
    parsed. Each `data:` line carries a JSON chunk whose
    `choices[0].delta.content` is appended to `text`; `data: [DONE]` ends the
    stream and later lines are ignored.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.parts: list[str] = []
        self.done = False
        self.skipped = 0

    @property
    def text(self) -> str:
        return "".join(self.parts)

    def feed(self, chunk: bytes) -> None:
        if self.done or not chunk:
            return
        self._buffer += self._decoder.decode(chunk)
        self._drain()

    def finish(self) -> str:
        """Flush whatever is left once the upstream has closed."""
        if not self.done:
            self._buffer += self._decoder.decode(b"", final=True)
            self._drain()
            if self._buffer:
                line, self._buffer = self._buffer, ""
                self._handle_line(line)
        return self.text

    def _drain(self) -> None:
        while not self.done:
            idx = self._buffer.find("\n")
            if idx < 0:
                return
            line = self._buffer[:idx]
            self._buffer = self._buffer[idx + 1:]
            self._handle_line(line)

    def _handle_line(self, line: str) -> None:
        if line.endswith("\r"):
            line = line[:-1]
        if not line.strip() or line.startswith(":"):
            return
        if not line.startswith("data:"):
            return

        payload = line[5:].strip()
        if payload == DONE_SENTINEL:
            self.done = True
            return
        try:
            data = json.loads(payload)
        except ValueError:
            self.skipped += 1
            logger.debug("Skipping malformed SSE data line: %r", payload[:200])
            return

        content = extract_delta_content(data)
        if content:
            self.parts.append(content)


def extract_delta_content(data: object) -> str | None:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) else None
