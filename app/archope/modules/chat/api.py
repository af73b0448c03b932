from __future__ import annotations

import http.client
import logging

from flask import Blueprint, Response, current_app, request, stream_with_context

from app.archope.db import session_scope
from app.archope.modules.chat.gateway import (
    GatewayError,
    GatewayPaymentRequired,
    GatewayRateLimited,
    gateway_client_from_config,
    iter_chunks,
)
from app.archope.modules.chat.prompts import SYSTEM_PROMPT
from app.archope.modules.chat.service import (
    normalize_messages,
    persist_exchange,
    resolve_session_id,
    validate_chat_payload,
)
from app.archope.modules.chat.sse import SSEAccumulator
from app.archope.security import SlidingWindowLimiter, app_limiter

bp = Blueprint("api", __name__)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Expose-Headers": "X-Chat-Session",
}


def _limiter() -> SlidingWindowLimiter:
    return app_limiter(
        "chat",
        limit_key="CHAT_RATE_LIMIT",
        window_key="CHAT_RATE_WINDOW",
        default_limit=20,
        default_window=60,
    )


def _json_error(message: str, status: int) -> tuple[dict, int]:
    return {"error": message}, status


@bp.after_request
def _cors(resp: Response) -> Response:
    resp.headers.update(CORS_HEADERS)
    return resp


@bp.route("/chat", methods=["POST", "OPTIONS"])
def chat():
    if request.method == "OPTIONS":
        return Response(status=204)

    cfg = current_app.config
    client_ip = request.remote_addr or "unknown"
    limiter = _limiter()
    if limiter.is_limited(client_ip):
        return _json_error("Too many requests, please try again later.", 429)
    limiter.hit(client_ip)

    payload = request.get_json(silent=True)
    errors = validate_chat_payload(
        payload,
        max_messages=int(cfg.get("CHAT_MAX_MESSAGES") or 40),
        max_chars=int(cfg.get("CHAT_MAX_MESSAGE_CHARS") or 4000),
    )
    if errors:
        return {"error": errors[0], "errors": errors}, 400

    client = gateway_client_from_config(cfg)
    if client is None:
        logger.error("LLM_API_KEY is not configured; chat relay unavailable")
        return _json_error("The chat assistant is not configured.", 500)

    messages = normalize_messages(payload["messages"])
    session_id = resolve_session_id(payload.get("session_id"))
    try:
        upstream = client.open_stream([{"role": "system", "content": SYSTEM_PROMPT}, *messages])
    except GatewayRateLimited:
        return _json_error("Too many requests right now, please try again later.", 429)
    except GatewayPaymentRequired:
        return _json_error("The assistant is out of credits. Please contact the site administrator.", 402)
    except GatewayError as e:
        logger.error("LLM gateway error (session=%s): %s", session_id, e)
        return _json_error("Could not reach the AI service.", 500)

    app = current_app._get_current_object()  # type: ignore[attr-defined]

    def generate():
        acc = SSEAccumulator()
        completed = False
        try:
            for chunk in iter_chunks(upstream):
                acc.feed(chunk)
                yield chunk
            completed = True
        except (OSError, http.client.HTTPException) as e:
            # Headers are already sent; the client sees a truncated stream.
            logger.warning("Upstream stream interrupted (session=%s): %s", session_id, e)
        finally:
            upstream.close()
            assistant_text = acc.finish()
            try:
                with session_scope(app) as s:
                    persist_exchange(
                        s,
                        session_id=session_id,
                        messages=messages,
                        assistant_text=assistant_text,
                        model=client.model,
                        completed=completed,
                    )
            except Exception:
                logger.exception("Failed to persist chat transcript (session=%s)", session_id)

    resp = Response(stream_with_context(generate()), mimetype="text/event-stream")
    resp.headers["Cache-Control"] = "no-cache"
    resp.headers["X-Accel-Buffering"] = "no"
    resp.headers["X-Chat-Session"] = session_id
    return resp
