from __future__ import annotations

import csv
import io
import re
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Any
from urllib.parse import urlsplit

from flask import Response

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_RE = re.compile(r"^[0-9]{10,11}$")


def clean(value: Any) -> str:
    return "" if value is None else str(value).strip()


def is_valid_email(value: str | None) -> bool:
    v = (value or "").strip()
    return bool(v) and len(v) <= 255 and bool(_EMAIL_RE.match(v))


def is_valid_phone(value: str | None) -> bool:
    return bool(_PHONE_RE.match((value or "").strip()))


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return (str(value or "")).strip().lower() in ("1", "true", "on", "yes")


def parse_int(value: Any, default: int | None = None) -> int | None:
    raw = clean(value)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def parse_id_list(values: Iterable[Any]) -> list[int]:
    ids: list[int] = []
    for v in values:
        i = parse_int(v)
        if i is not None and i not in ids:
            ids.append(i)
    return ids


def csv_response(filename_prefix: str, header: Sequence[str], rows: Iterable[Sequence[Any]]) -> Response:
    """
    Build a CSV download. The BOM keeps Vietnamese text readable when the file is opened in Excel.
    """
    out = io.StringIO()
    w = csv.writer(out)
    w.writerow(header)
    for row in rows:
        w.writerow(["" if v is None else v for v in row])
    body = "\ufeff" + out.getvalue()
    filename = f"{filename_prefix}_{date.today().isoformat()}.csv"
    return Response(
        body.encode("utf-8"),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def paginate(q, page: int, per_page: int = 25) -> dict[str, Any]:
    total = q.order_by(None).count()
    last_page = max(1, -(-total // per_page))
    page = min(max(page, 1), last_page)
    items = q.offset((page - 1) * per_page).limit(per_page).all()
    first = (page - 1) * per_page + 1 if total else 0
    last = min(page * per_page, total)
    return {
        "items": items,
        "page": page,
        "per_page": per_page,
        "total": total,
        "first": first,
        "last": last,
        "has_prev": page > 1,
        "has_next": last < total,
    }


def safe_next(nxt: str | None, fallback: str) -> str:
    """Only allow local paths to avoid open redirects."""
    nxt = (nxt or "").strip()
    if not nxt.startswith("/") or nxt.startswith("//"):
        return fallback
    # Browsers treat "\\" as "/" and ignore tabs and newlines.
    if "\\" in nxt or any(ord(c) < 32 for c in nxt):
        return fallback
    parts = urlsplit(nxt)
    if parts.scheme or parts.netloc:
        return fallback
    return nxt
