from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

from starlette.responses import JSONResponse, PlainTextResponse, Response

_MEDIA_TYPES = {
    "json": "application/json",
    "html": "text/html",
}


def _matches(media_range: str, media_type: str) -> bool:
    r_type, _, r_sub = media_range.partition("/")
    m_type, _, m_sub = media_type.partition("/")
    if r_type == "*":
        return True
    return r_type == m_type and r_sub in ("*", m_sub)


def _parse_accept(accept: str) -> List[Tuple[float, int, int, str]]:
    """Return ``(q, specificity, position, media_range)`` for each range, in header order.

    Ranges with ``q=0`` are kept: they refuse the types they match.
    """
    ranges: List[Tuple[float, int, int, str]] = []
    for idx, part in enumerate(accept.split(",")):
        media, *params = [p.strip() for p in part.split(";")]
        if not media:
            continue
        q = 1.0
        for p in params:
            key, _, value = p.partition("=")
            if key.strip().lower() != "q":
                continue
            try:
                q = float(value)
            except ValueError:
                q = 0.0
        specificity = 0 if media == "*/*" else (1 if media.endswith("/*") else 2)
        ranges.append((q, specificity, idx, media.lower()))
    return ranges


def _quality(ranges: List[Tuple[float, int, int, str]], media_type: str) -> Optional[Tuple[float, int]]:
    """``(q, position)`` of the most specific range matching *media_type*, or None."""
    best: Optional[Tuple[float, int, int, str]] = None
    for entry in ranges:
        if not _matches(entry[3], media_type):
            continue
        if best is None or entry[1] > best[1]:
            best = entry
    if best is None:
        return None
    return best[0], best[2]


def negotiate(accept: Optional[str], offers: Sequence[str] = ("json", "html")) -> Optional[str]:
    """Pick the offer the ``Accept`` header value prefers.

    Each offer takes the quality of the most specific range matching it
    (``type/sub`` over ``type/*`` over ``*/*``); ``q=0`` refuses it. Ties go to
    the earlier range in the header, then to the earlier offer. A missing or
    empty header accepts anything, so the first offer wins. Returns None when
    the client accepts none of the offers.
    """
    if not offers:
        return None
    if not accept or not accept.strip():
        return offers[0]
    ranges = _parse_accept(accept)
    candidates: List[Tuple[float, int, int, str]] = []
    for order, offer in enumerate(offers):
        quality = _quality(ranges, _MEDIA_TYPES.get(offer, offer))
        if quality is None or quality[0] <= 0:
            continue
        candidates.append((-quality[0], quality[1], order, offer))
    if not candidates:
        return None
    return min(candidates)[3]


def _accept_header(context: Any) -> Optional[str]:
    headers = getattr(context, "headers", None)
    if headers is None:
        return None
    try:
        value = headers.get("accept")
    except AttributeError:
        return None
    return value if isinstance(value, str) else None


def denial_message(action: str) -> str:
    return f"Access Denied - You don't have permission to: {action}"


def default_failure_handler(context: Any, action: str) -> Response:
    """Respond 403 with a JSON or plain-text body, depending on ``Accept``."""
    message = denial_message(action)
    if negotiate(_accept_header(context)) == "json":
        return JSONResponse({"message": message}, status_code=403)
    return PlainTextResponse(message, status_code=403)


__all__ = ["default_failure_handler", "denial_message", "negotiate"]
