"""
Conditional retrieval for polling clients.

GET responses carry a weak ETag and, when there is data, a Last-Modified
header. The ETag ignores relative-time fields so that a payload whose only
change is "5 seconds ago" becoming "6 seconds ago" still matches.
"""

import hashlib
import json
from datetime import datetime
from email.utils import format_datetime, parsedate_to_datetime
from typing import Any, Iterable, Optional

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from tracking_service.app.schemas.position import as_utc

RELATIVE_FIELDS = frozenset({"last_updated", "is_stale"})


def _strip_relative(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _strip_relative(v) for k, v in value.items() if k not in RELATIVE_FIELDS}
    if isinstance(value, list):
        return [_strip_relative(v) for v in value]
    return value


def compute_etag(payload: Any) -> str:
    """Weak ETag over the JSON form of payload, minus relative-time fields."""
    canonical = json.dumps(
        _strip_relative(jsonable_encoder(payload)), sort_keys=True, separators=(",", ":")
    )
    return f'W/"{hashlib.sha1(canonical.encode("utf-8")).hexdigest()}"'


def newest(timestamps: Iterable[datetime]) -> Optional[datetime]:
    return max((as_utc(ts) for ts in timestamps), default=None)


def _opaque(tag: str) -> str:
    tag = tag.strip()
    return tag[2:] if tag.startswith("W/") else tag


def is_not_modified(request: Request, etag: str, last_modified: Optional[datetime]) -> bool:
    """
    Evaluate If-None-Match, then If-Modified-Since.

    If-Modified-Since is only consulted when If-None-Match is absent.
    """
    if_none_match = request.headers.get("if-none-match")
    if if_none_match is not None:
        if if_none_match.strip() == "*":
            return True
        return _opaque(etag) in {_opaque(tag) for tag in if_none_match.split(",")}

    if_modified_since = request.headers.get("if-modified-since")
    if if_modified_since is None or last_modified is None:
        return False
    try:
        since = parsedate_to_datetime(if_modified_since)
    except (TypeError, ValueError):
        return False
    if since is None:
        return False

    # HTTP dates carry whole seconds
    return as_utc(last_modified).replace(microsecond=0) <= as_utc(since)


def conditional_response(
    request: Request,
    payload: Any,
    last_modified: Optional[datetime] = None,
) -> Response:
    """200 with the payload, or an empty 304 when the client copy is current."""
    etag = compute_etag(payload)
    headers = {"ETag": etag}
    if last_modified is not None:
        headers["Last-Modified"] = format_datetime(as_utc(last_modified), usegmt=True)

    if is_not_modified(request, etag, last_modified):
        return Response(status_code=304, headers=headers)
    return JSONResponse(content=jsonable_encoder(payload), headers=headers)
