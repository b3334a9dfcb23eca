"""
ETag and Last-Modified evaluation.
"""

from datetime import datetime, timezone

from starlette.requests import Request

from tracking_service.app.services.conditional import compute_etag, conditional_response, is_not_modified

MODIFIED = datetime(2026, 3, 1, 8, 0, 30, 250000, tzinfo=timezone.utc)


def _request(**headers) -> Request:
    raw = [(name.replace("_", "-").lower().encode(), value.encode()) for name, value in headers.items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


def test_etag_ignores_relative_fields():
    a = {"id": 1, "speed": 20.0, "last_updated": "5 seconds ago", "is_stale": False}
    b = {"id": 1, "speed": 20.0, "last_updated": "2 minutes ago", "is_stale": True}

    assert compute_etag(a) == compute_etag(b)
    assert compute_etag(a) != compute_etag({**a, "speed": 21.0})


def test_etag_is_weak():
    assert compute_etag([]).startswith('W/"')


def test_if_none_match_takes_precedence_over_if_modified_since():
    etag = compute_etag({"id": 1})
    request = _request(if_none_match='W/"other"', if_modified_since="Sun, 01 Mar 2026 09:00:00 GMT")

    assert not is_not_modified(request, etag, MODIFIED)


def test_if_none_match_list_and_wildcard():
    etag = compute_etag({"id": 1})

    assert is_not_modified(_request(if_none_match=f'W/"x", {etag}'), etag, None)
    assert is_not_modified(_request(if_none_match="*"), etag, None)


def test_if_modified_since_compares_whole_seconds():
    etag = compute_etag({"id": 1})

    assert is_not_modified(_request(if_modified_since="Sun, 01 Mar 2026 08:00:30 GMT"), etag, MODIFIED)
    assert not is_not_modified(_request(if_modified_since="Sun, 01 Mar 2026 08:00:29 GMT"), etag, MODIFIED)
    assert not is_not_modified(_request(if_modified_since="yesterday"), etag, MODIFIED)


def test_conditional_response_headers():
    response = conditional_response(_request(), {"id": 1}, MODIFIED)

    assert response.status_code == 200
    assert response.headers["Last-Modified"] == "Sun, 01 Mar 2026 08:00:30 GMT"
    assert response.headers["ETag"] == compute_etag({"id": 1})


def test_conditional_response_without_data_has_no_last_modified():
    response = conditional_response(_request(), [], None)
    assert "last-modified" not in response.headers
