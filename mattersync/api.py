"""Matter REST API client.

Fetches pages of the highlights feed, exchanges refresh tokens, and drives
the QR device-pairing endpoints. No retries happen here; the sync engine
decides when a request is worth repeating.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import requests

from mattersync import config
from mattersync.errors import AuthError, RequestError
from mattersync.state import parse_timestamp

log = logging.getLogger(__name__)

CLIENT_TYPE = "integration"
MATTER_API_VERSION = "v11"
MATTER_API_DOMAIN = "api.getmatter.app"
MATTER_API_HOST = f"https://{MATTER_API_DOMAIN}/api/{MATTER_API_VERSION}"
ENDPOINTS = {
    "QR_LOGIN_TRIGGER": f"{MATTER_API_HOST}/qr_login/trigger/",
    "QR_LOGIN_EXCHANGE": f"{MATTER_API_HOST}/qr_login/exchange/",
    "REFRESH_TOKEN_EXCHANGE": f"{MATTER_API_HOST}/token/refresh/",
    "HIGHLIGHTS_FEED": f"{MATTER_API_HOST}/library_items/highlights_feed/",
}

_AUTH_FAILURE_STATUS = {401, 403}


@dataclass
class Annotation:
    text: str
    note: Optional[str]
    created_date: Optional[datetime]
    word_start: int = 0
    word_end: int = 0

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Annotation":
        return cls(
            text=data.get("text") or "",
            note=data.get("note") or None,
            created_date=parse_timestamp(data.get("created_date")),
            word_start=data.get("word_start") or 0,
            word_end=data.get("word_end") or 0,
        )


@dataclass
class FeedRecord:
    id: str
    title: str
    url: str
    author: Optional[str] = None
    publisher: Optional[str] = None
    publication_date: Optional[datetime] = None
    note: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    annotations: List[Annotation] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "FeedRecord":
        content = data.get("content") or {}
        author = content.get("author") or {}
        publisher = content.get("publisher") or {}
        my_note = content.get("my_note") or {}
        return cls(
            id=str(data["id"]),
            title=content.get("title") or "",
            url=content.get("url") or "",
            author=author.get("any_name") or None,
            publisher=publisher.get("any_name") or None,
            publication_date=parse_timestamp(content.get("publication_date")),
            note=my_note.get("note") or None,
            tags=[t["name"] for t in content.get("tags") or [] if t.get("name")],
            annotations=[
                Annotation.from_json(a) for a in content.get("my_annotations") or []
            ],
        )


@dataclass
class FeedPage:
    records: List[FeedRecord]
    next_url: Optional[str]


def _json_headers() -> dict:
    return {"Content-Type": "application/json"}


def _authed_headers(access_token: str) -> dict:
    return {**_json_headers(), "Authorization": f"Bearer {access_token}"}


def fetch_page(url: str, access_token: str) -> FeedPage:
    """GET one page of the highlights feed.

    Raises AuthError when the server rejects the token and RequestError for
    any other non-2xx response.
    """
    resp = requests.get(
        url, headers=_authed_headers(access_token), timeout=config.HTTP_TIMEOUT,
    )
    if resp.status_code in _AUTH_FAILURE_STATUS:
        raise AuthError(f"Matter rejected the access token ({resp.status_code})")
    if not resp.ok:
        raise RequestError(
            f"Matter authenticated request failed ({resp.status_code})", resp,
        )
    payload = resp.json()
    records = [FeedRecord.from_json(entry) for entry in payload.get("feed") or []]
    log.debug("Fetched %d feed entries from %s", len(records), url)
    return FeedPage(records=records, next_url=payload.get("next"))


def refresh_access_token(refresh_token: Optional[str]) -> Tuple[str, Optional[str]]:
    """Exchange a refresh token for a new (access_token, refresh_token) pair."""
    resp = requests.post(
        ENDPOINTS["REFRESH_TOKEN_EXCHANGE"],
        json={"refresh_token": refresh_token},
        headers=_json_headers(),
        timeout=config.HTTP_TIMEOUT,
    )
    if not resp.ok:
        raise AuthError(f"Token refresh failed ({resp.status_code}): {resp.text}")
    payload = resp.json()
    access_token = payload.get("access_token")
    if not access_token:
        raise AuthError("Token refresh returned no access token")
    return access_token, payload.get("refresh_token")


# -- Device pairing --


def trigger_qr_login() -> str:
    """Start a QR login session and return its session token."""
    resp = requests.post(
        ENDPOINTS["QR_LOGIN_TRIGGER"],
        json={"client_type": CLIENT_TYPE},
        headers=_json_headers(),
        timeout=config.HTTP_TIMEOUT,
    )
    if not resp.ok:
        raise RequestError(f"QR login trigger failed ({resp.status_code})", resp)
    return resp.json()["session_token"]


def exchange_qr_login(session_token: str) -> Dict[str, Any]:
    """Poll once for the tokens of a scanned QR session.

    Returns the raw payload; ``access_token`` is absent until the user has
    scanned the code in the Matter app.
    """
    resp = requests.post(
        ENDPOINTS["QR_LOGIN_EXCHANGE"],
        json={"session_token": session_token},
        headers=_json_headers(),
        timeout=config.HTTP_TIMEOUT,
    )
    if not resp.ok:
        return {}
    return resp.json()
