# -*- coding: utf-8 -*-
"""
Minimal ListenBrainz API client: token validation and listen submission.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import requests

from lb_history_importer import CLIENT_NAME, __version__
from lb_history_importer.errors import SubmissionError
from lb_history_importer.utils import debug_enabled, log_debug

DEFAULT_API_ROOT = "https://api.listenbrainz.org"
USER_AGENT = f"{CLIENT_NAME}/{__version__}"

RATE_LIMIT_REMAINING = "X-RateLimit-Remaining"
RATE_LIMIT_RESET_IN = "X-RateLimit-Reset-In"


@dataclass(frozen=True)
class RateLimit:
    """Rate-limit state the server reported with its last response."""

    remaining: Optional[int] = None
    reset_in: Optional[int] = None

    @property
    def exhausted(self) -> bool:
        return self.remaining == 0

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "RateLimit":
        return cls(
            remaining=_int_header(headers, RATE_LIMIT_REMAINING),
            reset_in=_int_header(headers, RATE_LIMIT_RESET_IN),
        )


def _int_header(headers: Mapping[str, str], name: str) -> Optional[int]:
    raw = headers.get(name)
    if raw is None:
        return None
    try:
        return max(0, int(float(raw)))
    except (ValueError, OverflowError):
        return None


def _error_message(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text[:500]
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return json.dumps(data)[:500]


class ListenBrainzClient:
    """Talks to a ListenBrainz compatible API over a shared requests.Session."""

    def __init__(self, url: Optional[str] = None, session: Optional[requests.Session] = None, timeout: int = 30):
        self.url = (url or DEFAULT_API_ROOT).rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    def _endpoint(self, path: str) -> str:
        return f"{self.url}/1/{path}"

    @staticmethod
    def _auth(token: str) -> Dict[str, str]:
        return {"Authorization": f"Token {token}"}

    def validate_token(self, token: str) -> bool:
        try:
            resp = self.session.get(self._endpoint("validate-token"), headers=self._auth(token), timeout=self.timeout)
        except requests.RequestException as exc:
            raise SubmissionError(f"Token validation failed: {exc}") from exc
        log_debug(f"VALIDATE TOKEN: HTTP {resp.status_code} {resp.text[:2000]}")
        if resp.status_code == 401:
            return False
        if not resp.ok:
            raise SubmissionError(f"Token validation failed: {_error_message(resp)}", status=resp.status_code)
        try:
            data = resp.json()
        except ValueError as exc:
            raise SubmissionError("Token validation failed: response is not JSON", status=resp.status_code) from exc
        return isinstance(data, dict) and bool(data.get("valid"))

    def submit_listens(self, token: str, payloads: List[Dict[str, Any]], listen_type: str = "import") -> RateLimit:
        """POST one batch. Returns the rate-limit snapshot; raises SubmissionError."""
        body = {"listen_type": listen_type, "payload": payloads}
        if debug_enabled():
            log_debug("REQUEST BODY: " + json.dumps(body, ensure_ascii=False)[:6000])
        try:
            resp = self.session.post(
                self._endpoint("submit-listens"),
                json=body,
                headers=self._auth(token),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise SubmissionError(f"{exc.__class__.__name__}: {exc}") from exc
        log_debug(f"RESPONSE: HTTP {resp.status_code} {resp.text[:12000]}")
        if not resp.ok:
            raise SubmissionError(_error_message(resp), status=resp.status_code)
        return RateLimit.from_headers(resp.headers)
