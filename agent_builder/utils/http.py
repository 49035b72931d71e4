#!/usr/bin/env python3
"""
HTTP helpers shared by nodes that call external APIs.

Single attempt per request, explicit timeout; every transport or HTTP
failure is raised as ExternalServiceError.
"""
import logging
from typing import Any, Dict, Optional

import requests

from agent_builder.errors import ExternalServiceError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30  # per-request timeout seconds
HEADERS = {"Content-Type": "application/json"}


def _decode(r: requests.Response, method: str, url: str) -> Any:
    if not 200 <= r.status_code < 300:
        detail = r.text[:300] if r.text else r.reason
        logger.warning("%s %s -> %d", method, url, r.status_code)
        raise ExternalServiceError(f"{method} {url} failed with HTTP {r.status_code}: {detail}")
    try:
        return r.json()
    except ValueError:
        raise ExternalServiceError(f"{method} {url} returned invalid JSON") from None


def post_json(url: str, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None,
              params: Optional[Dict[str, Any]] = None,
              timeout: float = DEFAULT_TIMEOUT) -> Any:
    """POST a JSON payload and return the decoded JSON response"""
    merged = dict(HEADERS)
    merged.update(headers or {})
    try:
        r = requests.post(url, headers=merged, params=params, json=payload, timeout=timeout)
    except requests.RequestException as e:
        raise ExternalServiceError(f"POST {url} failed: {e}") from e
    return _decode(r, "POST", url)


def get_json(url: str, params: Optional[Dict[str, Any]] = None,
             headers: Optional[Dict[str, str]] = None,
             timeout: float = DEFAULT_TIMEOUT) -> Any:
    """GET a URL and return the decoded JSON response"""
    try:
        r = requests.get(url, headers=headers, params=params, timeout=timeout)
    except requests.RequestException as e:
        raise ExternalServiceError(f"GET {url} failed: {e}") from e
    return _decode(r, "GET", url)
