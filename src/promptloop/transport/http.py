"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Standard-library HTTP transport for the prompt hub APIs.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from collections.abc import Mapping
from typing import Any

from ..errors import AuthError, NetworkError
from ..settings import PromptLoopSettings
from .contracts import ByteStream

logger = logging.getLogger("promptloop.transport")

_AUTH_STATUS_CODES = (401, 403)


class UrllibTransport:
    """
    JSON-over-HTTP transport with a static bearer token.

    `post` returns the decoded body; `post_stream` returns the open response
    after checking the status, so error bodies never reach the SSE decoder.
    """

    def __init__(
        self,
        *,
        api_token: str | None = None,
        timeout_s: float = 30.0,
        stream_timeout_s: float | None = None,
        user_agent: str = "promptloop-python",
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._api_token = api_token
        self._timeout_s = timeout_s
        self._stream_timeout_s = stream_timeout_s
        self._user_agent = user_agent
        self._headers = dict(headers or {})

    @classmethod
    def from_settings(cls, settings: PromptLoopSettings) -> "UrllibTransport":
        return cls(
            api_token=settings.api_token,
            timeout_s=settings.timeout_s,
            stream_timeout_s=settings.stream_timeout_s,
            user_agent=settings.user_agent,
        )

    def build_headers(self, *, accept: str) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json; charset=utf-8",
            "Accept": accept,
            "User-Agent": self._user_agent,
            **self._headers,
        }
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        return headers

    def post(self, url: str, body: Mapping[str, Any]) -> str:
        req = self._request(url, body, accept="application/json")
        try:
            with urllib.request.urlopen(req, timeout=self._timeout_s) as resp:  # noqa: S310
                logger.debug("POST %s -> %s (%s)", url, resp.status, resp.headers.get("Content-Type"))
                return resp.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            raise self._http_error(url, e) from e
        except (urllib.error.URLError, OSError) as e:
            reason = getattr(e, "reason", e)
            raise NetworkError(f"Network error calling {url}: {reason}") from e

    def post_stream(self, url: str, body: Mapping[str, Any]) -> ByteStream:
        req = self._request(url, body, accept="text/event-stream")
        try:
            resp = urllib.request.urlopen(req, timeout=self._stream_timeout_s)  # noqa: S310
        except urllib.error.HTTPError as e:
            raise self._http_error(url, e) from e
        except (urllib.error.URLError, OSError) as e:
            reason = getattr(e, "reason", e)
            raise NetworkError(f"Network error calling {url}: {reason}") from e
        logger.debug("POST %s -> %s (streaming)", url, resp.status)
        return resp

    def close(self) -> None:
        # urllib opens one connection per request; nothing is pooled.
        return None

    def _request(self, url: str, body: Mapping[str, Any], *, accept: str) -> urllib.request.Request:
        payload = json.dumps(body, ensure_ascii=False).encode("utf-8")
        return urllib.request.Request(
            url,
            data=payload,
            method="POST",
            headers=self.build_headers(accept=accept),
        )

    @staticmethod
    def _http_error(url: str, error: urllib.error.HTTPError) -> NetworkError:
        body = ""
        try:
            body = error.read().decode("utf-8", errors="replace")
        except OSError:
            body = ""
        finally:
            error.close()
        message = f"HTTP {error.code} calling {url}: {body or error.reason}"
        if error.code in _AUTH_STATUS_CODES:
            return AuthError(message, status_code=error.code, body=body)
        return NetworkError(message, status_code=error.code, body=body)
