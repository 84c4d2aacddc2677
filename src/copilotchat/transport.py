"""Thin httpx wrapper used for every Copilot endpoint.

Non-2xx answers are returned, not raised: callers decide how a status maps
onto their own errors (a superseded ask must stay silent even when the
request failed).  Network-level failures become ``TransportFailure``.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from copilotchat.config import DEFAULT_TIMEOUT
from copilotchat.errors import TransportFailure

log = logging.getLogger(__name__)

# Called once per received line; returning False stops reading the body.
LineHandler = Callable[[str], bool]


@dataclass
class TransportResponse:
    status: int
    body: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        return json.loads(self.body)


class Transport:
    def __init__(
        self,
        *,
        proxy: str | None = None,
        allow_insecure: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
        http_transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self._http = httpx.Client(
            proxy=proxy,
            verify=not allow_insecure,
            timeout=timeout,
            transport=http_transport,
        )

    def close(self) -> None:
        self._http.close()

    def get(self, url: str, headers: dict[str, str]) -> TransportResponse:
        try:
            r = self._http.get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise TransportFailure(None, str(exc)) from exc
        return TransportResponse(r.status_code, r.text)

    def post(
        self,
        url: str,
        headers: dict[str, str],
        body: Any,
        on_line: LineHandler | None = None,
    ) -> TransportResponse:
        """POST *body* as JSON.

        With *on_line*, a 2xx body is consumed line by line as it arrives
        and the returned ``body`` is empty.  Once the handler returns False
        the stream is closed without reading the rest.  The whole stream is
        bounded by ``timeout`` seconds, not only each read.
        """
        try:
            if on_line is None:
                r = self._http.post(url, headers=headers, json=body)
                return TransportResponse(r.status_code, r.text)

            deadline = time.monotonic() + self.timeout
            with self._http.stream("POST", url, headers=headers, json=body) as resp:
                if not 200 <= resp.status_code < 300:
                    error_text = resp.read().decode("utf-8", errors="replace")
                    return TransportResponse(resp.status_code, error_text)

                for line in resp.iter_lines():
                    if time.monotonic() > deadline:
                        raise TransportFailure(None, f"timed out after {self.timeout}s")
                    if not on_line(line):
                        log.debug("Stream handler stopped reading %s", url)
                        break
                return TransportResponse(resp.status_code)
        except httpx.HTTPError as exc:
            raise TransportFailure(None, str(exc)) from exc
