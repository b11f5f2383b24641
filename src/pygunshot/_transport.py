"""HTTP transport for the polling variant."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import aiohttp

from pygunshot._constants import USER_AGENT
from pygunshot.config import GunshotConfig
from pygunshot.exceptions import GunshotTransportError

_logger = logging.getLogger(__name__)


def build_headers(config: GunshotConfig) -> dict[str, str]:
    """Headers shared by HTTP pulls and the stream handshake."""
    headers: dict[str, str] = {
        "accept": "application/json",
        "user-agent": USER_AGENT,
    }
    if config.api_token:
        headers["authorization"] = f"Bearer {config.api_token}"
    return headers


class Transport(Protocol):
    """Structural transport interface used by the poll loop.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(self, endpoint: str) -> Any: ...


class HttpTransport:
    """Plain JSON GET transport over a shared aiohttp session."""

    def __init__(self, config: GunshotConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._headers = build_headers(config)
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    async def get_json(self, endpoint: str) -> Any:
        """GET ``base_url + endpoint`` and return the decoded JSON body."""
        url = f"{self._config.base_url.rstrip('/')}{endpoint}"
        _logger.debug("GET %s", url)

        try:
            async with self._http.get(url, headers=self._headers, timeout=self._timeout) as resp:
                body = await resp.read()
                text = body.decode(resp.charset or "utf-8")
                if resp.status != 200:
                    raise GunshotTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except GunshotTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise GunshotTransportError(
                f"Request to {endpoint} failed: {exc!r}",
                endpoint=endpoint,
            ) from exc
        except (UnicodeError, LookupError) as exc:
            raise GunshotTransportError(
                f"Undecodable body from {endpoint}: {exc!r}",
                endpoint=endpoint,
            ) from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise GunshotTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc
