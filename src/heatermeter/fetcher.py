"""
Transport with two-server failover
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Sequence

import aiohttp

from http_helper import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_READ_TIMEOUT,
    create_appliance_session,
)
from .models import normalize_server_address

logger = logging.getLogger(__name__)

NUM_SERVERS = 2


class FailoverFetcher:
    """Fetches appliance endpoints from a primary or alternate server.

    Each call tries the last server that worked first, then the other one.
    The successful server stays current for later calls.
    """

    def __init__(
        self,
        servers: Sequence[str],
        session: Optional[aiohttp.ClientSession] = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ):
        if len(servers) != NUM_SERVERS:
            raise ValueError(f"Expected {NUM_SERVERS} server addresses, got {len(servers)}")

        self.servers = [normalize_server_address(s) for s in servers]
        self.current_server = 0
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self._session = session
        self._own_session = session is None

    @property
    def base_url(self) -> str:
        return self.servers[self.current_server]

    async def ensure_session(self) -> aiohttp.ClientSession:
        """Get or create the shared aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = create_appliance_session(self.connect_timeout, self.read_timeout)
            self._own_session = True
        return self._session

    async def fetch(
        self,
        path: str,
        method: str = "GET",
        data: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Optional[str]:
        """Return the response body, or None if both servers failed"""
        session = await self.ensure_session()
        server = self.current_server

        for _ in range(NUM_SERVERS):
            url = self.servers[server] + path
            try:
                async with session.request(method, url, data=data, headers=headers) as response:
                    response.raise_for_status()
                    body = await response.text()

                if self.current_server != server:
                    logger.info(f"Switched to server {server} ({self.servers[server]})")
                    self.current_server = server
                return body

            except aiohttp.InvalidURL:
                logger.warning(f"Bad server address: {url}")
            except aiohttp.ClientResponseError as e:
                logger.warning(f"HTTP {e.status} from {url}")
            except aiohttp.ClientConnectorError as e:
                logger.warning(f"Unable to connect to {url}: {e}")
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning(f"Request to {url} failed: {e!r}")
            except (ValueError, UnicodeDecodeError) as e:
                # Out-of-range port and similar address problems
                logger.warning(f"Invalid request for {url}: {e}")

            server = (server + 1) % NUM_SERVERS
            logger.debug(f"Connection failed, switching to server {server}")

        return None

    async def close(self):
        if self._own_session and self._session and not self._session.closed:
            await self._session.close()
