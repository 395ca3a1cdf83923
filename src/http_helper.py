# HTTP Helper for HeaterMeter Connections
# Session configuration shared by the sync engine and the write-command path

import aiohttp
import logging

logger = logging.getLogger(__name__)

# Without explicit bounds an unreachable server can take minutes to fail
DEFAULT_CONNECT_TIMEOUT = 5
DEFAULT_READ_TIMEOUT = 5


def create_appliance_timeout(
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    read_timeout: float = DEFAULT_READ_TIMEOUT
) -> aiohttp.ClientTimeout:
    """Connect and read bounds for a single appliance request"""
    return aiohttp.ClientTimeout(
        total=None,
        sock_connect=connect_timeout,
        sock_read=read_timeout
    )


def create_appliance_session(
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    read_timeout: float = DEFAULT_READ_TIMEOUT
) -> aiohttp.ClientSession:
    """
    Create aiohttp session for HeaterMeter connections
    Cookies are never stored automatically: the session cookie is attached
    explicitly to write commands only
    """
    connector = aiohttp.TCPConnector(
        limit_per_host=2,           # One poll plus one command at most
        force_close=True            # Appliance web server is tiny, don't hold sockets
    )

    logger.debug(f"Creating appliance session (connect={connect_timeout}s, read={read_timeout}s)")

    return aiohttp.ClientSession(
        connector=connector,
        cookie_jar=aiohttp.DummyCookieJar(),
        timeout=create_appliance_timeout(connect_timeout, read_timeout)
    )
