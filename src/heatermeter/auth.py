"""
Session authentication for write commands

The appliance's LuCI admin login answers a form POST with a Set-Cookie
header carrying two values: `sysauth` (the session cookie, sent back as a
Cookie header) and `stok` (a token inserted into admin URLs). A missing
header means the password was rejected.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple
from urllib.parse import quote_plus

import aiohttp

from .exceptions import NotAuthenticatedError

logger = logging.getLogger(__name__)

AUTH_PATH = "/luci/admin/lm"
AUTH_USERNAME = "root"

STATUS_AUTH_SUCCEEDED = "Authentication succeeded"
STATUS_AUTH_FAILED = "Authentication failed"


class LoginOutcome(Enum):
    SUCCEEDED = "succeeded"
    REJECTED = "rejected"     # no session header, the password is wrong
    ERROR = "error"           # transport problem, try again next tick


@dataclass
class LoginResult:
    outcome: LoginOutcome
    cookie: Optional[str] = None
    token: Optional[str] = None
    error: Optional[str] = None


def parse_session_header(header: str) -> Tuple[Optional[str], Optional[str]]:
    """Extract (sysauth, stok) from a Set-Cookie header value"""
    cookie = None
    token = None
    for chunk in header.split(";"):
        key, _, value = chunk.strip().partition("=")
        if key == "sysauth":
            cookie = value
        elif key == "stok":
            token = value
    return cookie, token


async def request_login(session: aiohttp.ClientSession, base_url: str, password: str) -> LoginResult:
    """POST the admin credentials and report what the appliance answered.

    Only performs the request; applying the result is left to AuthSession.
    """
    url = base_url + AUTH_PATH
    body = f"username={AUTH_USERNAME}&password={quote_plus(password)}"
    headers = {"Content-Type": "application/x-www-form-urlencoded"}

    logger.info(f"Attempting authentication against {base_url}")

    try:
        async with session.post(url, data=body, headers=headers, allow_redirects=False) as response:
            cookie_headers = response.headers.getall("Set-Cookie", [])
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.warning(f"Authentication request failed: {e!r}")
        return LoginResult(LoginOutcome.ERROR, error=str(e))

    if not cookie_headers:
        return LoginResult(LoginOutcome.REJECTED)

    cookie, token = parse_session_header("; ".join(cookie_headers))
    if cookie is None:
        logger.warning("Session header did not contain a sysauth cookie")
        return LoginResult(LoginOutcome.ERROR, error="missing sysauth cookie")

    return LoginResult(LoginOutcome.SUCCEEDED, cookie=cookie, token=token)


class AuthSession:
    """Cookie/token pair needed to authorize write commands"""

    def __init__(self, password: Optional[str] = ""):
        self.password = password or ""
        self.cookie: Optional[str] = None
        self.token: Optional[str] = None
        self.last_status_message: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.cookie is not None

    @property
    def needs_login(self) -> bool:
        return bool(self.password) and not self.is_authenticated

    def set_password(self, password: Optional[str]) -> None:
        """A new password from the user re-enables login attempts"""
        self.password = password or ""

    def apply_login(self, result: LoginResult) -> None:
        if result.outcome is LoginOutcome.SUCCEEDED:
            self.cookie = result.cookie
            self.token = result.token
            self.last_status_message = STATUS_AUTH_SUCCEEDED
            logger.info("Authentication succeeded")
        elif result.outcome is LoginOutcome.REJECTED:
            # Wrong password: stop trying until the user supplies a new one
            self.password = ""
            self.last_status_message = STATUS_AUTH_FAILED
            logger.warning("Authentication failed, admin password rejected")
        else:
            logger.debug(f"Authentication attempt inconclusive: {result.error}")

    def set_point_request(self, base_url: str, set_point: int) -> Tuple[str, Dict[str, str]]:
        """Build the URL and headers for a set point change"""
        if not self.is_authenticated:
            raise NotAuthenticatedError("No session cookie, authenticate first")

        url = base_url + "/luci"
        if self.token is not None:
            url += f"/;stok={self.token}"
        url += f"/admin/lm/set?sp={int(set_point)}"

        return url, {"Cookie": f"sysauth={self.cookie}"}
