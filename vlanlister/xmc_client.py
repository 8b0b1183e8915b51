from __future__ import annotations

import base64
import json
import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests
import urllib3
from tenacity import retry, stop_after_attempt, wait_exponential
from urllib3.exceptions import InsecureRequestWarning

from . import __version__

logger = logging.getLogger(__name__)

USER_AGENT = f"VlanLister/{__version__}"


class AuthError(requests.RequestException):
    pass


def _jwt_expiry(token: str) -> Optional[float]:
    # Read the "exp" claim without verifying the signature.
    try:
        payload = token.split(".")[1]
        payload += "=" * (-len(payload) % 4)
        claims = json.loads(base64.urlsafe_b64decode(payload))
        return float(claims["exp"])
    except (IndexError, KeyError, TypeError, ValueError):
        return None


class XMCClient:
    # Minimal client for the XMC northbound GraphQL interface.
    # - OAuth client credentials via POST /oauth/token/access-token, or HTTP basic auth.
    # - Every query is a POST of {"query": ...} to /nbi/graphql; the raw body is returned.
    # - token_expires_soon()/refresh_token() let callers refresh proactively.

    def __init__(
        self,
        host: str,
        port: int = 8443,
        path: str = "",
        client_id: str = "",
        secret: str = "",
        basic_auth: bool = False,
        use_https: bool = True,
        verify: bool = True,
        timeout: int = 5,
    ) -> None:
        scheme = "https" if use_https else "http"
        path = path.strip("/")
        self.base_url = f"{scheme}://{host}:{port}" + (f"/{path}" if path else "")
        self.client_id = client_id
        self.secret = secret
        self.basic_auth = basic_auth
        self.verify = verify
        self.timeout = timeout
        self._token: Optional[str] = None
        self._token_expires: float = 0

        if use_https and not verify:
            urllib3.disable_warnings(category=InsecureRequestWarning)

    @property
    def graphql_url(self) -> str:
        return f"{self.base_url}/nbi/graphql"

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=1, max=8), reraise=True)
    def _request_token(self) -> Tuple[str, float]:
        url = f"{self.base_url}/oauth/token/access-token"
        resp = requests.post(
            url,
            params={"grant_type": "client_credentials"},
            auth=(self.client_id, self.secret),
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            verify=self.verify,
            timeout=self.timeout,
        )
        resp.raise_for_status()
        data = resp.json()
        token = data.get("access_token")
        if not token:
            raise AuthError("No access_token in auth response", response=resp)
        expires = _jwt_expiry(token)
        if expires is None:
            expires = time.time() + float(data.get("expires_in") or 0)
        return token, expires

    def refresh_token(self) -> str:
        token, expires = self._request_token()
        # Single assignment each; concurrent refreshes just overwrite one another.
        self._token = token
        self._token_expires = expires
        logger.debug("Obtained access token valid until %s", time.ctime(expires))
        return token

    def _ensure_token(self) -> str:
        if not self._token or time.time() >= self._token_expires:
            return self.refresh_token()
        return self._token

    def token_expires_soon(self, margin: int) -> bool:
        if self.basic_auth or not self._token:
            return False
        return time.time() + margin >= self._token_expires

    def _request_kwargs(self) -> Dict[str, Any]:
        headers = {"User-Agent": USER_AGENT, "Content-Type": "application/json"}
        kwargs: Dict[str, Any] = {"headers": headers, "verify": self.verify, "timeout": self.timeout}
        if self.basic_auth:
            kwargs["auth"] = (self.client_id, self.secret)
        else:
            headers["Authorization"] = f"Bearer {self._ensure_token()}"
        return kwargs

    def query(self, query: str) -> bytes:
        resp = requests.post(self.graphql_url, json={"query": query}, **self._request_kwargs())
        resp.raise_for_status()
        return resp.content
