"""
Gateway client for the story backend.

The story canister is reached through its HTTP interface, which the IC HTTP
gateway serves on the canister's own subdomain (https://<id>.ic0.app, or
http://<id>.localhost:4943 under dfx). Candid encoding and request signing
happen behind that interface; this client only speaks JSON to it:

- Queries (getStory, getAllStories) POST to <gateway>/rpc/query
- Updates (everything else) POST to <gateway>/rpc/call
- Body: {"method_name": <name>, "arg": [...]}
- Reply: {"status": "replied", "reply": <value>}
  or     {"status": "rejected", "reject_message": <text>}

The development trust bootstrap reads the replica's own status endpoint
(<host>/api/v2/status), which answers in CBOR.

Uses aiohttp for all calls. Mutations are never retried: a retried
createStory could create the story twice.
"""

import asyncio
import logging
import re
from typing import Any, List, Optional

import aiohttp
import cbor2
from pydantic import ValidationError

from .config import DeploymentConfig, default_gateway_url
from .models import Story
from .services.transport import RemoteError

logger = logging.getLogger(__name__)

# Textual principal: base32 groups of up to 5 chars joined by dashes
PRINCIPAL_PATTERN = re.compile(r"^[a-z2-7]{1,5}(-[a-z2-7]{1,5})*$")


def _require_http(url: str, what: str) -> str:
    if not url.startswith(("http://", "https://")):
        raise ValueError(f"{what} must be an http(s) URL, got {url!r}")
    return url.rstrip("/")


class GatewayClient:
    """Client for the story canister's HTTP interface."""

    STATUS_PATH = "/api/v2/status"
    QUERY_METHODS = {"getStory", "getAllStories"}

    def __init__(
        self,
        host: str,
        canister_id: str,
        gateway_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        if not PRINCIPAL_PATTERN.match(canister_id):
            raise ValueError(f"Invalid canister id {canister_id!r}")

        self.host = _require_http(host, "Network host")
        self.canister_id = canister_id
        self.gateway_url = _require_http(
            gateway_url or default_gateway_url(self.host, canister_id), "Gateway URL"
        )
        self.timeout = timeout
        self.root_key: Optional[bytes] = None

    @classmethod
    def from_config(cls, config: DeploymentConfig) -> "GatewayClient":
        return cls(
            config.host,
            config.canister_id,
            gateway_url=config.gateway_url,
            timeout=config.request_timeout,
        )

    def _get_aiohttp_session(self) -> aiohttp.ClientSession:
        """Create an aiohttp session.

        A fresh session per call keeps the client usable from any event loop
        (Streamlit runs each interaction under its own asyncio.run).
        """
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        return aiohttp.ClientSession(timeout=timeout)

    async def _request(
        self,
        method: str,
        url: str,
        label: str,
        json_data: Optional[dict] = None,
        cbor: bool = False,
    ) -> Any:
        """Make one HTTP request and return the decoded body (JSON, or CBOR if asked).

        Raises:
            RemoteError: On connection failure, timeout, HTTP error status or an undecodable body.
        """
        try:
            async with self._get_aiohttp_session() as session:
                if method == "GET":
                    accept = "application/cbor" if cbor else "application/json"
                    request = session.get(url, headers={"Accept": accept})
                else:
                    request = session.post(url, json=json_data)
                async with request as response:
                    if response.status >= 400:
                        body = await response.text()
                        logger.error(f"Backend call {label} failed with HTTP {response.status}")
                        raise RemoteError(f"HTTP {response.status} from {label}: {body[:200]}")
                    if cbor:
                        return cbor2.loads(await response.read())
                    return await response.json()
        except asyncio.TimeoutError as e:
            logger.error(f"Backend call {label} timed out")
            raise RemoteError(f"{label} timed out", cause=e) from e
        except aiohttp.ClientError as e:
            logger.error(f"Backend call {label} failed: {e}")
            raise RemoteError(str(e) or type(e).__name__, cause=e) from e
        except (ValueError, cbor2.CBORDecodeError) as e:
            logger.error(f"Backend call {label} returned an undecodable body: {e}")
            raise RemoteError(f"undecodable response from {label}", cause=e) from e

    async def _invoke(self, method_name: str, *args: Any) -> Any:
        """Invoke a canister method and return its reply value."""
        kind = "query" if method_name in self.QUERY_METHODS else "call"
        payload = await self._request(
            "POST",
            f"{self.gateway_url}/rpc/{kind}",
            method_name,
            {"method_name": method_name, "arg": list(args)},
        )

        if not isinstance(payload, dict):
            raise RemoteError(f"Unexpected response shape from {method_name}")

        status = payload.get("status")
        if status == "replied":
            logger.debug(f"{method_name}{args} replied")
            return payload.get("reply")
        if status == "rejected":
            message = payload.get("reject_message") or "rejected"
            logger.error(f"Backend rejected {method_name}: {message}")
            raise RemoteError(message)
        raise RemoteError(f"Unexpected status {status!r} from {method_name}")

    @staticmethod
    def _unwrap_opt(value: Any) -> Any:
        """Optional values arrive as null, or candid-style as a 0/1-element list."""
        if isinstance(value, list):
            if len(value) > 1:
                raise RemoteError("Optional value with more than one element")
            return value[0] if value else None
        return value

    @staticmethod
    def _as_nat(value: Any, method_name: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise RemoteError(f"{method_name} returned {value!r}, expected a natural number")
        return value

    @staticmethod
    def _as_bool(value: Any, method_name: str) -> bool:
        if not isinstance(value, bool):
            raise RemoteError(f"{method_name} returned {value!r}, expected a boolean")
        return value

    @staticmethod
    def _as_story(record: Any, method_name: str) -> Story:
        try:
            return Story.model_validate(record)
        except ValidationError as e:
            raise RemoteError(f"Malformed story from {method_name}: {e}", cause=e) from e

    async def create_story(self, title: str, introduction: str) -> int:
        reply = await self._invoke("createStory", title, introduction)
        return self._as_nat(reply, "createStory")

    async def submit_continuation(self, story_id: int, content: str) -> Optional[int]:
        reply = self._unwrap_opt(await self._invoke("submitContinuation", story_id, content))
        return None if reply is None else self._as_nat(reply, "submitContinuation")

    async def vote(self, story_id: int, continuation_id: int) -> bool:
        reply = await self._invoke("vote", story_id, continuation_id)
        return self._as_bool(reply, "vote")

    async def select_winning_continuation(self, story_id: int) -> bool:
        reply = await self._invoke("selectWinningContinuation", story_id)
        return self._as_bool(reply, "selectWinningContinuation")

    async def get_story(self, story_id: int) -> Optional[Story]:
        reply = self._unwrap_opt(await self._invoke("getStory", story_id))
        return None if reply is None else self._as_story(reply, "getStory")

    async def get_all_stories(self) -> List[Story]:
        reply = await self._invoke("getAllStories")
        if not isinstance(reply, list):
            raise RemoteError(f"getAllStories returned {type(reply).__name__}, expected a list")
        return [self._as_story(record, "getAllStories") for record in reply]

    async def fetch_root_key(self) -> bytes:
        """Fetch and remember the replica's root key (development only)."""
        status = await self._request("GET", f"{self.host}{self.STATUS_PATH}", "status", cbor=True)
        if isinstance(status, cbor2.CBORTag):
            status = status.value  # self-describe tag 55799
        root_key = status.get("root_key") if isinstance(status, dict) else None
        if not isinstance(root_key, bytes):
            raise RemoteError("Status response has no root_key")
        self.root_key = root_key
        return self.root_key
