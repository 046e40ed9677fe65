"""
Arklet HTTP client.

The arklet is the management endpoint embedded in every ark container.
Install and uninstall are JSON POSTs; every response is an envelope with
a top-level code and an operation result under "data".
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from arkctl.modules.api import ArkletResponse, BizModel, ServiceError

logger = logging.getLogger("arkctl.arklet")

INSTALL_ENDPOINT = "installBiz"
UNINSTALL_ENDPOINT = "uninstallBiz"


def arklet_url(port: int, endpoint: str, host: str = "127.0.0.1") -> str:
    return f"http://{host}:{port}/{endpoint}"


def parse_arklet_response(body: str, source: str) -> ArkletResponse:
    """
    Decode an arklet response body.

    Raises:
        ServiceError: body is not a valid arklet envelope
    """
    try:
        return ArkletResponse.from_payload(json.loads(body))
    except (ValueError, ValidationError) as e:
        snippet = body.strip()[:200] or "<empty>"
        raise ServiceError(f"unexpected response from {source}: {snippet}") from e


def check_response(response: ArkletResponse, operation: str, allow_missing: bool = False) -> None:
    """
    Raise ServiceError unless the arklet reported success.

    With allow_missing, a NOT_FOUND_BIZ result counts as success; uninstalling
    a biz that was never installed leaves the container in the wanted state.
    """
    if response.succeeded:
        return
    if allow_missing and response.biz_not_found:
        logger.info(f"{operation}: biz not present in container, nothing to do")
        return
    raise ServiceError(f"{operation} rejected by arklet: {response.describe()}")


class ArkletClient:
    """Talks to an arklet over HTTP."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def install_biz(self, biz_model: BizModel) -> ArkletResponse:
        return await self._post(INSTALL_ENDPOINT, biz_model.to_arklet_payload())

    async def uninstall_biz(self, biz_model: BizModel) -> ArkletResponse:
        return await self._post(UNINSTALL_ENDPOINT, biz_model.to_arklet_payload(include_url=False))

    async def _post(self, endpoint: str, payload: Dict[str, Any]) -> ArkletResponse:
        url = f"{self.base_url}/{endpoint}"
        logger.debug(f"POST {url} {payload}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise ServiceError(f"request to {url} failed: {e}") from e
        return parse_arklet_response(response.text, url)
