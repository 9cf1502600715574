from typing import Any, Mapping, Optional

import httpx

from finsensei.utils import get_logger

logger = get_logger(__name__)

# Recomputed by httpx for the outgoing request
SKIPPED_HEADERS = {"host", "content-length"}


class UpstreamProxy:
    """Forwards /api/* requests to the upstream backend unchanged"""

    def __init__(self, base_url: str, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def build_url(self, path: str) -> str:
        return f"{self.base_url}/api/{path.lstrip('/')}"

    async def forward(
        self,
        method: str,
        path: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
        query: str = ""
    ) -> Any:
        """Send the request upstream and return its decoded JSON body"""
        outgoing = {k: v for k, v in headers.items() if k.lower() not in SKIPPED_HEADERS}
        outgoing["content-type"] = "application/json"
        url = self.build_url(path)
        if query:
            url = f"{url}?{query}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.request(
                method,
                url,
                headers=outgoing,
                content=body if method != "GET" else None
            )

        logger.debug(f"{method} {url} -> {response.status_code}")
        return response.json()
