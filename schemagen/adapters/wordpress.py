"""
Rank Math helper-plugin adapter.

Talks to WordPress sites running the Schema Generator helper plugin:

    POST /wp-json/schema-generator/v1/find
    GET  /wp-json/schema-generator/v1/get/{post_id}
    POST /wp-json/schema-generator/v1/insert
    POST /wp-json/schema-generator/v1/insert-multiple
    POST /wp-json/schema-generator/v1/delete

Every request carries the X-Schema-Token header, a bounded timeout and a
bounded number of retries. Only transport failures (connect, read, timeout)
are retried; HTTP error responses are raised at once.
"""
import asyncio
from typing import Any, Dict, List, Optional
from urllib.parse import unquote, urlparse

import httpx

from schemagen.config import config
from schemagen.errors import RecordNotFoundError, StoreError
from schemagen.utils.logger import LayerLogger

API_NAMESPACE = "/wp-json/schema-generator/v1"
RETRY_BACKOFF = 0.5


def slug_from_url(url: str) -> str:
    """Last path segment of a URL ("" for the site root)."""
    path = urlparse(url).path if url.startswith(("http://", "https://")) else url
    parts = [p for p in unquote(path).split("/") if p]
    return parts[-1] if parts else ""


class RankMathHelperClient:
    """
    Async REST client for the helper plugin.

    Args:
        site_url: WordPress site root (defaults to HELPER_SITE_URL)
        token: Plugin secret (defaults to HELPER_TOKEN)
        timeout: Per-request timeout in seconds
        max_retries: Retries for transport failures
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        site_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        site_url = site_url or config.HELPER_SITE_URL
        token = token or config.HELPER_TOKEN
        if not site_url or not token:
            raise ValueError("site_url and token are required")

        self.base_url = site_url.rstrip("/")
        self.api_url = f"{self.base_url}{API_NAMESPACE}"
        self.token = token
        self.timeout = timeout if timeout is not None else config.REQUEST_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else config.MAX_RETRIES
        self.transport = transport
        self.logger = LayerLogger("rankmath_helper")

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-Schema-Token": self.token,
        }

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.api_url}{path}"
        attempt = 0
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers=self._get_headers(),
            transport=self.transport,
        ) as client:
            while True:
                try:
                    response = await client.request(method, url, json=payload)
                    break
                except httpx.TransportError as e:
                    if attempt >= self.max_retries:
                        self.logger.log_error(
                            f"Helper request failed: {e}",
                            error_type="transport_error",
                            url=url,
                            attempts=attempt + 1,
                        )
                        raise StoreError(f"Helper request failed: {e}") from e
                    attempt += 1
                    self.logger.log_fallback(
                        from_source="helper_request",
                        to_source="retry",
                        reason=str(e),
                        url=url,
                        attempt=attempt,
                    )
                    await asyncio.sleep(RETRY_BACKOFF * attempt)

        self.logger.log_action("helper_request", "completed", method=method, url=url, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.status_code >= 400:
            code = data.get("code") if isinstance(data, dict) else None
            message = data.get("message") if isinstance(data, dict) else None
            if response.status_code == 401 or code == "rest_forbidden":
                raise StoreError("Invalid secret token")
            if code == "rest_no_route":
                raise StoreError("Schema Generator Helper plugin not found")
            raise StoreError(message or f"Helper returned HTTP {response.status_code}")
        return data if isinstance(data, dict) else {"data": data}

    async def test_connection(self) -> Dict[str, Any]:
        """
        Call /find with a throwaway slug.

        A not_found answer proves the plugin is installed and the token works.
        """
        try:
            await self._request("POST", "/find", {"url": f"{self.base_url}/test-connection-check"})
        except StoreError as e:
            if "Invalid secret token" in str(e) or "plugin not found" in str(e):
                raise
            if isinstance(e.__cause__, httpx.TransportError):
                raise
        return {"success": True, "siteUrl": self.base_url}

    async def find_post(self, slug_or_url: str) -> Optional[Dict[str, Any]]:
        """Post info for a slug or URL, or None when the site has no such post."""
        payload = {"url": slug_or_url} if slug_or_url.startswith("http") else {"slug": slug_or_url}
        try:
            data = await self._request("POST", "/find", payload)
        except StoreError as e:
            message = str(e).lower()
            if "not found" in message and "plugin" not in message:
                return None
            raise
        return data if data.get("success", True) else None

    async def get_schemas(self, post_id: int) -> Dict[str, Any]:
        return await self._request("GET", f"/get/{post_id}")

    async def insert_schema(
        self,
        post_id: int,
        schema: Dict[str, Any],
        schema_type: Optional[str] = None,
        is_primary: bool = True,
    ) -> Dict[str, Any]:
        return await self._request("POST", "/insert", {
            "post_id": post_id,
            "schema": schema,
            "schema_type": schema_type,
            "is_primary": is_primary,
        })

    async def insert_multiple(self, post_id: int, schemas: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Insert [{"type", "schema"}, ...]; the plugin treats the first as primary."""
        return await self._request("POST", "/insert-multiple", {"post_id": post_id, "schemas": schemas})

    async def delete_schemas(self, post_id: int, schema_type: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"post_id": post_id}
        if schema_type:
            payload["schema_type"] = schema_type
        return await self._request("POST", "/delete", payload)

    async def insert_multiple_by_url(self, page_url: str, schemas: List[Dict[str, Any]]) -> Dict[str, Any]:
        post = await self.find_post(page_url)
        if post is None:
            raise RecordNotFoundError(slug_from_url(page_url) or page_url)
        return await self.insert_multiple(int(post["post_id"]), schemas)
