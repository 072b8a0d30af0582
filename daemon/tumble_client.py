"""
Tumble aggregator HTTP client.

Thin async wrapper over the Tumble v1 API. Transport- and status-level
failures are translated into the small error taxonomy in errors.py:

    404           -> NotFound
    other >= 400  -> HttpError(status)
    bad JSON body -> ParseError
    network error -> HttpError(status=None)

The client keeps no state between calls. Deleting the same id twice hits
the server twice, and the second call surfaces NotFound.
"""

import logging
import time
from typing import Optional
from urllib.parse import urlparse

import httpx

from errors import ConfigurationMissing, HttpError, NoSecret, NotFound, ParseError, TumbleError

log = logging.getLogger("tumblebot.client")

LINK = "link"
QUOTE = "quote"
KINDS = (LINK, QUOTE)

_COLLECTIONS = {LINK: "links", QUOTE: "quotes"}
_LOOPBACK_HOSTS = {"localhost", "127.0.0.1", "::1", "[::1]"}


def is_localhost(url: str) -> bool:
    """True if the URL's host is a loopback address (no credential needed)."""
    if not url:
        return False
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    return host in _LOOPBACK_HOSTS


class TumbleClient:
    """Request wrapper for one Tumble server."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key or ""
        self.timeout = timeout
        self._transport = transport

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def is_local(self) -> bool:
        return is_localhost(self.base_url)

    @property
    def can_delete(self) -> bool:
        """A credential is configured or the server is on loopback."""
        return bool(self.api_key) or self.is_local

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _headers(self, json_body: bool = False) -> dict:
        headers = {}
        if json_body:
            headers["Content-Type"] = "application/json"
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    def _require_base(self):
        if not self.base_url:
            raise ConfigurationMissing("not_configured")

    def resource_url(self, kind: str, resource_id) -> str:
        return f"{self.base_url}/api/v1/{_COLLECTIONS[kind]}/{resource_id}"

    def permalink(self, kind: str, resource_id) -> str:
        """Public page for a resource. Reaction id extraction relies on this shape."""
        if kind == LINK:
            return f"{self.base_url}/link/?id={resource_id}"
        return f"{self.base_url}/quote/{resource_id}"

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            async with self._http() as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise HttpError(detail=str(e) or type(e).__name__) from e

    @staticmethod
    def _check_status(resp: httpx.Response, kind: str = "", resource_id=None):
        if resp.status_code == 404:
            raise NotFound(kind, resource_id)
        if resp.status_code >= 400:
            raise HttpError(resp.status_code)

    @staticmethod
    def _parse(resp: httpx.Response):
        try:
            return resp.json()
        except ValueError as e:
            raise ParseError(str(e)) from e

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    async def fetch_resource(self, kind: str, resource_id) -> dict:
        """GET a link or quote's metadata."""
        self._require_base()
        resp = await self._send("GET", self.resource_url(kind, resource_id), headers=self._headers())
        self._check_status(resp, kind, resource_id)
        data = self._parse(resp)
        if not isinstance(data, dict):
            raise ParseError(f"expected an object, got {type(data).__name__}")
        return data

    async def delete_resource(self, kind: str, resource_id) -> bool:
        """DELETE a link or quote. Raises NoSecret before any I/O when not allowed."""
        if not self.can_delete:
            raise NoSecret()
        self._require_base()
        resp = await self._send("DELETE", self.resource_url(kind, resource_id), headers=self._headers())
        self._check_status(resp, kind, resource_id)
        log.info("Deleted %s %s", kind, resource_id)
        return True

    async def post_link(self, url: str, user: str, metadata: Optional[dict] = None) -> dict:
        """Submit a link. Returns the server's JSON (id, is_duplicate, ...)."""
        self._require_base()
        body = {"url": url, "user": user}
        body.update(metadata or {})
        resp = await self._send(
            "POST", f"{self.base_url}/api/v1/links",
            headers=self._headers(json_body=True), json=body,
        )
        self._check_status(resp)
        return self._parse(resp)

    async def post_quote(
        self,
        quote: str,
        poster: str,
        author: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> dict:
        """Submit a quote. Overheard quotes have no author."""
        self._require_base()
        body = {"quote": quote, "poster": poster}
        if author:
            body["author"] = author
        body.update(metadata or {})
        resp = await self._send(
            "POST", f"{self.base_url}/api/v1/quotes",
            headers=self._headers(json_body=True), json=body,
        )
        self._check_status(resp)
        return self._parse(resp)

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def ping(self) -> dict:
        """Fetch the OpenAPI document and confirm the server is Tumble.

        Returns {"status", "elapsed_ms", "version"}. Raises TumbleError with
        a "<class>: <detail>" message on failure.
        """
        self._require_base()
        start = time.monotonic()
        try:
            async with self._http() as client:
                resp = await client.get(f"{self.base_url}/api/openapi.json")
        except httpx.HTTPError as e:
            raise TumbleError(f"connection_error: {str(e) or type(e).__name__}") from e
        elapsed_ms = int((time.monotonic() - start) * 1000)

        if resp.status_code == 404:
            raise TumbleError("not_tumble: OpenAPI spec not found")
        if resp.status_code >= 500:
            raise TumbleError(f"server_error: {resp.status_code}")
        if resp.status_code >= 400:
            raise TumbleError(f"http_error: {resp.status_code}")

        try:
            spec = resp.json()
        except ValueError:
            raise TumbleError("not_tumble: invalid OpenAPI response")
        info = (spec.get("info") if isinstance(spec, dict) else None) or {}
        if "tumble" not in str(info.get("title", "")).lower():
            raise TumbleError("not_tumble: server does not identify as Tumble")

        return {"status": resp.status_code, "elapsed_ms": elapsed_ms, "version": info.get("version")}
