"""Backblaze B2 storage: document backend on the B2 native API.

Communicates with B2 via its `native API`_ (v2) using ``httpx``. B2 file
info is immutable, so attributes are published by uploading a new version
of the file with identical content and the new ``X-Bz-Info-*`` headers.

.. _native API: https://www.backblaze.com/apidocs/introduction-to-the-b2-native-api

Usage::

    storage = B2Storage(B2Config(bucket_name="articles", region="us-west-004"))
    await storage.initialize()
    handles = await storage.list_documents()
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import quote

import httpx

from metasync.config.settings import B2Config
from metasync.models.metadata import FINGERPRINT_ATTRIBUTE
from metasync.storage.base.exceptions import (
    ConfigurationError,
    ListingError,
    ReadError,
    StorageConnectionError,
    WriteError,
)
from metasync.storage.base.storage import DocumentReader, DocumentStorage, content_fingerprint

logger = logging.getLogger(__name__)

CONTENT_TYPE = "text/markdown; charset=utf-8"
_LIST_PAGE_SIZE = 1000
_UNVERIFIED_PREFIX = "unverified:"


class _B2DocumentReader(DocumentReader):
    """Reader over a streamed B2 download response."""

    def __init__(self, response: httpx.Response, length: int | None) -> None:
        super().__init__(length)
        self._response = response

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        try:
            # Raw bytes: the fingerprint covers the stored bytes, not a decoded form.
            async for chunk in self._response.aiter_raw():
                yield chunk
        except httpx.HTTPError as e:
            raise ReadError(f"B2 download interrupted: {e}") from e

    async def aclose(self) -> None:
        await self._response.aclose()


class B2Storage(DocumentStorage):
    """Document storage backed by a Backblaze B2 bucket.

    Args:
        config: Bucket, prefix and credential settings.
    """

    def __init__(self, config: B2Config) -> None:
        self._config = config
        self._prefix = config.prefix
        self._client: httpx.AsyncClient | None = None
        self._auth_token: str | None = None
        self._api_url: str | None = None
        self._download_url: str | None = None
        self._account_id: str | None = None
        self._bucket_id: str | None = None

    @property
    def name(self) -> str:
        return "b2"

    async def initialize(self) -> None:
        """Authorize the account and resolve the bucket id."""
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._config.timeout))

        try:
            resp = await self._client.get(
                f"{self._config.api_url.rstrip('/')}/b2api/v2/b2_authorize_account",
                auth=(self._config.key_id, self._config.application_key),
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            raise StorageConnectionError(f"Failed to authorize with B2: {e}") from e

        self._account_id = data["accountId"]
        self._auth_token = data["authorizationToken"]
        self._api_url = data["apiUrl"]
        self._download_url = data["downloadUrl"]

        allowed = data.get("allowed") or {}
        if allowed.get("bucketId") and allowed.get("bucketName") == self._config.bucket_name:
            self._bucket_id = allowed["bucketId"]
        else:
            self._bucket_id = await self._resolve_bucket_id()

        logger.info(
            "Connected to B2 bucket %s (region: %s, prefix: %r)",
            self._config.bucket_name,
            self._config.region,
            self._prefix,
        )

    async def shutdown(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # ── Listing ──────────────────────────────────────────────────────────

    async def list_documents(self) -> list[str]:
        """List finished uploads under the prefix with the configured extension."""
        handles: list[str] = []
        start_file_name: str | None = None

        while True:
            payload: dict[str, Any] = {
                "bucketId": self._bucket_id,
                "prefix": self._prefix,
                "maxFileCount": _LIST_PAGE_SIZE,
            }
            if start_file_name:
                payload["startFileName"] = start_file_name

            try:
                data = await self._call_api("b2_list_file_names", payload)
            except httpx.HTTPError as e:
                raise ListingError(f"Failed to list B2 files: {e}") from e

            for entry in data.get("files", []):
                # Unfinished large files and folder markers are not documents.
                if entry.get("action") != "upload":
                    continue
                file_name = entry.get("fileName", "")
                if not file_name.endswith(self._config.extension):
                    continue
                handles.append(file_name.removeprefix(self._prefix))

            start_file_name = data.get("nextFileName")
            if not start_file_name:
                return handles

    # ── Per-document operations ──────────────────────────────────────────

    async def fetch_fingerprints(self, handle: str) -> tuple[str | None, str | None]:
        """Read the content SHA-1 and the recorded fingerprint from file headers."""
        client = self._require_client()
        try:
            resp = await client.head(self._download_url_for(handle), headers=self._auth_headers())
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ReadError(f"Failed to fetch B2 file info for '{handle}': {e}") from e

        headers = resp.headers
        current = headers.get("x-bz-content-sha1")
        if current in (None, "none"):
            # Large files carry no content SHA-1; uploaders record it in file info.
            current = headers.get("x-bz-info-large_file_sha1")
        if current and current.startswith(_UNVERIFIED_PREFIX):
            current = current[len(_UNVERIFIED_PREFIX) :]

        return current, headers.get(f"x-bz-info-{FINGERPRINT_ATTRIBUTE}")

    async def open_document(self, handle: str) -> DocumentReader:
        """Start a streamed download of the document."""
        client = self._require_client()
        request = client.build_request("GET", self._download_url_for(handle), headers=self._auth_headers())
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise ReadError(f"Failed to download '{handle}' from B2: {e}") from e

        if response.is_error:
            await response.aclose()
            raise ReadError(f"Failed to download '{handle}' from B2: HTTP {response.status_code}")

        length = response.headers.get("content-length")
        return _B2DocumentReader(response, int(length) if length is not None else None)

    async def put_attributes(self, handle: str, content: bytes, attributes: dict[str, str]) -> None:
        """Upload a new file version with unchanged content and new file info."""
        client = self._require_client()
        try:
            # One upload URL per upload; B2 forbids concurrent use of the same URL.
            upload = await self._call_api("b2_get_upload_url", {"bucketId": self._bucket_id})

            headers = {
                "Authorization": upload["authorizationToken"],
                "X-Bz-File-Name": quote(self._prefix + handle, safe="/"),
                "Content-Type": CONTENT_TYPE,
                "X-Bz-Content-Sha1": content_fingerprint(content),
            }
            for key, value in attributes.items():
                headers[f"X-Bz-Info-{key}"] = quote(value, safe="")

            resp = await client.post(upload["uploadUrl"], headers=headers, content=content)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise WriteError(f"Failed to write metadata for '{handle}' to B2: {e}") from e

        logger.debug("Uploaded new version of %s with %d attributes", handle, len(attributes))

    # ── Helpers ──────────────────────────────────────────────────────────

    def _require_client(self) -> httpx.AsyncClient:
        if not self._client or not self._auth_token:
            raise StorageConnectionError("B2 client not initialized.")
        return self._client

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": self._auth_token or ""}

    def _download_url_for(self, handle: str) -> str:
        key = quote(self._prefix + handle, safe="/")
        return f"{self._download_url}/file/{quote(self._config.bucket_name, safe='')}/{key}"

    async def _call_api(self, operation: str, payload: dict[str, Any]) -> dict[str, Any]:
        client = self._require_client()
        resp = await client.post(
            f"{self._api_url}/b2api/v2/{operation}",
            json=payload,
            headers=self._auth_headers(),
        )
        resp.raise_for_status()
        return resp.json()

    async def _resolve_bucket_id(self) -> str:
        try:
            data = await self._call_api(
                "b2_list_buckets",
                {"accountId": self._account_id, "bucketName": self._config.bucket_name},
            )
        except httpx.HTTPError as e:
            raise StorageConnectionError(f"Failed to look up B2 bucket: {e}") from e

        buckets = data.get("buckets", [])
        if not buckets:
            raise ConfigurationError(f"B2 bucket '{self._config.bucket_name}' not found or not accessible")
        return buckets[0]["bucketId"]
