# figma_extract/provider.py
"""
Provider module: the Figma REST API client used by the extraction pipeline.

The pipeline talks to :class:`DocumentProvider`; :class:`FigmaClient` is the
aiohttp-backed implementation with timeout, retry and backoff.
"""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Type

from aiohttp import ClientError, ClientSession, ClientTimeout, InvalidURL

from figma_extract.errors import DownloadError, ExportRequestError, ExtractorError, FetchError
from figma_extract.models import Comment, DocumentTree, ExportMap

__all__ = ("DocumentProvider", "FigmaClient", "encode_params")

DEFAULT_API_URL = "https://api.figma.com/v1"


class DocumentProvider(Protocol):
    """Capabilities the pipeline needs from the remote design service."""

    async def fetch_document(self, file_id: str) -> DocumentTree: ...

    async def request_export(
        self, file_id: str, ids: Sequence[str], format: str, **options: Any
    ) -> ExportMap: ...

    async def fetch_comments(self, file_id: str) -> List[Comment]: ...

    async def download(self, url: str) -> bytes: ...


def encode_params(params: Mapping[str, Any]) -> Dict[str, str]:
    """Query-string encoding: lists are comma-joined, booleans lowercased, None dropped."""
    encoded: Dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            encoded[key] = ",".join(str(v) for v in value)
        else:
            encoded[key] = str(value)
    return encoded


class _HttpStatusError(ClientError):
    def __init__(self, status: int, retryable: bool) -> None:
        super().__init__(f"HTTP {status}")
        self.status = status
        self.retryable = retryable


class FigmaClient:
    """Async Figma API client with timeout, retries and exponential backoff."""
    _RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        retry_times: int = 3,
        max_backoff: float = 60.0,
    ) -> None:
        self._token = token
        self.api_url = str(api_url).rstrip("/")
        self.timeout = timeout
        self.retry_times = retry_times
        self.max_backoff = max_backoff
        self.session: Optional[ClientSession] = None
        self.logger = logging.getLogger("figma_extract")

    async def __aenter__(self) -> FigmaClient:
        self.session = ClientSession(
            timeout=ClientTimeout(total=self.timeout),
            raise_for_status=False,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.session and not self.session.closed:
            await self.session.close()

    # ------------------------------------------------------------------ API

    async def fetch_document(self, file_id: str) -> DocumentTree:
        payload = await self._get_json(f"/files/{file_id}", error=FetchError)
        tree = DocumentTree.from_response(payload)
        self.logger.debug("Fetched document %r with %d pages", tree.name, len(tree.pages))
        return tree

    async def request_export(
        self, file_id: str, ids: Sequence[str], format: str, **options: Any
    ) -> ExportMap:
        params = encode_params({**options, "ids": list(ids), "format": format})
        payload = await self._get_json(f"/images/{file_id}", params=params, error=ExportRequestError)
        if payload.get("err"):
            raise ExportRequestError(f"Export request failed: {payload['err']}")
        images = payload.get("images") or {}
        if not isinstance(images, dict):
            raise ExportRequestError(f"Unexpected images payload: {type(images).__name__}")
        return {str(k): v or None for k, v in images.items()}

    async def fetch_comments(self, file_id: str) -> List[Comment]:
        payload = await self._get_json(f"/files/{file_id}/comments", error=FetchError)
        return [Comment.from_dict(c) for c in payload.get("comments") or ()]

    async def download(self, url: str) -> bytes:
        """Fetch a rendered image; rendered URLs are pre-signed, no token is sent."""
        try:
            return await self._request(url, headers=None, params=None, json_body=False)
        except (ClientError, asyncio.TimeoutError) as exc:
            raise DownloadError(f"Download of {url} failed: {str(exc) or type(exc).__name__}") from exc

    # ------------------------------------------------------------- internals

    async def _get_json(
        self,
        path: str,
        params: Optional[Dict[str, str]] = None,
        error: Type[ExtractorError] = FetchError,
    ) -> Dict[str, Any]:
        url = f"{self.api_url}{path}"
        try:
            payload = await self._request(
                url, headers={"X-Figma-Token": self._token}, params=params, json_body=True
            )
        except _HttpStatusError as exc:
            raise error(f"GET {path} failed: HTTP {exc.status}", exc.status) from exc
        except (ClientError, asyncio.TimeoutError) as exc:
            raise error(f"GET {path} failed: {str(exc) or type(exc).__name__}") from exc
        except ValueError as exc:
            raise error(f"GET {path} returned malformed JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise error(f"GET {path} returned {type(payload).__name__}, expected an object")
        return payload

    async def _request(
        self,
        url: str,
        headers: Optional[Dict[str, str]],
        params: Optional[Dict[str, str]],
        json_body: bool,
    ) -> Any:
        if not self.session:
            raise RuntimeError("Session not initialized")
        attempts = 0
        while True:
            try:
                async with self.session.get(url, headers=headers, params=params) as resp:
                    if resp.status >= 400:
                        raise _HttpStatusError(resp.status, resp.status in self._RETRY_STATUS)
                    if json_body:
                        return await resp.json(content_type=None)
                    return await resp.read()
            except (ClientError, asyncio.TimeoutError) as exc:
                if isinstance(exc, _HttpStatusError) and not exc.retryable:
                    raise
                if isinstance(exc, InvalidURL):
                    raise
                attempts += 1
                if attempts > self.retry_times:
                    self.logger.warning("Failed %s: %s", url, str(exc) or type(exc).__name__)
                    raise
                backoff = min(self.max_backoff, 2**attempts + random.random())
                self.logger.debug(
                    "Retry %d/%d for %s after %.2f s", attempts, self.retry_times, url, backoff
                )
                await asyncio.sleep(backoff)
