# File: tests/conftest.py
from __future__ import annotations

import os
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest
from aiohttp import web

from figma_extract.config import ExtractorConfig
from figma_extract.errors import DownloadError
from figma_extract.logger import configure
from figma_extract.models import Comment, DocumentTree

SVG_ICON = (
    b'<svg xmlns="http://www.w3.org/2000/svg" width="24" height="24" viewBox="0 0 24 24">'
    b'<path id="icon" d="M0 0h24v24H0z"/></svg>'
)


def make_document(pages: List[Dict[str, Any]], name: str = "Design System") -> Dict[str, Any]:
    """Build a ``GET /files/:key`` response body."""
    return {"name": name, "document": {"id": "0:0", "type": "DOCUMENT", "children": pages}}


def make_page(page_id: str, name: str, children: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"id": page_id, "name": name, "type": "CANVAS", "children": children}


def make_node(node_id: str, node_type: str, name: str, children=None, **extra) -> Dict[str, Any]:
    node = {"id": node_id, "type": node_type, "name": name, **extra}
    if children is not None:
        node["children"] = children
    return node


class FakeProvider:
    """In-memory DocumentProvider recording the calls it receives."""

    def __init__(
        self,
        document: Dict[str, Any],
        images: Optional[Dict[str, Optional[str]]] = None,
        payloads: Optional[Dict[str, bytes]] = None,
        comments: Optional[List[Dict[str, Any]]] = None,
        failing: Sequence[str] = (),
    ) -> None:
        self.document = document
        self.images = images or {}
        self.payloads = payloads or {}
        self.comments = comments or []
        self.failing = set(failing)
        self.export_calls: List[Tuple[str, List[str], str, Dict[str, Any]]] = []
        self.downloads: List[str] = []
        self.comment_calls = 0

    async def fetch_document(self, file_id: str) -> DocumentTree:
        return DocumentTree.from_response(self.document)

    async def request_export(self, file_id, ids, format, **options):
        self.export_calls.append((file_id, list(ids), format, options))
        return dict(self.images)

    async def fetch_comments(self, file_id: str) -> List[Comment]:
        self.comment_calls += 1
        return [Comment.from_dict(c) for c in self.comments]

    async def download(self, url: str) -> bytes:
        self.downloads.append(url)
        if url in self.failing:
            raise DownloadError(f"Download of {url} failed: HTTP 500")
        return self.payloads.get(url, SVG_ICON)


class RecordingSink:
    def __init__(self) -> None:
        self.events: List[Tuple[str, str]] = []

    def __call__(self, message: str, level: str = "info") -> None:
        self.events.append((message, level))

    def messages(self, level: str) -> List[str]:
        return [m for m, lvl in self.events if lvl == level]


@pytest.fixture()
def clean_env(tmp_path, monkeypatch) -> Path:
    """Isolate tests from FIGMA_* variables and any .env in the working directory."""
    for var in [v for v in os.environ if v.startswith("FIGMA_")] + ["PUBLIC_PATH", "PAGE_ID"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture()
def make_config(clean_env):
    """Factory returning a valid ExtractorConfig writing under tmp_path/public."""

    def _factory(**overrides: Any) -> ExtractorConfig:
        values: Dict[str, Any] = {
            "figma_token": "secret-token",
            "figma_file": "FILEKEY",
            "public_path": clean_env / "public",
            "optimize": False,
        }
        values.update(overrides)
        return ExtractorConfig(**values)

    return _factory


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def icon_document() -> Dict[str, Any]:
    """One page P1 holding a single COMPONENT ``icon`` with id 1:1."""
    return make_document([make_page("P1", "P1", [make_node("1:1", "COMPONENT", "icon")])])


async def serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}"
    finally:
        await runner.cleanup()


@pytest.fixture(autouse=True)
def _reset_logging():
    """CliRunner replaces stderr per invocation; restore a live handler afterwards."""
    yield
    configure(level="INFO")
