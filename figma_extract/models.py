# figma_extract/models.py
"""
Data models for figma_extract: the document tree returned by the Figma API,
selection records produced by the tree filter, review comments and the
records describing saved assets.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple


@dataclass(slots=True, frozen=True)
class Color:
    """RGBA color with channels in the [0, 1] range."""

    r: float
    g: float
    b: float
    a: float = 1.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Color:
        return cls(
            r=float(data.get("r", 0.0)),
            g=float(data.get("g", 0.0)),
            b=float(data.get("b", 0.0)),
            a=float(data.get("a", 1.0)),
        )


@dataclass(slots=True, frozen=True)
class Node:
    """A single element of the document tree (component, frame, group, ...)."""

    id: str
    type: str
    name: str
    background_color: Optional[Color] = None
    children: Tuple[Node, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Node:
        color = data.get("backgroundColor")
        return cls(
            id=str(data["id"]),
            type=str(data.get("type", "")),
            name=str(data.get("name", "")),
            background_color=Color.from_dict(color) if isinstance(color, dict) else None,
            children=tuple(cls.from_dict(c) for c in data.get("children") or ()),
        )


@dataclass(slots=True, frozen=True)
class Page:
    """Top-level canvas of the document; owns its child nodes."""

    id: str
    name: str
    children: Tuple[Node, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Page:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            children=tuple(Node.from_dict(c) for c in data.get("children") or ()),
        )


@dataclass(slots=True, frozen=True)
class DocumentTree:
    """Whole document: an ordered sequence of pages."""

    name: str
    pages: Tuple[Page, ...] = ()

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> DocumentTree:
        """Build the tree from a ``GET /files/:key`` response body."""
        document = payload.get("document") or {}
        return cls(
            name=str(payload.get("name", document.get("name", ""))),
            pages=tuple(Page.from_dict(p) for p in document.get("children") or ()),
        )


@dataclass(slots=True, frozen=True)
class SelectionRecord:
    """A node that matched the filters, with the page owning it."""

    node: Node
    page: Page
    background_color: Optional[str] = None


@dataclass(slots=True, frozen=True)
class Comment:
    """Review comment attached to a node of the document."""

    message: str
    node_id: Optional[str] = None
    resolved: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Comment:
        meta = data.get("client_meta")
        node_id = meta.get("node_id") if isinstance(meta, dict) else None
        return cls(
            message=str(data.get("message", "")),
            node_id=node_id,
            resolved=bool(data.get("resolved_at")),
        )


@dataclass(slots=True)
class SavedAsset:
    """Holds the outcome of one successfully downloaded and written node."""

    filename: str
    path: Path
    page_id: str
    page: str
    type: str
    background_color: Optional[str] = None
    comments: Optional[List[str]] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        """Manifest representation; optional keys appear only when set."""
        data: Dict[str, Any] = {
            "filename": self.filename,
            "page_id": self.page_id,
            "page": self.page,
            "type": self.type,
        }
        if self.background_color:
            data["background_color"] = self.background_color
        if self.comments:
            data["comments"] = list(self.comments)
        return data


#: Mapping of node id to the rendered download URL (``None`` when not rendered).
ExportMap = Dict[str, Optional[str]]
