# File: figma_extract/tree_filter.py
"""figma_extract.tree_filter: Обход дерева документа и отбор узлов по типу и имени."""

from __future__ import annotations

import re
from typing import Callable, Collection, Dict, Iterator, List, Optional, Sequence, Tuple

from figma_extract.logger import logger
from figma_extract.models import Color, DocumentTree, Node, Page, SelectionRecord

__all__: Sequence[str] = (
    "NodePredicate",
    "scope_pages",
    "iter_nodes",
    "type_filter",
    "name_filter",
    "select",
    "rgb_to_hex",
    "hex_to_rgb",
)

NodePredicate = Callable[[Node], bool]


def _always(_: Node) -> bool:
    return True


def scope_pages(tree: DocumentTree, page_id: Optional[str] = None) -> List[Page]:
    """Возвращает страницы для обхода: одну с заданным id или все."""
    if page_id is None:
        return list(tree.pages)
    pages = [page for page in tree.pages if page.id == page_id]
    if not pages:
        logger.warning("Page %s not found in document %r", page_id, tree.name)
    return pages


def iter_nodes(page: Page) -> Iterator[Node]:
    """Обходит все узлы страницы в глубину (pre-order), каждый ровно один раз."""
    stack: List[Node] = list(reversed(page.children))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def type_filter(types: Optional[Collection[str]]) -> Optional[NodePredicate]:
    """Предикат принадлежности типа узла набору ``types``; None, если фильтра нет."""
    if not types:
        return None
    allowed = frozenset(types)
    return lambda node: node.type in allowed


def name_filter(pattern: Optional[str]) -> Optional[NodePredicate]:
    """Предикат поиска регулярного выражения в имени узла; None, если фильтра нет."""
    if not pattern:
        return None
    regex = re.compile(pattern)
    return lambda node: regex.search(node.name) is not None


def select(
    tree: DocumentTree,
    page_id: Optional[str] = None,
    type_predicate: Optional[NodePredicate] = None,
    name_predicate: Optional[NodePredicate] = None,
    capture_background: bool = False,
    pages: Optional[Sequence[Page]] = None,
) -> Dict[str, SelectionRecord]:
    """Отбирает узлы, удовлетворяющие обоим предикатам.

    Потомки просматриваются независимо от того, выбран ли их предок.
    Пустой результат допустим и ошибкой не считается. Если ``pages`` уже
    вычислены через :func:`scope_pages`, ``page_id`` не используется.
    """
    by_type = type_predicate or _always
    by_name = name_predicate or _always
    selection: Dict[str, SelectionRecord] = {}
    visited = 0
    if pages is None:
        pages = scope_pages(tree, page_id)

    for page in pages:
        for node in iter_nodes(page):
            visited += 1
            if not (by_type(node) and by_name(node)):
                continue
            color = None
            if capture_background and node.background_color is not None:
                color = rgb_to_hex(node.background_color)
            selection[node.id] = SelectionRecord(node=node, page=page, background_color=color)

    logger.debug("Visited %d nodes, selected %d", visited, len(selection))
    return selection


def _channel_to_byte(value: float) -> int:
    return min(255, max(0, round(value * 255)))


def rgb_to_hex(color: Color) -> str:
    """Кодирует каналы [0, 1] в строку ``#rrggbb`` (альфа-канал отбрасывается)."""
    return "#" + "".join(f"{_channel_to_byte(c):02x}" for c in (color.r, color.g, color.b))


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    """Декодирует ``#rrggbb`` в байты каналов."""
    digits = value.lstrip("#")
    if len(digits) != 6:
        raise ValueError(f"Expected #rrggbb, got {value!r}")
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)
