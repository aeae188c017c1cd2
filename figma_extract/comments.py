# File: figma_extract/comments.py
"""figma_extract.comments: Привязка нерешённых комментариев к сохранённым ассетам через их страницу."""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Sequence, Set

from figma_extract.logger import logger
from figma_extract.models import Comment, Page, SavedAsset

__all__ = ["page_children", "bucket_comments", "attach_comments"]


def page_children(pages: Iterable[Page]) -> Dict[str, Set[str]]:
    """Возвращает id прямых потомков каждой страницы."""
    return {page.id: {child.id for child in page.children} for page in pages}


def bucket_comments(comments: Iterable[Comment], pages: Iterable[Page]) -> Dict[str, List[str]]:
    """Группирует тексты нерешённых комментариев по id страницы.

    Комментарии, чей узел не найден среди потомков страниц, отбрасываются.
    """
    children = page_children(pages)
    buckets: Dict[str, List[str]] = {}
    dropped = 0

    for comment in comments:
        if comment.resolved:
            continue
        page_id = next(
            (pid for pid, ids in children.items() if comment.node_id in ids),
            None,
        )
        if page_id is None:
            dropped += 1
            continue
        buckets.setdefault(page_id, []).append(comment.message)

    if dropped:
        logger.debug("Dropped %d comments not bound to a known page", dropped)
    return buckets


def attach_comments(
    assets: Sequence[SavedAsset], buckets: Mapping[str, List[str]]
) -> List[SavedAsset]:
    """Добавляет комментарии страницы к каждому ассету этой страницы."""
    return [
        replace(asset, comments=list(buckets[asset.page_id])) if asset.page_id in buckets else asset
        for asset in assets
    ]
