# === FILE: figma_extract/pipeline.py ===
"""figma_extract.pipeline: Конвейер извлечения ассетов.

Порядок стадий строгий: загрузка документа → фильтрация узлов → запрос
ссылок на экспорт → параллельное скачивание и сохранение → привязка
комментариев. Параллельна только стадия скачивания; ошибка одного узла
не останавливает остальные.
"""
from __future__ import annotations

import asyncio
import enum
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Union

from figma_extract.comments import attach_comments, bucket_comments
from figma_extract.config import ExtractorConfig
from figma_extract.errors import DownloadError, ExtractionError, SaveError
from figma_extract.logger import Sink, logger, report
from figma_extract.models import DocumentTree, ExportMap, Page, SavedAsset, SelectionRecord
from figma_extract.naming import resolve_path
from figma_extract.provider import DocumentProvider
from figma_extract.tree_filter import name_filter, scope_pages, select, type_filter

__all__ = ("PipelineState", "ExportPipeline", "clean_ids")


class PipelineState(enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    FILTERING = "filtering"
    EMPTY = "empty"
    REQUESTING_EXPORT = "requesting_export"
    DOWNLOADING = "downloading"
    ATTACHING_COMMENTS = "attaching_comments"
    DONE = "done"
    FAILED = "failed"


def clean_ids(ids: Iterable[Optional[str]]) -> List[str]:
    """Обрезает пробелы и отбрасывает пустые id."""
    return [i.strip() for i in ids if i and i.strip()]


class ExportPipeline:
    """Извлекает выбранные узлы документа в файлы под ``base_path``."""

    def __init__(
        self,
        provider: DocumentProvider,
        config: ExtractorConfig,
        sink: Sink = report,
    ) -> None:
        self.provider = provider
        self.config = config
        self.sink = sink
        self.naming = config.naming_options()
        self.state = PipelineState.IDLE

    def _enter(self, state: PipelineState) -> None:
        logger.debug("Pipeline: %s -> %s", self.state.value, state.value)
        self.state = state

    async def extract(self, base_path: Union[str, Path] = ".") -> List[SavedAsset]:
        """Запускает все стадии и возвращает сохранённые ассеты в порядке завершения."""
        base = Path(base_path)
        cfg = self.config
        self.sink(f"Starting extraction for file ID: {cfg.figma_file}", "info")
        if cfg.types:
            self.sink(f"Filtering for types: {', '.join(cfg.types)}", "info")
        if cfg.name_pattern:
            self.sink("Applying custom name filter", "info")

        try:
            self._enter(PipelineState.FETCHING)
            tree = await self.provider.fetch_document(cfg.figma_file)

            self._enter(PipelineState.FILTERING)
            pages = scope_pages(tree, cfg.page_id)
            selection = self._select(tree, pages)
            if not selection:
                self.sink("No elements match the specified filters.", "warning")
                self._enter(PipelineState.EMPTY)
                return []

            self._enter(PipelineState.REQUESTING_EXPORT)
            export_map = await self._request_export(list(selection))

            self._enter(PipelineState.DOWNLOADING)
            assets = await self._download_all(export_map, selection, base)

            if cfg.get_comments:
                self._enter(PipelineState.ATTACHING_COMMENTS)
                assets = await self._attach_comments(assets, pages)
        except ExtractionError as exc:
            self._enter(PipelineState.FAILED)
            self.sink(f"Error during extraction: {exc}", "error")
            raise

        self._enter(PipelineState.DONE)
        return assets

    # ---------------------------------------------------------------- stages

    def _select(self, tree: DocumentTree, pages: List[Page]) -> Dict[str, SelectionRecord]:
        cfg = self.config
        return select(
            tree,
            type_predicate=type_filter(cfg.types),
            name_predicate=name_filter(cfg.name_pattern),
            capture_background=cfg.get_background_color,
            pages=pages,
        )

    async def _request_export(self, ids: List[str]) -> ExportMap:
        valid = clean_ids(ids)
        if not valid:
            self.sink("No valid IDs to process.", "error")
            return {}
        self.sink(f"Requesting {self.config.format} export for {len(valid)} nodes", "info")
        return await self.provider.request_export(
            self.config.figma_file, valid, self.config.format, **self.config.export_params()
        )

    async def _download_all(
        self,
        export_map: ExportMap,
        selection: Dict[str, SelectionRecord],
        base: Path,
    ) -> List[SavedAsset]:
        jobs = []
        for node_id, url in export_map.items():
            if not url:
                logger.debug("No render for %s, skipping", node_id)
                continue
            record = selection.get(node_id)
            if record is None:
                self.sink(f"Provider returned unknown node {node_id}, skipping", "warning")
                continue
            jobs.append((node_id, url, record))

        semaphore = asyncio.Semaphore(self.config.concurrency)
        claimed: Set[Path] = set()
        tasks = [
            asyncio.create_task(self._fetch_and_save(semaphore, claimed, node_id, url, record, base))
            for node_id, url, record in jobs
        ]

        start = time.monotonic()
        assets: List[SavedAsset] = []
        try:
            for fut in asyncio.as_completed(tasks):
                asset = await fut
                if asset is not None:
                    assets.append(asset)
        finally:
            # cancellation of the run must not leave downloads behind
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        logger.info(
            "Downloaded %d/%d assets in %.2f s", len(assets), len(jobs), time.monotonic() - start
        )
        self.sink(f"Saved {len(assets)} of {len(jobs)} assets", "success" if assets else "warning")
        return assets

    async def _fetch_and_save(
        self,
        semaphore: asyncio.Semaphore,
        claimed: Set[Path],
        node_id: str,
        url: str,
        record: SelectionRecord,
        base: Path,
    ) -> Optional[SavedAsset]:
        async with semaphore:
            try:
                data = await self.provider.download(url)
                return await self._save(node_id, data, record, base, claimed)
            except (DownloadError, SaveError) as exc:
                self.sink(f"Failed to extract {node_id}: {exc}", "error")
                return None
            except Exception as exc:
                logger.exception("Unexpected error while extracting %s", node_id)
                self.sink(f"Failed to extract {node_id}: {type(exc).__name__}: {exc}", "error")
                return None

    async def _save(
        self,
        node_id: str,
        data: bytes,
        record: SelectionRecord,
        base: Path,
        claimed: Set[Path],
    ) -> SavedAsset:
        try:
            resolved = resolve_path(record, base, self.naming, claimed)
        except OSError as exc:
            raise SaveError(f"Cannot resolve a path for {node_id}: {exc}") from exc
        try:
            await asyncio.to_thread(resolved.path.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(resolved.path.write_bytes, data)
        except OSError as exc:
            raise SaveError(f"Error writing file {resolved.path}: {exc}") from exc

        self.sink(f"File saved: {resolved.filename}", "success")
        return SavedAsset(
            filename=resolved.filename,
            path=resolved.path,
            page_id=record.page.id,
            page=record.page.name,
            type=record.node.type,
            background_color=record.background_color,
        )

    async def _attach_comments(self, assets: List[SavedAsset], pages: List[Page]) -> List[SavedAsset]:
        comments = await self.provider.fetch_comments(self.config.figma_file)
        buckets = bucket_comments(comments, pages)
        logger.debug("Comment buckets for %d pages", len(buckets))
        return attach_comments(assets, buckets)
