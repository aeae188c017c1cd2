# File: figma_extract/engine.py
"""figma_extract.engine: Запуск извлечения и последующей оптимизации для одной конфигурации."""

from __future__ import annotations

import asyncio
from typing import List, Optional

from figma_extract.config import ExtractorConfig
from figma_extract.logger import logger
from figma_extract.models import SavedAsset
from figma_extract.optimizer import AssetOptimizer, SvgOptimizer, optimize_assets
from figma_extract.pipeline import ExportPipeline
from figma_extract.provider import DocumentProvider, FigmaClient

__all__ = ["start_extraction"]


async def _run_pipeline(cfg: ExtractorConfig, provider: Optional[DocumentProvider]) -> List[SavedAsset]:
    if provider is not None:
        return await ExportPipeline(provider, cfg).extract(cfg.public_path)
    async with FigmaClient(
        cfg.figma_token.get_secret_value(),
        api_url=str(cfg.api_url),
        timeout=cfg.timeout,
        retry_times=cfg.retry_times,
    ) as client:
        return await ExportPipeline(client, cfg).extract(cfg.public_path)


async def start_extraction(
    cfg: ExtractorConfig,
    provider: Optional[DocumentProvider] = None,
    optimizer: Optional[AssetOptimizer] = None,
) -> List[SavedAsset]:
    """
    Извлекает ассеты и, если включено, оптимизирует SVG-файлы.

    Parameters
    ----------
    cfg : ExtractorConfig
        Конфигурация запуска.
    provider : DocumentProvider, optional
        Источник документа; по умолчанию FigmaClient на основе cfg.
    optimizer : AssetOptimizer, optional
        Оптимизатор; по умолчанию SvgOptimizer.

    Returns
    -------
    List[SavedAsset]
        Сохранённые ассеты (исходные, не оптимизированные пути).
    """
    assets = await _run_pipeline(cfg, provider)

    if cfg.optimize and cfg.format == "svg" and assets:
        await asyncio.to_thread(
            optimize_assets,
            assets,
            cfg.public_path,
            optimizer or SvgOptimizer(),
            cfg.format,
            cfg.optimized_dir,
        )
    elif cfg.optimize and cfg.format != "svg":
        logger.debug("Optimization skipped for %s export", cfg.format)

    logger.info("Successfully extracted %d %s files", len(assets), cfg.format.upper())
    return assets
