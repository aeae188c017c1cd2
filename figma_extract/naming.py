# File: figma_extract/naming.py
"""figma_extract.naming: Детерминированные имена и пути файлов для выбранных узлов."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import NamedTuple, Optional, Set, Union

from figma_extract.logger import logger
from figma_extract.models import SelectionRecord

__all__ = ["NamingOptions", "ResolvedPath", "resolve_path", "safe_relative"]

_SEPARATORS_RE = re.compile(r"[\\/]+")


@dataclass(slots=True, frozen=True)
class NamingOptions:
    """Параметры построения имени файла."""

    format: str = "svg"
    append_page_name: bool = False
    append_frame_id: bool = True
    use_pages_as_folders: bool = False
    dont_overwrite: bool = False


class ResolvedPath(NamedTuple):
    filename: str
    path: Path


def safe_relative(text: str) -> str:
    """Оставляет от имени только сегменты, не выходящие за базовый каталог.

    Разделители ``/`` и ``\\`` дают подкаталоги; пустые сегменты, ``.`` и
    ``..`` отбрасываются, поэтому абсолютные и «подъёмные» имена становятся
    относительными.
    """
    parts = [p for p in _SEPARATORS_RE.split(text) if p not in ("", ".", "..")]
    return "/".join(parts)


def _base_name(record: SelectionRecord, options: NamingOptions) -> str:
    pieces = [
        record.page.name if options.append_page_name else None,
        record.node.name if options.append_frame_id else None,
        record.node.id.replace(":", "_"),
    ]
    return safe_relative("_".join(p for p in pieces if p))


def resolve_path(
    record: SelectionRecord,
    base_path: Union[str, Path],
    options: NamingOptions,
    claimed: Optional[Set[Path]] = None,
) -> ResolvedPath:
    """Строит имя файла и полный путь для узла.

    При ``dont_overwrite`` к имени добавляется суффикс ``_(n)``, пока путь
    занят на диске или уже выдан в текущем запуске (``claimed``). Выданный
    путь добавляется в ``claimed``. Проверка и резервирование выполняются
    без ожиданий, поэтому внутри одного event loop они атомарны; гонка с
    другими процессами остаётся возможной.
    """
    name = _base_name(record, options)
    folder = Path(base_path)
    page_folder = safe_relative(record.page.name) if options.use_pages_as_folders else ""
    if page_folder:
        folder = folder / page_folder

    filename = f"{name}.{options.format}"
    path = folder / filename

    if options.dont_overwrite:
        taken = claimed if claimed is not None else set()
        counter = 1
        while path.exists() or path in taken:
            filename = f"{name}_({counter}).{options.format}"
            path = folder / filename
            counter += 1
        if counter > 1:
            logger.debug("Name %s.%s is taken, using %s", name, options.format, filename)

    if claimed is not None:
        claimed.add(path)
    return ResolvedPath(filename, path)
