# File: figma_extract/optimizer.py
"""figma_extract.optimizer: Оптимизация сохранённых SVG-файлов на базе lxml.

Выполняет то же, что и типовой набор плагинов SVGO для иконок: удаляет
комментарии, метаданные и данные редакторов, убирает неиспользуемые id и
сокращает используемые. ``viewBox`` сохраняется, фигуры в пути не
преобразуются.
"""

from __future__ import annotations

import itertools
import re
import string
from pathlib import Path
from typing import Dict, Iterator, Protocol, Sequence, Set, Union

from lxml import etree

from figma_extract.errors import OptimizeError
from figma_extract.logger import Sink, report
from figma_extract.models import SavedAsset

__all__ = ["AssetOptimizer", "SvgOptimizer", "optimize_assets"]

_EDITOR_NAMESPACES = frozenset(
    {
        "http://sodipodi.sourceforge.net/DTD/sodipodi-0.dtd",
        "http://www.inkscape.org/namespaces/inkscape",
        "http://www.bohemiancoding.com/sketch/ns",
        "http://ns.adobe.com/AdobeIllustrator/10.0/",
        "http://ns.adobe.com/SaveForWeb/1.0/",
    }
)
_DROPPED_TAGS = frozenset({"metadata", "title", "desc"})
_XLINK_HREF = "{http://www.w3.org/1999/xlink}href"
_URL_REF_RE = re.compile(r"""url\(\s*(['"]?)#([^'")\s]+)\1\s*\)""")


class AssetOptimizer(Protocol):
    def optimize(self, data: bytes, path: str) -> bytes: ...


def _short_ids() -> Iterator[str]:
    alphabet = string.ascii_letters
    for size in itertools.count(1):
        for chars in itertools.product(alphabet, repeat=size):
            yield "".join(chars)


def _local_name(el: etree._Element) -> str:
    return etree.QName(el).localname


def _namespace(name: str) -> str | None:
    return etree.QName(name).namespace


class SvgOptimizer:
    """Оптимизатор SVG; ``minify_ids`` управляет сокращением используемых id."""

    def __init__(self, minify_ids: bool = True) -> None:
        self.minify_ids = minify_ids
        self._parser = etree.XMLParser(
            remove_comments=True,
            remove_pis=True,
            remove_blank_text=True,
            resolve_entities=False,
            no_network=True,
        )

    def optimize(self, data: bytes, path: str = "") -> bytes:
        try:
            root = etree.fromstring(data, parser=self._parser)
        except etree.XMLSyntaxError as exc:
            raise OptimizeError(f"{path or 'input'} is not valid SVG: {exc}") from exc
        if _local_name(root) != "svg":
            raise OptimizeError(f"{path or 'input'}: root element is <{_local_name(root)}>, not <svg>")

        self._remove_editor_data(root)
        self._cleanup_ids(root)
        etree.cleanup_namespaces(root)
        return etree.tostring(root, encoding="utf-8", xml_declaration=False)

    @staticmethod
    def _remove_editor_data(root: etree._Element) -> None:
        doomed = [
            el
            for el in root.iter(etree.Element)
            if _local_name(el) in _DROPPED_TAGS or _namespace(el.tag) in _EDITOR_NAMESPACES
        ]
        for el in doomed:
            parent = el.getparent()
            if parent is not None:
                parent.remove(el)
        for el in root.iter(etree.Element):
            for attr in [a for a in el.attrib if _namespace(a) in _EDITOR_NAMESPACES]:
                del el.attrib[attr]

    def _cleanup_ids(self, root: etree._Element) -> None:
        # ids may be referenced from CSS or scripts we do not parse
        if any(_local_name(el) in ("style", "script") for el in root.iter(etree.Element)):
            return

        referenced: Set[str] = set()
        for el in root.iter(etree.Element):
            for attr, value in list(el.attrib.items()):
                referenced.update(m.group(2) for m in _URL_REF_RE.finditer(value))
                if attr in ("href", _XLINK_HREF) and value.startswith("#"):
                    referenced.add(value[1:])

        renames: Dict[str, str] = {}
        short = _short_ids()
        for el in root.iter(etree.Element):
            old = el.get("id")
            if old is None:
                continue
            if old not in referenced:
                del el.attrib["id"]
            elif self.minify_ids:
                renames[old] = renames.get(old) or next(short)
                el.set("id", renames[old])

        if not renames:
            return
        for el in root.iter(etree.Element):
            for attr, value in list(el.attrib.items()):
                if attr in ("href", _XLINK_HREF) and value[1:] in renames and value.startswith("#"):
                    el.set(attr, "#" + renames[value[1:]])
                elif "url(" in value:
                    el.set(
                        attr,
                        _URL_REF_RE.sub(
                            lambda m: f"url(#{renames.get(m.group(2), m.group(2))})", value
                        ),
                    )


def optimize_assets(
    assets: Sequence[SavedAsset],
    base_path: Union[str, Path],
    optimizer: AssetOptimizer,
    extension: str = "svg",
    output_dir: str = "output",
    sink: Sink = report,
) -> int:
    """Оптимизирует файлы с расширением ``extension`` в ``base_path/output_dir``.

    Ошибка одного файла логируется и не прерывает пакет. Возвращает число
    успешно оптимизированных файлов.
    """
    base = Path(base_path)
    out_root = base / output_dir
    targets = [a for a in assets if a.filename.endswith(f".{extension}")]
    sink(f"Optimizing {len(targets)} {extension.upper()} files", "info")

    try:
        out_root.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        sink(f"Error creating output directory: {exc}", "error")
        return 0

    optimized = 0
    for asset in targets:
        source = Path(asset.path)
        try:
            relative = source.relative_to(base)
        except ValueError:
            relative = Path(asset.filename)
        target = out_root / relative
        try:
            result = optimizer.optimize(source.read_bytes(), str(source))
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(result)
        except (OptimizeError, OSError) as exc:
            sink(f"Error optimizing file {asset.filename}: {exc}", "error")
            continue
        optimized += 1
        sink(f"Optimized: {asset.filename} ({optimized}/{len(targets)})", "success")

    sink(f"Successfully optimized {optimized} out of {len(targets)} {extension.upper()} files", "success")
    return optimized
