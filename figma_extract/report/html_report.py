# File: figma_extract/report/html_report.py
"""figma_extract.report.html_report: Генерация HTML-галереи ассетов с помощью Jinja2."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Sequence, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from figma_extract.models import SavedAsset

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


def render_html(
    assets: Sequence[SavedAsset],
    template_dir: Union[Path, str, None],
    output_path: Union[Path, str],
) -> Path:
    """Рендерит галерею ассетов из шаблона и сохраняет её по указанному пути.

    Args:
        assets: сохранённые ассеты.
        template_dir: директория с шаблоном ``gallery.html.j2``; None → встроенный шаблон.
        output_path: путь к итоговому HTML-файлу.

    Returns:
        Path до сохранённого HTML-файла.
    """
    template_dir = Path(template_dir) if template_dir else DEFAULT_TEMPLATE_DIR
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    template = env.get_template("gallery.html.j2")

    # src задаётся относительно каталога HTML-файла
    items: list[dict[str, Any]] = [
        {
            **asset.to_dict(),
            "src": Path(os.path.relpath(asset.path, output_path.parent)).as_posix(),
        }
        for asset in assets
    ]
    pages = sorted({item["page"] for item in items})

    html_content = template.render(assets=items, pages=pages, total=len(items))
    output_path.write_text(html_content, encoding="utf-8")

    return output_path
