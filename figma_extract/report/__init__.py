# File: figma_extract/report/__init__.py
"""figma_extract.report: Манифест извлечённых ассетов в JSON и HTML."""

from __future__ import annotations

from figma_extract.report.html_report import render_html
from figma_extract.report.json_report import render_json

__all__ = ["render_json", "render_html"]
