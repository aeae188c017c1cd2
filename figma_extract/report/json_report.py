# figma_extract/report/json_report.py

"""
Генерация JSON-манифеста для figma_extract.

Сериализация списка SavedAsset в файл.
"""
import json
from pathlib import Path
from typing import Sequence

from figma_extract.models import SavedAsset


def render_json(assets: Sequence[SavedAsset], output_path: Path | str, pretty: bool = True) -> Path:
    """
    Сохраняет манифест ассетов в формате JSON по указанному пути.

    :param assets: сохранённые ассеты
    :param output_path: путь к JSON-файлу
    :param pretty: отступ 2 вместо компактной записи
    :return: Path сохранённого файла

    Пример:
    ```python
    from figma_extract.report.json_report import render_json
    manifest = render_json(assets, 'public/icons.json')
    print(f"Manifest saved to: {manifest}")
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    data = [asset.to_dict() for asset in assets]

    with output.open('w', encoding='utf-8') as f:
        json.dump(data, f, ensure_ascii=False, indent=2 if pretty else None)

    return output
