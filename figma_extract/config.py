# === FILE: figma_extract/config.py ===
"""
Модуль для загрузки и валидации конфигурации экстрактора.
Обязательные значения (токен, ключ файла, каталог вывода) берутся из
переменных окружения или файла .env, остальные можно переопределить
YAML/JSON-файлом. Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import (
    AliasChoices,
    Field,
    HttpUrl,
    SecretStr,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from figma_extract.errors import ConfigError
from figma_extract.naming import NamingOptions

ExportFormat = Literal["svg", "png", "jpg", "pdf"]


class ExtractorConfig(BaseSettings):
    """Конфигурация одного запуска извлечения."""
    model_config = SettingsConfigDict(
        env_prefix="FIGMA_EXTRACT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # основные переменные окружения читаются без префикса
    figma_token: SecretStr = Field(
        ...,
        validation_alias=AliasChoices("figma_token", "FIGMA_TOKEN"),
        description="Персональный токен доступа Figma.",
    )
    figma_file: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("figma_file", "FIGMA_FILE"),
        description="Ключ файла Figma.",
    )
    public_path: Path = Field(
        ...,
        validation_alias=AliasChoices("public_path", "PUBLIC_PATH"),
        description="Каталог для сохранения ассетов.",
    )
    page_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("page_id", "PAGE_ID"),
        description="Обрабатывать только эту страницу.",
    )

    format: ExportFormat = Field("svg", description="Формат экспорта.")
    scale: Optional[float] = Field(None, ge=0.01, le=4, description="Масштаб растровых форматов.")
    types: Optional[List[str]] = Field(
        default_factory=lambda: ["COMPONENT"], description="Допустимые типы узлов (null = все)."
    )
    name_pattern: Optional[str] = Field(None, description="Регулярное выражение для имени узла.")

    append_frame_id: bool = True
    append_page_name: bool = False
    use_pages_as_folders: bool = False
    dont_overwrite: bool = False
    get_background_color: bool = False
    get_comments: bool = False

    svg_include_id: Optional[bool] = True
    svg_simplify_stroke: Optional[bool] = None
    use_absolute_bounds: Optional[bool] = None

    api_url: HttpUrl = Field("https://api.figma.com/v1", description="Базовый URL Figma REST API.")
    timeout: float = Field(30.0, gt=0, description="Таймаут на один запрос (секунд).")
    retry_times: int = Field(3, ge=0, description="Число повторных попыток при 429/5xx.")
    concurrency: int = Field(10, ge=1, description="Одновременных скачиваний.")

    optimize: bool = Field(True, description="Оптимизировать SVG после извлечения.")
    optimized_dir: str = Field("output", min_length=1, description="Подкаталог для оптимизированных файлов.")

    @field_validator("figma_token")
    def _token_not_blank(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value().strip():
            raise ValueError("token must not be empty")
        return v

    @field_validator("public_path", mode="before")
    def _expand_path(cls, v: Any) -> Any:
        if isinstance(v, str):
            if not v.strip():
                raise ValueError("path must not be empty")
            return Path(v).expanduser()
        return v

    @field_validator("api_url", mode="before")
    def _strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @field_validator("name_pattern")
    def _pattern_compiles(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            try:
                re.compile(v)
            except re.error as exc:
                raise ValueError(f"invalid regular expression: {exc}") from exc
        return v

    def naming_options(self) -> NamingOptions:
        return NamingOptions(
            format=self.format,
            append_page_name=self.append_page_name,
            append_frame_id=self.append_frame_id,
            use_pages_as_folders=self.use_pages_as_folders,
            dont_overwrite=self.dont_overwrite,
        )

    def export_params(self) -> Dict[str, Any]:
        """Дополнительные параметры запроса ``/images``; пустые значения опускаются."""
        params = {
            "scale": self.scale,
            "svg_include_id": self.svg_include_id,
            "svg_simplify_stroke": self.svg_simplify_stroke,
            "use_absolute_bounds": self.use_absolute_bounds,
        }
        return {k: v for k, v in params.items() if v is not None}


_DEFAULT_CFG = Path("figma_extract.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def _describe(exc: ValidationError) -> str:
    missing = [
        str(err["loc"][0]).upper() for err in exc.errors() if err["type"] == "missing" and err["loc"]
    ]
    invalid = [
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
        for err in exc.errors()
        if err["type"] != "missing"
    ]
    parts = []
    if missing:
        parts.append(f"Please provide {', '.join(missing)}")
    if invalid:
        parts.append("; ".join(invalid))
    return ". ".join(parts)


def load_config(path: Union[str, Path, None] = None) -> ExtractorConfig:
    """
    Собирает конфигурацию из окружения, .env и (необязательно) YAML/JSON-файла.

    Явно указанный, но отсутствующий файл → FileNotFoundError.
    Отсутствующие или некорректные значения → ConfigError.
    """
    if path is None:
        path_obj = _DEFAULT_CFG if _DEFAULT_CFG.is_file() else None
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    data: dict[str, Any] = {}
    if path_obj is not None:
        suffix = path_obj.suffix.lower()
        if suffix in (".yaml", ".yml"):
            data = _read_yaml(path_obj)
        elif suffix == ".json":
            data = _read_json(path_obj)
        else:
            raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    try:
        return ExtractorConfig(**data)
    except ValidationError as exc:
        raise ConfigError(_describe(exc)) from exc
