# File: figma_extract/errors.py
"""figma_extract.errors: Иерархия исключений экстрактора.

Фатальные ошибки (конфигурация, загрузка документа, запрос экспорта)
прерывают запуск. Ошибки одного узла или файла (скачивание, сохранение,
оптимизация) перехватываются на границе задачи и только уменьшают
число успешно обработанных элементов.
"""

from __future__ import annotations

__all__ = [
    "ExtractorError",
    "ConfigError",
    "ExtractionError",
    "FetchError",
    "ExportRequestError",
    "DownloadError",
    "SaveError",
    "OptimizeError",
]


class ExtractorError(Exception):
    """Базовый класс всех ошибок figma_extract."""


class ConfigError(ExtractorError, ValueError):
    """Не хватает обязательных настроек или они некорректны."""


class ExtractionError(ExtractorError):
    """Невосстановимая ошибка конвейера извлечения."""


class FetchError(ExtractionError):
    """Не удалось получить документ или комментарии."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ExportRequestError(ExtractionError):
    """Пакетный запрос ссылок на экспорт завершился ошибкой."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class DownloadError(ExtractorError):
    """Не удалось скачать отрендеренное изображение одного узла."""


class SaveError(ExtractorError):
    """Не удалось записать файл одного узла на диск."""


class OptimizeError(ExtractorError):
    """Не удалось оптимизировать один файл."""
