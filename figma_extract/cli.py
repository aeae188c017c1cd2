# === FILE: figma_extract/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска экстрактора через командную строку.

Команды:
  extract   Извлечь компоненты из файла Figma и вывести/сохранить манифест
  config    Показать текущую конфигурацию (токен скрыт)

Общие опции:
  --config PATH       YAML/JSON-файл с параметрами (переопределяет окружение)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (только консоль, если не указан)
  --log-format FORMAT Формат логирования

Команда extract опции:
  --json PATH         Сохранить JSON-манифест в файл
  --html PATH         Сохранить HTML-галерею в файл
  --template DIR      Папка с Jinja2-шаблоном gallery.html.j2
  --pretty            Преформатировать JSON-вывод (отступ 2)
  --timeout SEC       Таймаут всего извлечения (секунд)
  --no-optimize       Не оптимизировать SVG

Обязательные переменные окружения (или .env): FIGMA_TOKEN, FIGMA_FILE, PUBLIC_PATH.

Пример:
  figma-extract --config icons.yaml extract --json public/icons.json --pretty
"""
import sys
import asyncio
import json
from pathlib import Path

import click

from figma_extract import __version__
from figma_extract.config import load_config
from figma_extract.errors import ExtractorError
from figma_extract.logger import init_logging
from figma_extract.engine import start_extraction
from figma_extract.report.json_report import render_json
from figma_extract.report.html_report import render_html

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='figma_extract, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу параметров YAML или JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (только консоль, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд figma_extract CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('extract', context_settings=CONTEXT_SETTINGS)
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-манифест в файл'
)
@click.option(
    '--html', '-h', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить HTML-галерею в файл'
)
@click.option(
    '--template', '-t', 'template_dir',
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Папка с Jinja2-шаблоном gallery.html.j2'
)
@click.option(
    '--pretty', is_flag=True,
    help='Преформатировать JSON-вывод (отступ 2)'
)
@click.option(
    '--timeout', 'run_timeout',
    type=float,
    default=None,
    help='Таймаут всего извлечения (секунд)'
)
@click.option(
    '--no-optimize', 'no_optimize', is_flag=True,
    help='Не оптимизировать SVG после извлечения'
)
@click.pass_context
def extract(ctx, json_output, html_output, template_dir, pretty, run_timeout, no_optimize):
    """Извлечь компоненты и сформировать манифест."""
    cfg = ctx.obj['config']
    if no_optimize:
        cfg = cfg.model_copy(update={'optimize': False})
    try:
        if run_timeout:
            assets = asyncio.run(
                asyncio.wait_for(start_extraction(cfg), timeout=run_timeout)
            )
        else:
            assets = asyncio.run(start_extraction(cfg))
    except asyncio.TimeoutError:
        print_error(f'Извлечение не завершено за {run_timeout} секунд')
    except ExtractorError as e:
        print_error(f'Ошибка при извлечении: {e}')
    except Exception as e:
        print_error(f'Непредвиденная ошибка: {e}')

    # Если не сохраняем в файл — печатаем в stdout
    if not json_output and not html_output:
        indent = 2 if pretty else None
        click.echo(json.dumps([a.to_dict() for a in assets], ensure_ascii=False, indent=indent))
        return

    if json_output:
        try:
            saved_json = render_json(assets, json_output, pretty=pretty)
            click.echo(f'JSON manifest: {saved_json}')
        except Exception as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    if html_output:
        try:
            saved_html = render_html(assets, template_dir, html_output)
            click.echo(f'HTML gallery: {saved_html}')
        except Exception as e:
            print_error(f'Ошибка при сохранении HTML: {e}')


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
