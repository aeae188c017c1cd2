# setup.py
from setuptools import setup, find_packages

setup(
    name="figma_extract",
    version="0.1.0",
    description="Асинхронный экстрактор SVG-компонентов из Figma",
    packages=find_packages(exclude=("tests", "tests.*")),
    package_data={"figma_extract": ["templates/*.j2"]},
    install_requires=[
        "aiohttp>=3.10",
        "click>=8.1",
        "jinja2>=3.1",
        "lxml>=5.0",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "figma-extract=figma_extract.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
