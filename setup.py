#!/usr/bin/env python3

"""
Setup configuration for the story_pipeline package.

Three-stage content pipeline:
- Crawl: headless browser fetching with an append-only fetch ledger
- Ingest: HTML to Markdown extraction and idempotent SQLite insertion
- Export: paginated, denormalized JSON feed
"""

from setuptools import find_packages, setup

setup(
    name="story_pipeline",
    version="0.1.0",
    description="Crawl, ingest and export a story feed",
    package_dir={"": "lib"},
    packages=find_packages(where="lib"),
    python_requires=">=3.11",
    install_requires=[
        # Fetching
        "playwright>=1.40.0",
        # Extraction
        "beautifulsoup4>=4.12.0",
        "markdownify>=0.13.0",
        "lxml>=5.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "story-pipeline=story_pipeline.cli:main",
        ],
    },
    author="Development Team",
    license="MIT-0",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
)
