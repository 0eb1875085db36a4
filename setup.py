#!/usr/bin/env python3
"""
Setup script for Quiz Battle Bot
"""

from setuptools import setup
from pathlib import Path

# Read README if it exists
this_directory = Path(__file__).parent
readme_path = this_directory / "README.md"
long_description = ""
if readme_path.exists():
    long_description = readme_path.read_text(encoding='utf-8')

setup(
    name="quiz-battle-bot",
    version="1.0.0",
    author="Quiz Battle Bot Team",
    author_email="",
    description="Telegram bot for timed multiplayer trivia battles in group chats",
    long_description=long_description,
    long_description_content_type="text/markdown",
    py_modules=["bot", "app_config", "state", "utils"],
    packages=["modules", "handlers"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=[
        "python-telegram-bot>=20.0",
        "python-dotenv>=0.19.0",
        "APScheduler>=3.9.0,<4",
        "pytz>=2022.1",
        "aiofiles>=0.23.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "black>=22.0.0",
            "flake8>=4.0.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "quiz-battle-bot=bot:run",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
