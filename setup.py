"""
Setup script for curioloop.

CurioLoop is a terminal adaptive-learning client. It serves three roles:

1. Diagnose - a short quiz calibrates what the learner already knows
2. Plan - a generated chapter curriculum, unlocked one chapter at a time
3. Adapt - chapter quizzes feed back into scores, streaks and XP

The 'curioloop' command is the only entry point.
"""

from setuptools import find_packages, setup

setup(
    name="curioloop",
    version="0.1.0",
    description="Adaptive learning paths generated with Gemini, studied in your terminal",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="CurioLoop",
    packages=find_packages(include=["curioloop", "curioloop.*"]),
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.7.0",
        # Config & Validation
        "pydantic>=2.5.0",
        "pydantic-settings>=2.0.0",
        # Generation
        "google-generativeai>=0.8.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "curioloop=curioloop.cli.app:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning adaptive curriculum cli education gemini",
)
