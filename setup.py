"""
Setup script for hypeos-engine.

The HypeOS engine drives the gamified task feature of the HypeOS
entrepreneurship coach. It serves three roles:

1. Adaptive Scoring - Points and difficulty that follow user performance
2. Spaced Repetition - SM-2 review scheduling with skill decay
3. Review Queue - A prioritized daily list of skills to practice

The 'hypeos' command is the terminal entry point.
"""

from setuptools import find_packages, setup

setup(
    name="hypeos-engine",
    version="0.3.0",
    description="Adaptive difficulty and spaced repetition engine for gamified tasks",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="HypeOS",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "hypeos=hypeos.cli.main:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
    ],
    keywords="gamification spaced-repetition sm2 adaptive-difficulty cli",
)
