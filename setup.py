#!/usr/bin/env python
"""Setup script for SeqLedger - Entry sequencing for transparency logs."""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

# Core dependencies
core_deps = [
    "pydantic>=2.0.0",
    "cryptography>=41.0.0",
]

extras_require = {
    # Development dependencies
    "dev": [
        "pytest>=7.4.0",
        "pytest-cov>=4.1.0",
        "pytest-mock>=3.11.0",
        "hypothesis>=6.0",
        "black>=23.7.0",
        "isort>=5.12.0",
        "flake8>=6.1.0",
        "mypy>=1.5.0",
    ],

    # Testing dependencies
    "test": [
        "pytest>=7.4.0",
        "pytest-cov>=4.1.0",
        "pytest-mock>=3.11.0",
        "hypothesis>=6.0",
    ],
}

setup(
    name="seqledger",
    version="1.0.0",
    description="Sequence entries into a file-backed, tamper-evident transparency log",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*", "docs"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Security :: Cryptography",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: POSIX",
    ],
    keywords="transparency log sequencing append-only checkpoint merkle",
    python_requires=">=3.11",
    install_requires=core_deps,
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "seqledger=seqledger.cli:main",
        ],
    },
    zip_safe=False,
)
