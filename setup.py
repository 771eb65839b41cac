"""
Setup configuration for cadence package.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text() if (this_directory / "README.md").exists() else ""

setup(
    name="cadence-scheduler",
    version="0.1.0",
    description="Run callables at fixed intervals described by @every / @daily expressions",
    long_description=long_description,
    long_description_content_type="text/markdown",

    # Package discovery
    packages=find_packages(include=["cadence", "cadence.*"]),

    # Dependencies
    install_requires=[
        "APScheduler>=3.10,<4",
        "python-dotenv>=1.0.0",
    ],

    # Optional dependencies
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
        ],
    },

    # Python version requirement
    python_requires=">=3.8",

    # CLI entry points
    entry_points={
        "console_scripts": [
            "cadence=cadence.cli:main",
        ],
    },

    # Classification
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],

    # Keywords
    keywords="scheduler interval recurring tasks timer",
)
