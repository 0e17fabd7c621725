#!/usr/bin/env python3
"""
Setup configuration for tidal-api
A Python client for the TIDAL developer API with OAuth2 (PKCE) support
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "requests>=2.31.0",
    "click>=8.1.7",
    "pyyaml>=6.0.1",
    "colorama>=0.4.6",
    "python-dotenv>=1.0.0",
]

setup(
    name="tidal-api",
    version="0.1.0",
    author="tidal-api Team",
    description="Client library for the TIDAL developer API: OAuth2/PKCE sessions and catalogue endpoints",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["tidal_api", "tidal_api.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    python_requires=">=3.10",
    install_requires=core_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "black>=23.11.0",
            "flake8>=6.1.0",
            "mypy>=1.7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "tidal-api=tidal_api.cli:main",
        ],
    },
    keywords="tidal music api oauth2 pkce client",
)
