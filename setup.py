"""
ScreenSense - Setup Configuration

Coordinate-based browser automation for AI agents: drive a Playwright browser
through mouse and keyboard input at screen coordinates located by a pluggable
vision model.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Core dependencies (DEFAULT installation)
core_deps = [
    # Configuration and response validation
    "pydantic>=2.11.9",
    # Vision backend HTTP client
    "aiohttp>=3.12.15",
    # Browser automation
    "playwright>=1.55.0",
]

# Test dependencies
test_deps = [
    "pytest>=8.4.1",
    "pytest-asyncio>=1.0.0",
    "pytest-mock>=3.14.1",
    "pytest-cov>=6.2.1",
]

# Development dependencies
dev_deps = test_deps + [
    # Code quality
    "black>=25.0.0",
    "flake8>=7.1.0",
    "mypy>=1.13.0",
]

setup(
    name="screensense",
    version="0.1.0",

    # Package description
    description="Coordinate-based browser automation with pluggable vision processors",
    long_description=long_description,
    long_description_content_type="text/markdown",

    # Package discovery
    packages=find_packages(where="src"),
    package_dir={"": "src"},

    # Python version requirement
    python_requires=">=3.11",

    # Dependencies
    install_requires=core_deps,

    # Optional dependencies (extras)
    extras_require={
        "test": test_deps,
        "dev": dev_deps,
    },

    # PyPI classifiers
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Programming Language :: Python :: 3 :: Only",
        "Topic :: Software Development :: Testing",
        "Topic :: Internet :: WWW/HTTP :: Browsers",
        "Framework :: AsyncIO",
    ],

    keywords=[
        "browser", "automation", "playwright", "computer-use",
        "vision", "claude", "anthropic", "agents",
    ],

    license="Apache-2.0",

    include_package_data=True,
    zip_safe=False,
)
