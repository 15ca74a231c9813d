"""Setup script for APItome."""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="apitome",
    version="0.1.0",
    author="AJ Carter",
    author_email="ajcarter@example.com",
    description="Command-line client for chatting with API documentation",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/ajcarter/apitome",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.11",
    install_requires=[
        "click>=8.0",
        "httpx>=0.25",
        "pydantic>=2.0",
        "tqdm>=4.0",
        "tabulate>=0.8",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "pytest-cov>=4.0",
            "fastapi>=0.100",
            "black>=23.0",
            "ruff>=0.1",
            "mypy>=1.0",
        ],
        "docs": [
            "sphinx>=6.0",
            "pydata-sphinx-theme>=0.13",
            "sphinx-autodoc-typehints>=1.20",
        ],
    },
    entry_points={
        "console_scripts": [
            "apitome-ingest=apitome.cli.ingest:main",
            "apitome-add-urls=apitome.cli.ingest:add_urls",
            "apitome-ask=apitome.cli.ask:main",
            "apitome-sessions=apitome.cli.sessions:main",
            "apitome-status=apitome.cli.status:main",
        ],
    },
)
