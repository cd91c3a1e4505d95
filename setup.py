"""Setup script for the logscope package."""

from setuptools import setup, find_packages

setup(
    name="logscope",
    version="0.1.0",
    packages=find_packages(include=["logscope", "logscope.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.110",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "structlog>=23.1",
        "prometheus-client>=0.19",
        "uvicorn>=0.27",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
            "httpx>=0.26",
        ],
    },
    description="logscope - analysis task orchestration for pluggable log analysis agents",
    author="logscope Team",
)
