"""
Setup script for the Carbon Credit Registry
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="carbon-registry",
    version="1.0.0",
    description="A single-ledger registry for carbon credits and climate project funding",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["carbon_registry", "carbon_registry.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Framework :: FastAPI",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.4", "httpx>=0.26"],
    },
    entry_points={
        "console_scripts": [
            "carbon-registry-api=carbon_registry.main:main",
        ],
    },
)
