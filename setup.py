#!/usr/bin/env python3
"""
Setup script for NetDisco Sync.

Cross-device reconciliation of NetDisco's diagnostic history, favorites,
network profiles and settings through a shared key-value store.
"""

from pathlib import Path
from setuptools import setup, find_packages

# Read version from version.py
version_info = {}
exec(Path("version.py").read_text(), version_info)

# Read long description from README
readme_path = Path("README.md")
long_description = readme_path.read_text() if readme_path.exists() else ""

# Read requirements
requirements_path = Path("requirements.txt")
requirements = []
if requirements_path.exists():
    requirements = [
        line.strip()
        for line in requirements_path.read_text().split("\n")
        if line.strip() and not line.startswith("#")
    ]

setup(
    name="netdisco-sync",
    version=version_info.get("get_version", lambda: "0.0.0")(),
    author="nursedude",
    author_email="admin@noc.local",
    description="NetDisco Sync - cross-device state reconciliation",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["launcher", "version"],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "flask>=2.3.0",
        ],
        "web": [
            "flask>=2.3.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "netdisco-sync=launcher:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Networking :: Monitoring",
    ],
    keywords="netdisco, sync, network diagnostics, reconciliation, merge",
    license="GPL-3.0",
    include_package_data=True,
    zip_safe=False,
)
