#!/usr/bin/env python3
"""almadeploy - Setup"""

from setuptools import setup, find_packages

with open("requirements.txt") as f:
    requirements = f.read().splitlines()

setup(
    name="almadeploy",
    version="1.0.0",
    description="Idempotent single-host provisioning of a Spring Boot + JavaScript stack on AlmaLinux",
    author="almadeploy maintainers",
    packages=find_packages(include=["almadeploy", "almadeploy.*"]),
    package_data={"almadeploy": ["stubs/*.j2"]},
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "almadeploy=almadeploy.main:main",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
