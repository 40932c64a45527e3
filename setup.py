#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""The setup script."""
import os
import re

from setuptools import find_packages, setup

HERE = os.path.dirname(os.path.abspath(__file__))


def get_version() -> str:
    filename: str = os.path.join(HERE, "dynamicrepo", "__init__.py")
    with open(filename) as fp:
        contents = fp.read()
    pattern = r"^__version__ = \"(.*?)\"$"
    return re.search(pattern, contents, re.MULTILINE).group(1)


def get_requirements(name: str) -> list:
    requirements: list = []
    with open(os.path.join(HERE, "requirements", name)) as fp:
        for line in fp.read().splitlines():
            line = line.strip()
            if line and not line.startswith(("#", "-r")):
                requirements.append(line)
    return requirements


# Package meta-data.
NAME = "dynamicrepo"
DESCRIPTION = "Dynamic query building repository over SQLAlchemy"
URL = "https://github.com/dynamicrepo/dynamicrepo"
PYTHON_REQUIRES = ">=3.9.0"
VERSION = get_version()
KEYWORDS = [
    "orm",
    "query builder",
    "repository",
    "sqlalchemy",
]
LICENSE = "MIT"
CLASSIFIERS = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Natural Language :: English",
    "Programming Language :: Python :: 3.9",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Programming Language :: Python :: Implementation :: CPython",
    "License :: OSI Approved :: MIT License",
    "Operating System :: OS Independent",
]
INSTALL_REQUIRES = get_requirements("base.txt")
TESTS_REQUIRE = get_requirements("test.txt")
EXTRAS_REQUIRE = {
    "postgres": get_requirements("postgres.txt"),
    "test": TESTS_REQUIRE,
}

PACKAGES = find_packages(include=["dynamicrepo"])

with open(os.path.join(HERE, "README.rst")) as fp:
    README = fp.read()

setup(
    name=NAME,
    license=LICENSE,
    classifiers=CLASSIFIERS,
    python_requires=PYTHON_REQUIRES,
    description=DESCRIPTION,
    long_description=README,
    long_description_content_type="text/x-rst",
    install_requires=INSTALL_REQUIRES,
    extras_require=EXTRAS_REQUIRE,
    include_package_data=True,
    keywords=KEYWORDS,
    packages=PACKAGES,
    test_suite="tests",
    tests_require=TESTS_REQUIRE,
    url=URL,
    version=VERSION,
    zip_safe=False,
)
