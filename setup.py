# SPDX-License-Identifier: FSFAP
# Copyright (C) 2025 The Gradeflow Developers
#
# Copying and distribution of this file, with or without modification,
# are permitted in any medium without royalty provided the copyright
# notice and this notice are preserved.  This file is offered as-is,
# without any warranty.

import os
from setuptools import setup, find_packages

# This directory
dir_setup = os.path.dirname(os.path.realpath(__file__))

with open(os.path.join(dir_setup, "README.md"), encoding="utf-8") as f:
    long_description = f.read()

with open(os.path.join(dir_setup, "gradeflow", "version.py")) as f:
    # Defines __version__
    exec(f.read())

install_requires = [
    "aiohttp>=3.7.2",
    "arrow>=1.1.1",
    "passlib",
    "peewee>=3.13.3",
    "PyMySQL>=1.0.2",
    'tomli>=2.0.1 ; python_version<"3.11"',  # until we drop 3.10
    "tomlkit>=0.11.4",
]

test_requires = [
    "pytest",
]


setup(
    name="gradeflow",
    version=__version__,  # noqa: F821
    description="Gradeflow coordinates the grading of multi-question exams",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="The Gradeflow Developers",
    license="AGPLv3+",
    python_requires=">=3.9",
    packages=find_packages(include=["gradeflow", "gradeflow.*"]),
    package_data={"gradeflow": ["*.toml"]},
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: GNU Affero General Public License v3 or later (AGPLv3+)",
        "Development Status :: 3 - Alpha",
        "Operating System :: OS Independent",
        "Topic :: Education :: Testing",
    ],
    entry_points={
        "console_scripts": [
            "gradeflow-server=gradeflow.server.__main__:main",
        ],
    },
    include_package_data=True,
    install_requires=install_requires,
    extras_require={"test": test_requires},
)
