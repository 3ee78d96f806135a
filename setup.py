# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause

import os
import sys

from setuptools import find_packages, setup

if not sys.version_info[:2] >= (3, 9):
    sys.exit(
        f"modsolve is only meant for Python 3.9 and up. "
        f"current version: {sys.version_info.major}.{sys.version_info.minor}"
    )


# When executing setup.py, we need to be able to import ourselves, this
# means that we need to add the src directory to the sys.path.
src_dir = here = os.path.abspath(os.path.dirname(__file__))
sys.path.insert(0, src_dir)
import modsolve  # noqa: E402

long_description = """
modsolve resolves a set of requested packages, each with optional version,
flag and stanza constraints, into one consistent install plan: an exact
version for every package, its configured flags and enabled stanzas, and a
topologically ordered dependency graph.

The search is built lazily, validated incrementally, and explored depth first
with conflict-directed backjumping, so failures come with the set of decisions
that caused them.
"""
install_requires = [
    "boltons >=23.0.0",
    "frozendict >=2.3",
    "ruamel.yaml >=0.11.14",
    "tqdm >=4",
]

extras_require = {
    "test": [
        "pytest >=7",
    ],
}


setup(
    name=modsolve.__name__,
    version=modsolve.__version__,
    author=modsolve.__author__,
    author_email=modsolve.__email__,
    url=modsolve.__url__,
    license=modsolve.__license__,
    description=modsolve.__summary__,
    long_description=long_description,
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    packages=find_packages(exclude=("tests", "tests.*", "build", ".tox")),
    install_requires=install_requires,
    extras_require=extras_require,
    python_requires=">=3.9",
    zip_safe=False,
)
