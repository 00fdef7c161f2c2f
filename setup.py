#!/usr/bin/python
# -*- encoding: utf-8 -*-
import ast
import re

from setuptools import find_packages
from setuptools import setup

## The version number is kept in one place only, as
## aadgraph.__version__, and parsed out of the source here.
_version_re = re.compile(r"__version__\s+=\s+(.*)")
with open("aadgraph/__init__.py", "rb") as f:
    version = str(
        ast.literal_eval(_version_re.search(f.read().decode("utf-8")).group(1))
    )

if __name__ == "__main__":
    test_packages = [
        "pytest",
        "pytest-coverage",
        "coverage",
    ]

    setup(
        name="aadgraph",
        version=version,
        description="Client library for the Azure Active Directory Graph API",
        long_description=open("README.md").read(),
        long_description_content_type="text/markdown",
        classifiers=[
            "Development Status :: 4 - Beta",
            "Intended Audience :: Developers",
            "Intended Audience :: System Administrators",
            "License :: OSI Approved :: Apache Software License",
            "Operating System :: OS Independent",
            "Programming Language :: Python",
            "Programming Language :: Python :: 3",
            "Topic :: System :: Systems Administration :: Authentication/Directory",
            "Topic :: Software Development :: Libraries " ":: Python Modules",
        ],
        keywords="azure active-directory graph odata directory",
        license="Apache-2.0",
        python_requires=">=3.10",
        packages=find_packages(exclude=["tests", "tests.*"]),
        include_package_data=True,
        zip_safe=False,
        install_requires=[
            "requests",
            "typing_extensions",
        ],
        extras_require={
            "test": test_packages,
            "yaml": ["PyYAML"],
        },
    )
