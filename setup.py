# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

from setuptools import setup, find_packages

setup(
    name="testx",
    version="0.1.0",
    description="Setup-injected tests for pytest, expanded ahead of time",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(include=["testx", "testx.*"]),
    package_data={
        "testx": ["templates/*.j2"],
    },
    install_requires=[
        "click>=8.1",
        "jinja2>=3.1",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "pyyaml>=6.0",
        "rich>=13.0",
        "tree-sitter==0.24.0",
        "tree-sitter-python>=0.23.0,<0.24",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
        ],
    },
    classifiers=[
        "Development Status :: 2 - Pre-Alpha",
        "Programming Language :: Python",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
    ],
    license="MIT",
    entry_points={
        'console_scripts': [
            'testx=testx.cli.cli:main',
        ],
    },
    python_requires=">=3.10",
)
