#!/usr/bin/env python

from setuptools import setup, find_packages

with open("README.md", "r") as fh:
    long_description = fh.read()

setup(
    name="hiplog",
    version="0.1.0",
    description="HyperLogLog cardinality estimation with historic inverse probability (HIP) estimates",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.8',
    install_requires=[
        "numpy",
        "xxhash>=2.0.0",
    ],
    extras_require={
        'dev': [
            'pytest>=7.0.0',
            'black>=22.0.0',
            'isort>=5.0.0',
            'mypy>=0.900',
        ],
    },
    entry_points={
        'console_scripts': [
            'hiplog=hiplog.hiplog:main',
        ],
    },
)
