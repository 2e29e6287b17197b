# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Setup file for prop_harness package.

Property-based testing engine with shrinking and isolated worker
processes.
"""

from setuptools import setup, find_packages

setup(
    name='prop_harness',
    version='1.0.0',
    packages=find_packages(exclude=['test', 'test.*', 'examples']),
    python_requires='>=3.9',
    install_requires=['structlog>=21.1'],
    extras_require={
        'test': ['pytest>=7.0', 'hypothesis>=6.0'],
    },
    zip_safe=True,
    author='John',
    author_email='john@example.com',
    maintainer='John',
    maintainer_email='john@example.com',
    description='Property-based testing with shrinking and isolated workers',
    license='Apache-2.0',
)
