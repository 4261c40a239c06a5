"""
Legacy setup.py for tools that don't support PEP 517 builds.
Package metadata and dependencies are in pyproject.toml.
"""

from setuptools import setup

setup()
