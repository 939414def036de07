#!/usr/bin/env python3
"""
Setup script for Sitewright - static site builder.
"""

from setuptools import setup, find_packages

# Metadata and dependencies are defined in pyproject.toml

setup(
    packages=find_packages(exclude=['tests', 'tests.*']),
)
