#!/usr/bin/env python3
"""
Setup script for devwatch
"""

from setuptools import setup, find_packages
import os
import sys

# Import the version without importing the package
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), 'devwatch'))
from __version__ import __version__

# Read README for long_description
def read_file(filename):
    with open(os.path.join(os.path.dirname(__file__), filename), encoding='utf-8') as f:
        return f.read()

setup(
    name='devwatch',
    version=__version__,
    description='Hotplug device discovery for Linux - a live, diffed view of udev devices',
    long_description=read_file('README.md'),
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=['tests', 'tests.*', 'docs']),
    python_requires='>=3.9',
    install_requires=[
        'pyudev',        # Enumeration and netlink monitoring of devices
        'evdev',         # Capability checks on /dev/input event nodes
    ],
    extras_require={
        'dev': [
            'pytest>=7.0',
            'pytest-cov',
            'pytest-timeout',
        ],
    },
    entry_points={
        'console_scripts': [
            'devwatch=devwatch.cli:main',
        ],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Topic :: System :: Hardware',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Programming Language :: Python :: 3.13',
        'Operating System :: POSIX :: Linux',
    ],
)
