#!/usr/bin/python3

import os
import re

from setuptools import setup

# importing the package would need its dependencies installed already
with open(os.path.join(os.path.dirname(os.path.abspath(__file__)),
                       'disktelemetry', 'version.py'), encoding='utf-8') as f:
    version = re.search(r"^version = '([^']+)'", f.read(), re.M).group(1)


setup(
    name = 'disktelemetry',
    version = version,
    description = 'Decode racing disk telemetry (.ibt) into laps, sector times and track maps',
    license = 'MIT',
    packages = ['disktelemetry'],
    python_requires = '>=3.10',
    install_requires = [
        'numpy',
        'PyYAML',
        'dacite',
    ],
    extras_require = {
        'test': ['pytest'],
    },
    entry_points = {
        'console_scripts': ['disktelemetry = disktelemetry.cli:main'],
    },
    include_package_data=False,
)
