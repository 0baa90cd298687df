#!/usr/bin/env python
# SPDX-License-Identifier: BSD-3-Clause OR Apache-2.0

import setuptools

with open('README.md', 'r') as file:
    long_description = file.read()

setuptools.setup(
    name='archipel-bundle',
    version='0.1.0',
    author='Archipel Network',
    description='Send and receive single bundles with archipel/ud3tn',
    long_description=long_description,
    long_description_content_type='text/markdown',
    url='https://github.com/archipel-network/archipel-core',
    packages=[
        'archipel_bundle',
    ],
    install_requires=['ud3tn-utils==0.12.0'],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'archipel-bundle=archipel_bundle.cli:main',
        ],
    },
    python_requires='>=3.6',
)
