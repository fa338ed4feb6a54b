#!/usr/bin/env python
# -*- coding: utf-8 -*-
# Copyright (c) 2023 msevi developers
#
# This file is part of msevi.
#
# msevi is free software: you can redistribute it and/or modify it under the
# terms of the GNU General Public License as published by the Free Software
# Foundation, either version 3 of the License, or (at your option) any later
# version.
#
# msevi is distributed in the hope that it will be useful, but WITHOUT ANY
# WARRANTY; without even the implied warranty of MERCHANTABILITY or FITNESS FOR
# A PARTICULAR PURPOSE.  See the GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License along with
# msevi.  If not, see <http://www.gnu.org/licenses/>.
"""Setup file for msevi."""

import os.path
import re

from setuptools import find_packages, setup

requires = ['numpy >=1.13', 'pyresample >=1.24.0', 'trollsift', 'pyyaml >=5.1',
            'xarray >=0.10.1, !=0.13.0', 'dask[array] >=0.17.1', 'pyproj>=2.2',
            'donfig', 'appdirs']

test_requires = ['pytest', 'pyorbital >= 1.3.1']

extras_require = {
    'tests': test_requires,
}
all_extras = []
for extra_deps in extras_require.values():
    all_extras.extend(extra_deps)
extras_require['all'] = list(set(all_extras))


def _get_version():
    """Get the version from msevi/version.py without importing the package."""
    pkg_root = os.path.realpath(os.path.dirname(__file__))
    with open(os.path.join(pkg_root, 'msevi', 'version.py'), 'r') as fid:
        match = re.search(r"^version = ['\"]([^'\"]+)['\"]", fid.read(), re.M)
    return match.group(1)


NAME = 'msevi'
with open('README.rst', 'r') as readme:
    README = readme.read()

setup(name=NAME,
      version=_get_version(),
      description='Decoding of Meteosat SEVIRI level 1.5 HRIT data',
      long_description=README,
      author='The msevi developers',
      classifiers=["Development Status :: 4 - Beta",
                   "Intended Audience :: Science/Research",
                   "License :: OSI Approved :: GNU General Public License v3 " +
                   "or later (GPLv3+)",
                   "Operating System :: OS Independent",
                   "Programming Language :: Python",
                   "Topic :: Scientific/Engineering"],
      packages=find_packages(),
      # Always use forward '/', even on Windows
      package_data={'msevi': ['etc/*.yaml']},
      zip_safe=False,
      install_requires=requires,
      python_requires='>=3.8',
      extras_require=extras_require,
      )
