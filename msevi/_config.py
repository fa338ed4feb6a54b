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
"""Msevi configuration directory and file handling."""

import logging
import os
import sys
import tempfile
from collections import OrderedDict

import appdirs
from donfig import Config

LOG = logging.getLogger(__name__)

BASE_PATH = os.path.dirname(os.path.realpath(__file__))
PACKAGE_CONFIG_PATH = os.path.join(BASE_PATH, 'etc')

_msevi_dirs = appdirs.AppDirs(appname='msevi', appauthor='msevi')
_CONFIG_DEFAULTS = {
    'tmp_dir': tempfile.gettempdir(),
    'config_path': [],
    'xrit_decompress_path': os.getenv('XRIT_DECOMPRESS_PATH', None),
    'parallel_segments': False,
    'fill_value': 0,
}

# Configuration values will be loaded from files at:
# 1. The builtin package msevi.yaml (not present currently)
# 2. $MSEVI_ROOT_CONFIG (default: /etc/msevi/msevi.yaml)
# 3. <python-env-prefix>/etc/msevi/msevi.yaml
# 4. ~/.config/msevi/msevi.yaml
# 5. $MSEVI_CONFIG_PATH/msevi.yaml if present (colon separated)
_CONFIG_PATHS = [
    os.path.join(PACKAGE_CONFIG_PATH, 'msevi.yaml'),
    os.getenv('MSEVI_ROOT_CONFIG', os.path.join('/etc', 'msevi', 'msevi.yaml')),
    os.path.join(sys.prefix, 'etc', 'msevi', 'msevi.yaml'),
    os.path.join(_msevi_dirs.user_config_dir, 'msevi.yaml'),
]

_msevi_config_path = os.getenv('MSEVI_CONFIG_PATH', None)
if _msevi_config_path is not None:
    # colon-separated are ordered by custom -> builtins
    for config_dir in _msevi_config_path.split(os.pathsep):
        _CONFIG_PATHS.append(os.path.join(config_dir, 'msevi.yaml'))

config = Config("msevi", defaults=[_CONFIG_DEFAULTS], paths=_CONFIG_PATHS)


def get_config_path_safe():
    """Get 'config_path' and check for proper 'list' type."""
    config_path = config.get('config_path')
    if not isinstance(config_path, list):
        raise ValueError("Msevi config option 'config_path' must be a "
                         "list, not '{}'".format(type(config_path)))
    return config_path


def config_search_paths(filename, search_dirs=None, **kwargs):
    """Get series of configuration base paths where msevi tables are located.

    The returned list is ordered from lowest to highest priority, i.e. the
    builtin package file comes first.
    """
    if search_dirs is None:
        search_dirs = get_config_path_safe()[::-1]

    paths = [os.path.join(search_dir, filename) for search_dir in search_dirs]
    paths += [os.path.join(PACKAGE_CONFIG_PATH, filename)]
    paths = [os.path.abspath(path) for path in paths]

    if kwargs.get("check_exists", True):
        paths = [x for x in paths if os.path.isfile(x)]

    paths = list(OrderedDict.fromkeys(paths))
    # flip the order of the list so builtins are loaded first
    return paths[::-1]


def get_config_path(filename):
    """Get the path to the highest priority version of a config file."""
    paths = config_search_paths(filename)
    for path in paths[::-1]:
        if os.path.exists(path):
            return path
    raise FileNotFoundError("Could not find file in configuration path: "
                            "'{}'".format(filename))
