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
"""Channel catalogue, satellite channel constants and region tables.

The channel constants and regions are read from the ``satellites.yaml``
and ``regions.yaml`` tables of the package ``etc`` directory, extended by
files of the same name in the directories of the ``config_path`` option.
"""

import logging
import math
from typing import NamedTuple

from msevi._config import config_search_paths
from msevi.image import Coverage
from msevi.utils import load_yaml_tables

logger = logging.getLogger(__name__)

CHANNEL_NAMES = ('VIS006', 'VIS008', 'IR_016', 'IR_039', 'WV_062', 'WV_073',
                 'IR_087', 'IR_097', 'IR_108', 'IR_120', 'IR_134', 'HRV')
HRV_ID = 12

SATELLITES_TABLE = 'satellites.yaml'
REGIONS_TABLE = 'regions.yaml'


class UnknownSatelliteOrRegionError(KeyError):
    """The satellite, channel or region is not part of the tables."""


class ChannelInfo(NamedTuple):
    """Constants of one channel of one satellite."""

    name: str
    id: int
    f0: float
    nu_c: float
    lambda_c: float
    alpha: float
    beta: float


def channel_name(chan_id):
    """Get the name of channel *chan_id* (1 to 12)."""
    if not 1 <= chan_id <= len(CHANNEL_NAMES):
        raise ValueError("Invalid channel id {}".format(chan_id))
    return CHANNEL_NAMES[chan_id - 1]


def channel_id(code):
    """Get the id of the channel whose name starts *code*, case insensitive.

    Filenames pad the channel name with underscores, e.g. ``HRV___``.

    Returns:
        the channel id, or None if *code* names no channel.
    """
    code = code.upper()
    for chan_id, name in enumerate(CHANNEL_NAMES, start=1):
        if code.startswith(name):
            return chan_id
    return None


def load_table(filename):
    """Load the merged table *filename* from all configuration directories."""
    return load_yaml_tables(config_search_paths(filename))


def get_satellite_info(sat_id):
    """Get the table entry of satellite *sat_id*."""
    satellites = load_table(SATELLITES_TABLE).get('satellites', {})
    try:
        return satellites[int(sat_id)]
    except KeyError:
        raise UnknownSatelliteOrRegionError("Unknown satellite id {}".format(sat_id))


def get_channel_info(sat_id, channel):
    """Get the :class:`ChannelInfo` of *channel* (name or id) on satellite *sat_id*."""
    if isinstance(channel, str):
        name = channel.upper()
    else:
        name = channel_name(channel)
    channels = get_satellite_info(sat_id).get('channels', {})
    try:
        entry = channels[name]
    except KeyError:
        raise UnknownSatelliteOrRegionError("Unknown channel {} of satellite {}".format(name, sat_id))
    return ChannelInfo(name=name,
                       id=int(entry.get('id', CHANNEL_NAMES.index(name) + 1)),
                       f0=_number(entry, 'f0', 0.0),
                       nu_c=_number(entry, 'nu_c', 0.0),
                       lambda_c=_number(entry, 'lambda_c', math.nan),
                       alpha=_number(entry, 'alpha', math.nan),
                       beta=_number(entry, 'beta', math.nan))


def _number(entry, key, default):
    value = entry.get(key)
    return default if value is None else float(value)


def get_region(service, name):
    """Get the VIS/IR coverage of region *name* of *service*."""
    regions = load_table(REGIONS_TABLE).get('regions', {})
    try:
        region = regions[service.lower()][name]
    except KeyError:
        raise UnknownSatelliteOrRegionError("Unknown region {} of service {}".format(name, service))
    return Coverage.from_region(int(region['lin0']), int(region['col0']),
                                int(region['nlin']), int(region['ncol']))
