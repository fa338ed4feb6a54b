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
"""Satellite position from the orbit polynomials of the prologue.

The prologue holds up to 100 sets of Chebyshev coefficients, each valid
for a time window.  Within a window the position is::

    sum(c[k] * T_k(t)) - c[0] / 2

with ``t`` the time mapped linearly from the window to [-1, 1].
"""

import logging
from datetime import datetime

import numpy as np

logger = logging.getLogger(__name__)


def chebyshev(coefs, start, end, time):
    """Evaluate the Chebyshev series *coefs* at *time* of the window [*start*, *end*]."""
    tnorm = (2.0 * time - start - end) / (end - start)
    return np.polynomial.chebyshev.chebval(tnorm, coefs) - 0.5 * coefs[0]


def _to_seconds(time):
    return (time - datetime(1970, 1, 1)).total_seconds()


def find_orbit_window(orbit_polynomial, time):
    """Get the index of the orbit polynomial valid at *time*.

    Raises:
        ValueError: if no window contains *time*.
    """
    starts = np.asarray(orbit_polynomial['StartTime'])
    ends = np.asarray(orbit_polynomial['EndTime'])
    valid = np.flatnonzero((starts <= time) & (time < ends))
    if valid.size == 0:
        raise ValueError("No orbit polynomial valid at {}".format(time))
    return int(valid[0])


def get_satellite_position(orbit_polynomial, time):
    """Get the earth-centred position of the satellite at *time* in km.

    Args:
        orbit_polynomial: the decoded 'OrbitPolynomial' entry of the prologue
        time: datetime of interest

    Returns:
        array of x, y and z.
    """
    idx = find_orbit_window(orbit_polynomial, time)
    start = _to_seconds(orbit_polynomial['StartTime'][idx])
    end = _to_seconds(orbit_polynomial['EndTime'][idx])
    t = _to_seconds(time)
    position = np.array([chebyshev(orbit_polynomial[axis][idx], start, end, t)
                         for axis in ('X', 'Y', 'Z')])
    logger.debug("Satellite position at %s: %s km", time, position)
    return position


def get_satellite_lonlat(orbit_polynomial, time):
    """Get the geocentric longitude, latitude in degrees and the distance in km of the satellite."""
    x, y, z = get_satellite_position(orbit_polynomial, time)
    distance = np.sqrt(x ** 2 + y ** 2 + z ** 2)
    lon = np.rad2deg(np.arctan2(y, x))
    lat = np.rad2deg(np.arcsin(z / distance))
    return lon, lat, distance
