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
"""Low precision position of the sun.

Based on the WMO Guide to Meteorological Instruments and Methods of
Observation, Annex 7.D, which cites Michalsky (1988).  All time
arguments are Julian dates relative to J2000.0 (2000-01-01 12:00 UTC),
see :meth:`msevi.readers.eum_base.CdsTime.to_jday`.
"""

import numpy as np


def mean_longitude(jd):
    """Get the mean longitude of the sun in degrees."""
    return np.mod(280.460 + 0.9856474 * jd, 360.0)


def mean_anomaly(jd):
    """Get the mean anomaly of the sun in degrees."""
    return np.mod(357.528 + 0.9856003 * jd, 360.0)


def gmst(jd):
    """Get the Greenwich mean sidereal time in hours."""
    hh = np.fmod(jd - 0.5, 1.0) * 24.0
    return 6.697375 + 0.0657098242 * jd + hh


def declination_ra(jd):
    """Get declination and right ascension of the sun in radians.

    The right ascension is in [0, 2*pi).
    """
    mnlon = mean_longitude(jd)
    mnanom = np.deg2rad(mean_anomaly(jd))

    # ecliptic longitude and obliquity of the ecliptic
    eclon = np.deg2rad(mnlon + np.sin(mnanom) * (1.915 + 0.040 * np.cos(mnanom)))
    oblqec = np.deg2rad(23.439 - 0.0000004 * jd)

    sin_eclon = np.sin(eclon)
    dec = np.arcsin(np.sin(oblqec) * sin_eclon)
    ra = np.mod(np.arctan2(np.cos(oblqec) * sin_eclon, np.cos(eclon)), 2.0 * np.pi)
    return dec, ra


def sun_angles(jd, lat, lon):
    """Get cosine of the solar zenith angle and the solar azimuth angle.

    Args:
        jd: Julian date relative to J2000.0, scalar or broadcastable to *lat*
        lat: latitude in degrees north
        lon: longitude in degrees east

    Returns:
        cosine of the solar zenith angle and solar azimuth angle in degrees
        clockwise from north, in [0, 360).
    """
    jd = np.asanyarray(jd, dtype=np.float64)
    dec, ra = declination_ra(jd)
    sin_dec, cos_dec = np.sin(dec), np.cos(dec)

    lat = np.deg2rad(np.asanyarray(lat, dtype=np.float64))
    lon = np.deg2rad(np.asanyarray(lon, dtype=np.float64))
    sin_lat = np.sin(lat)

    # local hour angle
    ha = np.deg2rad(gmst(jd) * 15.0) - ra + lon
    sin_ha = np.sin(ha)

    mu0 = sin_dec * sin_lat + cos_dec * np.cos(lat) * np.cos(ha)
    with np.errstate(invalid='ignore', divide='ignore'):
        azi = np.arcsin(np.clip(-cos_dec * sin_ha / np.sqrt(1.0 - mu0 ** 2), -1.0, 1.0))
    azi = np.where(sin_dec >= mu0 * sin_lat,
                   np.where(azi < 0.0, azi + 2.0 * np.pi, azi),
                   np.pi - azi)
    return mu0, np.rad2deg(azi)


def get_sun_angles_for_lines(line_jd, lat, lon):
    """Get solar cosine zenith and azimuth for an image with one time per line.

    *line_jd* holds the Julian date of each of the image rows, NaN for rows
    without a valid acquisition time; those rows are NaN in the output.
    """
    line_jd = np.asanyarray(line_jd, dtype=np.float64)[:, np.newaxis]
    return sun_angles(line_jd, lat, lon)


def earth_sun_distance(jd):
    """Get the distance between earth and sun in astronomical units."""
    g = np.deg2rad(mean_anomaly(jd))
    return 1.00014 - 0.01671 * np.cos(g) + 0.00014 * np.cos(2.0 * g)
