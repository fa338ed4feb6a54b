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
"""Geostationary projection.

Scan angles of a geostationary imager are converted to geodetic latitude
and longitude by intersecting the viewing ray with the earth ellipsoid,
and geodetic positions to the zenith and azimuth angles under which the
satellite is seen.

Reference: LRIT/HRIT Global Specification (CGMS 03, Issue 2.6), section
4.4 "Normalized Geostationary Projection".
"""

import logging
from typing import NamedTuple

import numpy as np
from pyresample import geometry

from msevi.image import HRV_CHANNEL

logger = logging.getLogger(__name__)

# distance satellite - earth centre, equatorial and polar radius [km]
SATELLITE_DISTANCE = 42164.0
EQUATORIAL_RADIUS = 6378.169
POLAR_RADIUS = 6356.5838

# scaling factors and offsets of the VIS/IR reference grid
VISIR_CFAC = 13642337
VISIR_LFAC = 13642337
VISIR_COFF = 1856
VISIR_LOFF = 1856
HRV_CFAC = 3 * VISIR_CFAC
HRV_LFAC = 3 * VISIR_LFAC
HRV_COFF = 5566
HRV_LOFF = 5566


class GeosParam(NamedTuple):
    """Constants of the geostationary projection of one scene.

    ``c1`` to ``c4`` are derived from the satellite distance ``h`` and the
    radii ``a`` and ``b``; ``x0``, ``y0`` are the scan angles of the first
    column and row and ``dx``, ``dy`` the steps between columns and rows, in
    radians.
    """

    h: float
    a: float
    b: float
    c1: float
    c2: float
    c3: float
    c4: float
    proj_ss_lon: float
    true_ss_lon: float
    x0: float
    y0: float
    dx: float
    dy: float


def geos_init(x0, y0, dx, dy, a=EQUATORIAL_RADIUS, b=POLAR_RADIUS, h=SATELLITE_DISTANCE,
              proj_ss_lon=0.0, true_ss_lon=0.0):
    """Set up the projection constants for the given scan angle grid."""
    return GeosParam(h=h, a=a, b=b,
                     c1=(a / b) ** 2,
                     c2=1.0 - (b / a) ** 2,
                     c3=(b / a) ** 2,
                     c4=(a / h) ** 2,
                     proj_ss_lon=proj_ss_lon, true_ss_lon=true_ss_lon,
                     x0=x0, y0=y0, dx=dx, dy=dy)


def _grid_factors(channel):
    if channel == HRV_CHANNEL:
        return HRV_CFAC, HRV_LFAC, HRV_COFF, HRV_LOFF
    return VISIR_CFAC, VISIR_LFAC, VISIR_COFF, VISIR_LOFF


def geos_param_from_coverage(coverage, proj_ss_lon=0.0, true_ss_lon=0.0,
                             a=EQUATORIAL_RADIUS, b=POLAR_RADIUS, h=SATELLITE_DISTANCE):
    """Get the projection constants of an image assembled for *coverage*.

    Row 0 of the image is the northern line and column 0 the western
    column of the coverage.
    """
    cfac, lfac, coff, loff = _grid_factors(coverage.channel)
    x0 = -np.deg2rad((coverage.western_column - coff) * 2.0 ** 16 / cfac)
    dx = np.deg2rad(2.0 ** 16 / cfac)
    y0 = np.deg2rad((coverage.northern_line - loff) * 2.0 ** 16 / lfac)
    dy = -np.deg2rad(2.0 ** 16 / lfac)
    return geos_init(x0, y0, dx, dy, a=a, b=b, h=h,
                     proj_ss_lon=proj_ss_lon, true_ss_lon=true_ss_lon)


def scan_to_latlon(gp, ss_lon, row, col):
    """Get latitude and longitude in degrees of image positions *row*, *col*.

    Positions where the viewing ray misses the earth are NaN.  *row* and
    *col* may be scalars or broadcastable arrays.
    """
    vsa = gp.y0 + gp.dy * np.asanyarray(row, dtype=np.float64)
    hsa = gp.x0 + gp.dx * np.asanyarray(col, dtype=np.float64)
    sin_vsa, cos_vsa = np.sin(vsa), np.cos(vsa)
    sin_hsa, cos_hsa = np.sin(hsa), np.cos(hsa)

    # quadratic equation of the intersection with the ellipsoid
    c1 = 1.0 + (gp.c1 - 1.0) * sin_vsa ** 2
    p2 = cos_vsa * cos_hsa / c1
    q = (1.0 - gp.c4) / c1
    discr = p2 ** 2 - q
    invalid = discr < 0.0
    with np.errstate(invalid='ignore'):
        gd = p2 - np.sqrt(np.where(invalid, np.nan, discr))

    x = gp.h * (1.0 - gd * cos_hsa * cos_vsa)
    y = gp.h * gd * sin_hsa * cos_vsa
    z = gp.h * gd * sin_vsa

    rxy = np.hypot(x, y)
    lat = np.rad2deg(np.arctan(gp.c1 * z / rxy))
    lon = np.rad2deg(np.arctan(y / x)) + ss_lon
    return lat, lon


def get_latlon(gp, ss_lon, nlin, ncol):
    """Get latitude and longitude grids of a (nlin, ncol) image."""
    rows, cols = np.meshgrid(np.arange(nlin), np.arange(ncol), indexing='ij')
    return scan_to_latlon(gp, ss_lon, rows, cols)


def _mu_azi(lat1, lat2, dlon):
    """Get cosine zenith and azimuth of direction (*lat2*, *dlon*) seen from *lat1*, all in radians."""
    sin_lat1, cos_lat1 = np.sin(lat1), np.cos(lat1)
    sin_lat2, cos_lat2 = np.sin(lat2), np.cos(lat2)
    sin_dlon, cos_dlon = np.sin(dlon), np.cos(dlon)

    e = -cos_lat2 * sin_dlon
    n = -sin_lat1 * cos_lat2 * cos_dlon + cos_lat1 * sin_lat2
    mu = sin_lat1 * sin_lat2 + cos_lat1 * cos_lat2 * cos_dlon
    azi = np.mod(np.rad2deg(np.arctan2(e, n)), 360.0)
    return mu, azi


def satellite_angles(gp, ss_lon, lat, lon):
    """Get cosine of the zenith angle and the azimuth angle (degrees) of the satellite.

    Args:
        gp: projection constants
        ss_lon: true sub-satellite longitude in degrees
        lat, lon: geodetic position in degrees, NaN where invalid

    Returns:
        cosine of the satellite zenith angle and satellite azimuth angle
        (degrees clockwise from north in [0, 360)), NaN where the input
        position is invalid.
    """
    lat = np.deg2rad(np.asanyarray(lat, dtype=np.float64))
    dlon = np.deg2rad(np.asanyarray(lon, dtype=np.float64) - ss_lon)

    # earth centred coordinates of the observer, from the geocentric latitude
    clat = np.arctan(gp.c3 * np.tan(lat))
    sin_clat, cos_clat = np.sin(clat), np.cos(clat)
    re = gp.b / np.sqrt(1.0 - gp.c2 * cos_clat ** 2)
    x = re * cos_clat * np.cos(dlon)
    y = re * cos_clat * np.sin(dlon)
    z = re * sin_clat

    # direction to the satellite
    slat = np.arctan(-z / np.hypot(y, gp.h - x))
    slon = np.arctan(-y / (gp.h - x))
    return _mu_azi(lat, slat, dlon - slon)


def get_area_extent(coverage, h=SATELLITE_DISTANCE - EQUATORIAL_RADIUS):
    """Get the area extent in metres of an image assembled for *coverage*.

    The extent runs from the outer edges of the western and southern
    pixels to the outer edges of the eastern and northern pixels, so that
    column 0 is the western column and row 0 the northern line.
    """
    cfac, lfac, coff, loff = _grid_factors(coverage.channel)
    step_x = 2.0 ** 16 / cfac
    step_y = 2.0 ** 16 / lfac
    ll_x = -(coverage.western_column + 0.5 - coff) * step_x
    ur_x = -(coverage.eastern_column - 0.5 - coff) * step_x
    ll_y = (coverage.southern_line - 0.5 - loff) * step_y
    ur_y = (coverage.northern_line + 0.5 - loff) * step_y
    h_m = h * 1000.0
    return (np.deg2rad(ll_x) * h_m, np.deg2rad(ll_y) * h_m,
            np.deg2rad(ur_x) * h_m, np.deg2rad(ur_y) * h_m)


def get_area_def(coverage, ss_lon=0.0, a=EQUATORIAL_RADIUS, b=POLAR_RADIUS,
                 h=SATELLITE_DISTANCE, area_id=None):
    """Get a pyresample area definition of an image assembled for *coverage*."""
    altitude = h - a
    proj_dict = {'a': a * 1000.0,
                 'b': b * 1000.0,
                 'lon_0': float(ss_lon),
                 'h': altitude * 1000.0,
                 'proj': 'geos',
                 'units': 'm'}
    if area_id is None:
        area_id = 'seviri_{}_{}_{}_{}_{}'.format(coverage.channel, coverage.southern_line,
                                                  coverage.northern_line, coverage.eastern_column,
                                                  coverage.western_column)
    return geometry.AreaDefinition(
        area_id,
        'SEVIRI {} coverage'.format(coverage.channel),
        area_id,
        proj_dict,
        coverage.ncol,
        coverage.nlin,
        get_area_extent(coverage, altitude))
