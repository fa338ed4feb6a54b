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
"""Tests of the orbit polynomial evaluation."""

from datetime import datetime, timedelta

import numpy as np
import pytest

from msevi.orbit import chebyshev, find_orbit_window, get_satellite_lonlat, get_satellite_position

START = datetime(2019, 3, 1, 6)
EMPTY = datetime(1958, 1, 1)


def make_orbit(windows):
    """Make a decoded orbit polynomial from (start, end, x, y, z) windows, padded to 100."""
    windows = list(windows) + [(EMPTY, EMPTY, [0] * 8, [0] * 8, [0] * 8)] * (100 - len(windows))
    return {'StartTime': np.array([win[0] for win in windows]),
            'EndTime': np.array([win[1] for win in windows]),
            'X': np.array([win[2] for win in windows], dtype=float),
            'Y': np.array([win[3] for win in windows], dtype=float),
            'Z': np.array([win[4] for win in windows], dtype=float)}


def coefs(*values):
    """Pad Chebyshev coefficients to 8 terms."""
    return list(values) + [0.0] * (8 - len(values))


class TestChebyshev:
    """Test the Chebyshev series."""

    def test_constant_term_halved(self):
        """Test the first coefficient counts half."""
        assert chebyshev(coefs(2.0), 0.0, 10.0, 3.0) == pytest.approx(1.0)

    def test_linear(self):
        """Test the linear term over the window."""
        assert chebyshev(coefs(0.0, 4.0), 0.0, 10.0, 0.0) == pytest.approx(-4.0)
        assert chebyshev(coefs(0.0, 4.0), 0.0, 10.0, 5.0) == pytest.approx(0.0)
        assert chebyshev(coefs(0.0, 4.0), 0.0, 10.0, 10.0) == pytest.approx(4.0)

    def test_quadratic(self):
        """Test the quadratic term, T2(t) = 2t^2 - 1."""
        assert chebyshev(coefs(0.0, 0.0, 1.0), -1.0, 1.0, 0.5) == pytest.approx(-0.5)


class TestSatellitePosition:
    """Test the satellite position."""

    def setup_method(self):
        """Set up two consecutive windows."""
        self.orbit = make_orbit([
            (START, START + timedelta(hours=6),
             coefs(2 * 42164.0, 10.0), coefs(0.0), coefs(0.0, -5.0)),
            (START + timedelta(hours=6), START + timedelta(hours=12),
             coefs(2 * 42164.0), coefs(2 * 100.0), coefs(0.0)),
        ])

    def test_window(self):
        """Test selecting the window containing the time."""
        assert find_orbit_window(self.orbit, START) == 0
        assert find_orbit_window(self.orbit, START + timedelta(hours=7)) == 1
        with pytest.raises(ValueError):
            find_orbit_window(self.orbit, START - timedelta(minutes=1))
        with pytest.raises(ValueError):
            find_orbit_window(self.orbit, START + timedelta(hours=12))

    def test_position(self):
        """Test the position at the window midpoint and in the second window."""
        pos = get_satellite_position(self.orbit, START + timedelta(hours=3))
        np.testing.assert_allclose(pos, [42164.0, 0.0, 0.0])
        pos = get_satellite_position(self.orbit, START)
        np.testing.assert_allclose(pos, [42154.0, 0.0, 5.0])
        pos = get_satellite_position(self.orbit, START + timedelta(hours=8))
        np.testing.assert_allclose(pos, [42164.0, 100.0, 0.0])

    def test_lonlat(self):
        """Test the longitude and latitude of the satellite."""
        lon, lat, dist = get_satellite_lonlat(self.orbit, START + timedelta(hours=8))
        assert lon == pytest.approx(np.rad2deg(np.arctan2(100.0, 42164.0)))
        assert lat == pytest.approx(0.0)
        assert dist == pytest.approx(np.hypot(42164.0, 100.0))
