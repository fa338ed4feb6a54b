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
"""Scene of one SEVIRI repeat cycle.

Example usage::

    from datetime import datetime
    from msevi import Scene

    scn = Scene('/data/hrit', datetime(2019, 3, 1, 12), service='pzs')
    scn.load(['IR_108', 'VIS006'], region='eu')
    bt = scn.calibrate('IR_108', 'brightness_temperature')
    lat, lon = scn.get_latlon('eu')
    ds = scn.to_xarray_dataset(calibration='radiance')

"""

import logging

import numpy as np
import xarray as xr

from msevi import geos
from msevi.calibration import calibrate
from msevi.image import HRV_CHANNEL, VISIR_CHANNEL, Coverage, full_disk, visir_to_hrv
from msevi.orbit import get_satellite_position
from msevi.readers.eum_base import cds_to_jday
from msevi.readers.seviri_l15_hrit import (
    annotate_image,
    get_repeat_cycle_start,
    get_satellite_id,
    list_segments,
    read_epilogue,
    read_image,
    read_prologue,
)
from msevi.satinfo import HRV_ID, channel_id, channel_name, get_channel_info, get_region
from msevi.sunpos import get_sun_angles_for_lines

LOG = logging.getLogger(__name__)

LINE_COORDS = ('acq_days', 'acq_msec', 'line_validity', 'line_radiometric_quality',
               'line_geometric_quality')


class Scene:
    """The channels of one repeat cycle, with the prologue and epilogue they share.

    The prologue and epilogue files are read on creation, so a scene
    cannot be built without them.
    """

    def __init__(self, directory, time, service='pzs', decompressor=None):
        """Locate the files of the repeat cycle starting at *time* in *directory*.

        Args:
            directory (str): directory holding the HRIT files
            time (datetime): nominal start of the repeat cycle
            service (str): 'pzs' (full disk) or 'rss' (rapid scan)
            decompressor (callable): decompressor of compressed segments,
                see :func:`msevi.readers.seviri_l15_hrit.read_segment`.
        """
        self.service = service.lower()
        self.files = list_segments(directory, time, self.service)
        self.decompressor = decompressor
        self.prologue = read_prologue(self.files.prologue)
        self.epilogue = read_epilogue(self.files.epilogue)
        self.images = {}
        LOG.debug("Scene of satellite %d at %s", self.satellite_id, self.start_time)

    @property
    def satellite_id(self):
        """Id of the satellite."""
        return get_satellite_id(self.prologue)

    @property
    def start_time(self):
        """Start of the repeat cycle."""
        return get_repeat_cycle_start(self.prologue)

    @property
    def proj_ss_lon(self):
        """Longitude of the sub-satellite point of the projection."""
        return float(self.prologue['ImageDescription']['LongitudeOfSSP'])

    @property
    def nominal_ss_lon(self):
        """Nominal longitude of the satellite."""
        return float(self.prologue['SatelliteStatus']['SatelliteDefinition']['NominalLongitude'])

    @property
    def earth_model(self):
        """Get the equatorial and polar radius in km."""
        model = self.prologue['GeometricProcessing']['EarthModel']
        a = float(model['EquatorialRadius'])
        b = (float(model['NorthPolarRadius']) + float(model['SouthPolarRadius'])) / 2.0
        return a, b

    def __getitem__(self, key):
        if not isinstance(key, str):
            key = channel_name(key)
        return self.images[key.upper()]

    def __contains__(self, key):
        try:
            self[key]
        except (KeyError, ValueError):
            return False
        return True

    def keys(self):
        """Names of the loaded channels."""
        return self.images.keys()

    def get_coverage(self, region=None, channel=VISIR_CHANNEL):
        """Get the coverage of *region* on the grid of *channel*.

        *region* is a region name of the scene's service, a VIS/IR
        :class:`Coverage` or None for the full disk.
        """
        if region is None:
            coverage = full_disk()
        elif isinstance(region, Coverage):
            coverage = region
        else:
            coverage = get_region(self.service, region)
        if channel == HRV_CHANNEL and coverage.channel != HRV_CHANNEL:
            coverage = visir_to_hrv(coverage)
        return coverage

    def load(self, channels, region=None):
        """Read and annotate *channels* (names or ids) for *region*.

        Returns:
            dict of the loaded images by channel name.
        """
        if isinstance(channels, (str, int)):
            channels = [channels]
        loaded = {}
        for chan in channels:
            chid = channel_id(chan) if isinstance(chan, str) else int(chan)
            if chid is None:
                raise KeyError("Unknown channel {}".format(chan))
            name = channel_name(chid)
            grid = HRV_CHANNEL if chid == HRV_ID else VISIR_CHANNEL
            coverage = self.get_coverage(region, grid)
            files = self.files.segments(chid)
            if not files:
                LOG.warning("No segment files for channel %s", name)
            image = read_image(files, coverage, self.decompressor)
            image.channel_id = chid
            annotate_image(image, self.prologue, get_channel_info(self.satellite_id, chid))
            self.images[name] = image
            loaded[name] = image
        return loaded

    def calibrate(self, channel, calibration='radiance'):
        """Calibrate the loaded *channel*."""
        return calibrate(self[channel], calibration)

    def _coverage_of(self, region_or_image):
        if hasattr(region_or_image, 'coverage'):
            return region_or_image.coverage
        return self.get_coverage(region_or_image)

    def get_geos_param(self, region=None):
        """Get the projection constants of *region* (or of a loaded image)."""
        a, b = self.earth_model
        return geos.geos_param_from_coverage(self._coverage_of(region),
                                             proj_ss_lon=self.proj_ss_lon,
                                             true_ss_lon=self.nominal_ss_lon,
                                             a=a, b=b)

    def get_latlon(self, region=None):
        """Get latitude and longitude grids in degrees, NaN off the earth disk."""
        coverage = self._coverage_of(region)
        gp = self.get_geos_param(coverage)
        return geos.get_latlon(gp, self.proj_ss_lon, coverage.nlin, coverage.ncol)

    def get_area_def(self, region=None):
        """Get the pyresample area definition of *region*."""
        a, b = self.earth_model
        return geos.get_area_def(self._coverage_of(region), self.proj_ss_lon, a=a, b=b)

    def get_satellite_position(self, time=None):
        """Get the satellite position in km at *time*, the start of the repeat cycle by default."""
        orbit = self.prologue['SatelliteStatus']['Orbit']['OrbitPolynomial']
        return get_satellite_position(orbit, time or self.start_time)

    def get_satellite_angles(self, region=None, lat=None, lon=None):
        """Get satellite zenith and azimuth angles in degrees."""
        gp = self.get_geos_param(region)
        if lat is None or lon is None:
            lat, lon = self.get_latlon(region)
        mu, azi = geos.satellite_angles(gp, self.nominal_ss_lon, lat, lon)
        return _zenith(mu), azi

    def get_sun_angles(self, image, lat=None, lon=None):
        """Get solar zenith and azimuth angles in degrees of the loaded *image*.

        The acquisition time of every row is used; rows without one are NaN.
        """
        if not hasattr(image, 'line_info'):
            image = self[image]
        if lat is None or lon is None:
            lat, lon = self.get_latlon(image)
        times = image.line_info['acquisition_time']
        line_jd = cds_to_jday(times['days'], times['msec'])
        mu0, azi = get_sun_angles_for_lines(line_jd, lat, lon)
        return _zenith(mu0), azi

    def to_xarray_dataset(self, channels=None, calibration='counts', geolocation=True):
        """Bundle the loaded *channels* into an :class:`xarray.Dataset`.

        All channels must share one coverage.  Latitude and longitude are
        added as coordinates if *geolocation* is set.
        """
        if channels is None:
            channels = list(self.images)
        images = [self[chan] for chan in channels]
        if not images:
            return xr.Dataset()
        coverage = images[0].coverage
        if any(image.coverage != coverage for image in images):
            raise ValueError("Cannot bundle channels of different coverages")

        variables = {}
        for name, image in zip(channels, images):
            name = name.upper() if isinstance(name, str) else channel_name(name)
            arr = image.to_dataarray(calibrate(image, calibration), calibration=calibration)
            for coord in LINE_COORDS:
                variables[name + '_' + coord] = xr.DataArray(arr.coords[coord].values, dims=('y',))
            variables[name] = arr.drop_vars(LINE_COORDS)
        ds = xr.Dataset(variables)
        if geolocation:
            lat, lon = self.get_latlon(coverage)
            ds = ds.assign_coords(latitude=(('y', 'x'), lat), longitude=(('y', 'x'), lon))
        ds.attrs = {'satellite_id': self.satellite_id,
                    'start_time': self.start_time,
                    'service': self.service,
                    'coverage': tuple(coverage)}
        return ds


def _zenith(mu):
    with np.errstate(invalid='ignore'):
        return np.rad2deg(np.arccos(np.clip(mu, -1.0, 1.0)))
