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
"""Radiometric calibration of SEVIRI counts.

Counts are converted to spectral radiance in mW m-2 sr-1 (cm-1)-1 with the
linear calibration of the prologue.  Radiances of the thermal channels are
converted to brightness temperature through the inverse Planck function
at the central wavenumber, corrected by the linear ``alpha``/``beta``
band correction; radiances of the solar channels to reflectance using the
solar irradiance ``f0`` and the earth-sun distance.
"""

import logging
from datetime import datetime

import numpy as np

logger = logging.getLogger(__name__)

C1 = 1.19104273e-5
C2 = 1.43877523

CALIBRATIONS = ('counts', 'radiance', 'reflectance', 'brightness_temperature')


class CalibrationError(ValueError):
    """The requested calibration is not available for the channel."""


def counts_to_radiance(slope, offset, counts):
    """Convert counts to radiance."""
    return slope * counts + offset


def radiance_to_brightness_temperature(nu_c, alpha, beta, radiance):
    """Convert radiance to brightness temperature in K.

    Non-positive radiances give NaN.
    """
    radiance = np.asanyarray(radiance, dtype=np.float64)
    with np.errstate(invalid='ignore', divide='ignore'):
        radiance = np.where(radiance > 0, radiance, np.nan)
        teff = C2 * nu_c / np.log(1.0 + C1 * nu_c ** 3 / radiance)
    return (teff - beta) / alpha


def brightness_temperature_to_radiance(nu_c, alpha, beta, bt):
    """Convert brightness temperature to radiance, the inverse of :func:`radiance_to_brightness_temperature`."""
    teff = alpha * np.asanyarray(bt, dtype=np.float64) + beta
    return C1 * nu_c ** 3 / np.expm1(C2 * nu_c / teff)


def radiance_to_reflectance(slope, offset, f0, esd):
    """Scale the calibration *slope* and *offset* from radiance to reflectance.

    Args:
        slope, offset: linear counts to radiance calibration
        f0: band solar irradiance at 1 AU
        esd: earth-sun distance in AU

    Returns:
        slope and offset of the linear counts to reflectance (0-1)
        calibration, ignoring the solar zenith angle.
    """
    if not f0 > 0:
        raise CalibrationError("No solar irradiance, reflectance undefined")
    factor = np.pi * esd ** 2 / f0
    return slope * factor, offset * factor


def calibrate(image, calibration='radiance'):
    """Calibrate the counts of an annotated :class:`msevi.image.L15Image`.

    Counts of 0 mark missing data and are NaN in the result of any
    calibration other than 'counts'.
    """
    if calibration not in CALIBRATIONS:
        raise ValueError("Unknown calibration '{}'".format(calibration))
    if calibration == 'counts':
        return image.counts

    tic = datetime.now()
    counts = image.counts.astype(np.float64)
    counts[image.counts == 0] = np.nan
    if calibration == 'reflectance':
        if image.f0 <= 0:
            raise CalibrationError("Channel {} has no reflectance calibration".format(image.channel_id))
        res = counts_to_radiance(image.refl_slope, image.refl_offset, counts)
    else:
        res = counts_to_radiance(image.cal_slope, image.cal_offset, counts)
        if calibration == 'brightness_temperature':
            if not image.nu_c > 0:
                raise CalibrationError("Channel {} has no brightness temperature".format(image.channel_id))
            res = radiance_to_brightness_temperature(image.nu_c, image.alpha, image.beta, res)
    logger.debug("Calibration time " + str(datetime.now() - tic))
    return res
