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
"""Utilities for EUMETSAT satellite data.

Times in EUMETSAT products are given in the CCSDS day segmented (CDS)
format: a day count since 1958-01-01 plus the milliseconds of the day
(optionally refined by micro- and nanoseconds).
"""

from datetime import datetime, timedelta

import numpy as np

# 6 bytes, 8 bytes, 10 bytes
time_cds_short = [('Days', '>u2'), ('Milliseconds', '>u4')]
time_cds = time_cds_short + [('Microseconds', '>u2')]
time_cds_expanded = time_cds + [('Nanoseconds', '>u2')]
issue_revision = [('Issue', '>u2'), ('Revision', '>u2')]

_TCDS_DTYPES = [np.dtype(time_cds_short), np.dtype(time_cds),
                np.dtype(time_cds_expanded)]

# Julian dates of the reference epochs
EPOCH_TAI = 2436204.5
EPOCH_UNIX = 2440587.5
EPOCH_J2000_0 = 2451545.0

SECONDS_PER_DAY = 86400
MILLISECONDS_PER_DAY = 86400000
# days between 1958-01-01 and 1970-01-01
UNIX_DAY_OFFSET = int(EPOCH_UNIX - EPOCH_TAI)

CDS_REFERENCE = datetime(1958, 1, 1)


class CdsTime:
    """Day segmented time relative to the 1958-01-01 epoch."""

    __slots__ = ('days', 'msec')

    def __init__(self, days, msec):
        """Initialize from a day count and the milliseconds of the day."""
        if not 0 <= msec < MILLISECONDS_PER_DAY:
            raise ValueError("Milliseconds of day out of range: {}".format(msec))
        self.days = int(days)
        self.msec = int(msec)

    @classmethod
    def from_record(cls, tcds):
        """Create from a dictionary or numpy record with 'Days' and 'Milliseconds'."""
        return cls(int(tcds['Days']), int(tcds['Milliseconds']))

    @classmethod
    def from_unix(cls, seconds):
        """Create from seconds since 1970-01-01."""
        seconds = int(seconds)
        days, rest = divmod(seconds, SECONDS_PER_DAY)
        return cls(days + UNIX_DAY_OFFSET, rest * 1000)

    @classmethod
    def from_datetime(cls, time):
        """Create from a naive UTC datetime."""
        delta = time - CDS_REFERENCE
        msec = delta.seconds * 1000 + delta.microseconds // 1000
        return cls(delta.days, msec)

    def to_unix(self):
        """Convert to seconds since 1970-01-01, rounded to the nearest second."""
        return (self.msec + 500) // 1000 + (self.days - UNIX_DAY_OFFSET) * SECONDS_PER_DAY

    def to_jday(self, epoch=EPOCH_J2000_0):
        """Convert to a continuous Julian date relative to *epoch*.

        With the default epoch the result is the number of days since
        2000-01-01 12:00, the time argument of :mod:`msevi.sunpos`.
        """
        return (EPOCH_TAI - epoch) + self.days + self.msec / float(MILLISECONDS_PER_DAY)

    def to_datetime(self):
        """Convert to a naive UTC datetime."""
        return CDS_REFERENCE + timedelta(days=self.days, milliseconds=self.msec)

    def __sub__(self, other):
        """Get the signed difference in days."""
        return (self.days - other.days) + (self.msec - other.msec) / float(MILLISECONDS_PER_DAY)

    def __eq__(self, other):
        if not isinstance(other, CdsTime):
            return NotImplemented
        return (self.days, self.msec) == (other.days, other.msec)

    def __hash__(self):
        return hash((self.days, self.msec))

    def __repr__(self):
        return "CdsTime(days={}, msec={})".format(self.days, self.msec)


def cds_to_unix(tcds):
    """Convert a CDS time to unix seconds."""
    return tcds.to_unix()


def unix_to_cds(seconds):
    """Convert unix seconds to a CDS time."""
    return CdsTime.from_unix(seconds)


def cds_to_jday(days, msec, epoch=EPOCH_J2000_0):
    """Convert arrays of CDS days and milliseconds to Julian dates relative to *epoch*.

    Entries with a zero day count carry no time information and become NaN.
    """
    days = np.asanyarray(days, dtype=np.float64)
    msec = np.asanyarray(msec, dtype=np.float64)
    jday = (EPOCH_TAI - epoch) + days + msec / MILLISECONDS_PER_DAY
    return np.where(days == 0, np.nan, jday)


def datetime_to_jday(time, epoch=EPOCH_J2000_0):
    """Convert a datetime to a Julian date relative to *epoch*."""
    return CdsTime.from_datetime(time).to_jday(epoch)


def _scalar(value):
    return int(np.asarray(value).item())


def timecds2datetime(tcds):
    """Convert time_cds-variables to datetime-object.

    Works both with a dictionary and a numpy record_array.
    """
    days = _scalar(tcds['Days'])
    milliseconds = _scalar(tcds['Milliseconds'])
    try:
        microseconds = _scalar(tcds['Microseconds'])
    except (KeyError, ValueError):
        microseconds = 0
    try:
        microseconds += _scalar(tcds['Nanoseconds']) / 1000.
    except (KeyError, ValueError):
        pass

    delta = timedelta(days=days, milliseconds=milliseconds,
                      microseconds=microseconds)

    return CDS_REFERENCE + delta


def recarray2dict(arr):
    """Convert numpy record array to a dictionary.

    Padding between fields of offset-based dtypes is skipped, CDS times
    are converted to datetimes and byte strings are decoded.
    """
    res = {}

    for key in arr.dtype.names:
        data = arr[key]
        ntype = data.dtype
        if ntype in _TCDS_DTYPES:
            if data.size > 1:
                res[key] = np.array([timecds2datetime(item)
                                     for item in data.ravel()]).reshape(data.shape).squeeze()
            else:
                res[key] = timecds2datetime(data.ravel()[0])
        elif ntype.names is not None:
            res[key] = recarray2dict(data)
        elif data.size == 1:
            data = data.ravel()[0]
            if ntype.kind == 'S':
                data = data.decode(errors='replace').strip()
            res[key] = data
        else:
            res[key] = data.squeeze()

    return res
