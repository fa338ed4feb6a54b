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
"""Builders of synthetic HRIT files for the tests.

The layouts are written field by field at their documented byte offsets,
independently of the dtypes of the readers.
"""

import os
import struct
from datetime import datetime

import numpy as np

PROLOGUE_LENGTH = 425461
IMPF_LENGTH = 19786
EPILOGUE_LENGTH = 380325

VISIR_ORIGIN = 1856
HRV_ORIGIN = 5566

CHANNEL_CODES = {1: 'VIS006', 2: 'VIS008', 3: 'IR_016', 4: 'IR_039', 5: 'WV_062',
                 6: 'WV_073', 7: 'IR_087', 8: 'IR_097', 9: 'IR_108', 10: 'IR_120',
                 11: 'IR_134', 12: 'HRV'}

# absolute offsets in the prologue data field
PRO_SATELLITE_ID = 0
PRO_NOMINAL_LONGITUDE = 2
PRO_ORBIT_POLYNOMIAL = 47
PRO_ORBIT_COEF_SIZE = 396
PRO_TRUE_REPEAT_CYCLE_START = 60134
PRO_LONGITUDE_OF_SSP = 386893
PRO_CALIBRATION = 386993 + 72
PRO_EARTH_MODEL = 407808 + 336

# absolute offsets in the epilogue data field
EPI_SATELLITE_ID = 1
EPI_IMAGE_VALIDITY = 221
EPI_TIMELINESS = 380193

START_TIME = datetime(2019, 3, 1, 12, 0)


def to_cds(time):
    """Get CDS days and milliseconds of a datetime."""
    delta = time - datetime(1958, 1, 1)
    return delta.days, delta.seconds * 1000 + delta.microseconds // 1000


def header_record(hdr_id, payload):
    """Prefix *payload* with the record type and length."""
    return struct.pack('>BH', hdr_id, len(payload) + 3) + payload


def make_xrit(file_type, records, data, data_bits=None):
    """Assemble an xRIT file from its secondary header records and data field."""
    header_length = 16 + sum(len(rec) for rec in records)
    if data_bits is None:
        data_bits = 8 * len(data)
    primary = header_record(0, struct.pack('>BIQ', file_type, header_length, data_bits))
    return primary + b''.join(records) + data


def pack10(counts):
    """Pack counts big-endian into 10 bits each."""
    flat = np.asarray(counts, dtype=np.uint64).ravel()
    pad = (-flat.size) % 4
    flat = np.concatenate((flat, np.zeros(pad, dtype=np.uint64))).reshape(-1, 4)
    words = (flat[:, 0] << 30) | (flat[:, 1] << 20) | (flat[:, 2] << 10) | flat[:, 3]
    out = np.empty((words.size, 5), dtype=np.uint8)
    for i, shift in enumerate((32, 24, 16, 8, 0)):
        out[:, i] = (words >> np.uint64(shift)) & np.uint64(0xff)
    nbytes = (np.asarray(counts).size * 10 + 7) // 8
    return out.tobytes()[:nbytes]


def segment_name(channel_id, segment, time=START_TIME, platform='MSG2', rss=False):
    """Get the file name of a segment file, or of the prologue/epilogue for 'PRO'/'EPI'."""
    mission = platform + ('_RSS____' if rss else '________')
    if segment in ('PRO', 'EPI'):
        chan, seg = '_________', segment + '______'
    else:
        chan, seg = CHANNEL_CODES[channel_id].ljust(9, '_'), '{:06d}___'.format(segment)
    return 'H-000-{}__-{}-{}-{}-{:%Y%m%d%H%M}-__'.format(platform, mission, chan, seg, time)


def segment_bytes(counts, southern_line=1, eastern_column=1, channel_id=9, segment=1,
                  spacecraft_id=322, bpp=16, compressed=False, line_times=None,
                  line_validity=3, nlin_quality=None):
    """Build a segment file in scan order: row 0 is the southern line, column 0 the eastern column."""
    counts = np.asarray(counts, dtype=np.uint16)
    nlin, ncol = counts.shape
    origin = HRV_ORIGIN if channel_id == 12 else VISIR_ORIGIN
    loff = origin - southern_line + 1
    coff = origin - eastern_column + 1
    cfac = -40927014 if channel_id == 12 else -13642337

    records = [
        header_record(1, struct.pack('>BHHB', bpp, ncol, nlin, int(compressed))),
        header_record(2, struct.pack('>32siiii', b'GEOS(+000.0)'.ljust(32), cfac, cfac, coff, loff)),
        header_record(128, struct.pack('>hbHHHb', spacecraft_id, channel_id, segment, 1, 8, 3)),
    ]
    if line_times is None:
        line_times = [to_cds(START_TIME)] * nlin
    quality = b''
    for row in range(nlin if nlin_quality is None else nlin_quality):
        days, msec = line_times[row % len(line_times)]
        quality += struct.pack('>iHIBBB', southern_line + row, days, msec, line_validity, 1, 1)
    records.append(header_record(129, quality))

    if compressed:
        data = b'compressed payload'
    elif bpp == 16:
        data = counts.astype('>u2').tobytes()
    elif bpp == 10:
        data = pack10(counts)
    else:
        data = counts.astype(np.uint8).tobytes()
    return make_xrit(0, records, data, data_bits=nlin * ncol * bpp if not compressed else None)


def write_segment(directory, counts, channel_id=9, segment=1, rss=False, **kwargs):
    """Write a segment file into *directory* and return its path."""
    filename = os.path.join(str(directory), segment_name(channel_id, segment, rss=rss))
    with open(filename, 'wb') as fd:
        fd.write(segment_bytes(counts, channel_id=channel_id, segment=segment, **kwargs))
    return filename


def prologue_data(satellite_id=322, start_time=START_TIME, ssp_lon=0.0, nominal_lon=0.0,
                  calibration=None, radii=(6378.169, 6356.5838, 6356.5838), impf=False,
                  orbit=None):
    """Build the data field of a prologue file.

    *calibration* maps channel ids to (slope, offset).  *orbit* is a list
    of (start, end, x, y, z) windows with 8 coefficients per axis.
    """
    buf = bytearray(PROLOGUE_LENGTH + (IMPF_LENGTH if impf else 0))
    struct.pack_into('>Hf', buf, PRO_SATELLITE_ID, satellite_id, nominal_lon)
    struct.pack_into('>HI', buf, PRO_TRUE_REPEAT_CYCLE_START, *to_cds(start_time))
    struct.pack_into('>f', buf, PRO_LONGITUDE_OF_SSP, ssp_lon)
    for chid, (slope, offset) in (calibration or {}).items():
        struct.pack_into('>dd', buf, PRO_CALIBRATION + 16 * (chid - 1), slope, offset)
    struct.pack_into('>Bddd', buf, PRO_EARTH_MODEL, 2, *radii)
    for idx, (start, end, x, y, z) in enumerate(orbit or []):
        offset = PRO_ORBIT_POLYNOMIAL + idx * PRO_ORBIT_COEF_SIZE
        struct.pack_into('>HIHI', buf, offset, *(to_cds(start) + to_cds(end)))
        struct.pack_into('>24d', buf, offset + 12, *(list(x) + list(y) + list(z)))
    if impf:
        struct.pack_into('>HH', buf, PROLOGUE_LENGTH, 4, 7)
    return bytes(buf)


def epilogue_data(satellite_id=322, nominal=True):
    """Build the data field of an epilogue file."""
    buf = bytearray(EPILOGUE_LENGTH)
    struct.pack_into('>H', buf, EPI_SATELLITE_ID, satellite_id)
    for chan in range(12):
        struct.pack_into('?', buf, EPI_IMAGE_VALIDITY + 6 * chan, nominal)
    struct.pack_into('>fff', buf, EPI_TIMELINESS, 10.0, 1.0, 5.0)
    return bytes(buf)


def write_prologue(directory, rss=False, **kwargs):
    """Write a prologue file into *directory* and return its path."""
    filename = os.path.join(str(directory), segment_name(None, 'PRO', rss=rss))
    with open(filename, 'wb') as fd:
        fd.write(make_xrit(128, [], prologue_data(**kwargs)))
    return filename


def write_epilogue(directory, rss=False, **kwargs):
    """Write an epilogue file into *directory* and return its path."""
    filename = os.path.join(str(directory), segment_name(None, 'EPI', rss=rss))
    with open(filename, 'wb') as fd:
        fd.write(make_xrit(129, [], epilogue_data(**kwargs)))
    return filename
