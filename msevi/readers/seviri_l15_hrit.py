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
"""SEVIRI level 1.5 HRIT format reader.

Introduction
------------

One repeat cycle of SEVIRI level 1.5 data in HRIT format is made of a
prologue file, an epilogue file and, for every channel, a number of
segment files each covering a band of lines of the full disk::

    H-000-MSG4__-MSG4________-_________-PRO______-201903011200-__
    H-000-MSG4__-MSG4________-_________-EPI______-201903011200-__
    H-000-MSG4__-MSG4________-IR_108___-000001___-201903011200-__
    H-000-MSG4__-MSG4________-IR_108___-000002___-201903011200-__
    ...

Rapid scan service files carry ``RSS`` in the platform field.  The
channel name starts at byte 26 of the basename and the segment tag
(``PRO``, ``EPI`` or the segment number) at byte 36.

Example::

    from datetime import datetime
    from msevi.readers import seviri_l15_hrit as hrit
    from msevi.satinfo import get_region

    files = hrit.list_segments('/data/hrit', datetime(2019, 3, 1, 12), 'pzs')
    prologue = hrit.read_prologue(files.prologue)
    image = hrit.read_image(files.segments('IR_108'), get_region('pzs', 'eu'))
    hrit.annotate_image(image, prologue)

Segments of compressed files (``-C_`` suffix) are decompressed with the
external ``xRITDecompress`` tool by default, see
:class:`msevi.readers.xrit.XRITDecompressTool`.

References:
    - MSG Level 1.5 Image Data Format Description, EUM/MSG/ICD/105.
    - MSG Ground Segment LRIT/HRIT Mission Specific Implementation,
      EUM/MSG/SPE/057.
"""

import logging
import os
from datetime import datetime
from glob import glob

import dask
import numpy as np
from trollsift.parser import globify

from msevi._config import config
from msevi.image import (
    HRV_CHANNEL,
    VISIR_CHANNEL,
    Coverage,
    L15Image,
    coverage_overlaps,
    full_disk,
    line_info_dtype,
    merge_segment,
)
from msevi.readers.eum_base import datetime_to_jday, recarray2dict, time_cds_short
from msevi.readers.seviri_l15_hdr import (
    EPILOGUE_LENGTH,
    IMPF_CONFIGURATION_LENGTH,
    PROLOGUE_LENGTH,
    hrit_epilogue,
    hrit_prologue,
    impf_configuration,
)
from msevi.readers.xrit import (
    FileType,
    HeaderInfo,
    RecordType,
    TruncatedFileError,
    XRITDecompressTool,
    base_hdr_map,
    base_text_headers,
    base_variable_length_headers,
    decode_record,
    find_record,
    open_xrit,
    unpack_counts,
)
from msevi.satinfo import HRV_ID, channel_id, channel_name, get_channel_info
from msevi.sunpos import earth_sun_distance

logger = logging.getLogger(__name__)

SEGMENT_IDENTIFICATION = 128
SEGMENT_LINE_QUALITY = 129

segment_identification = np.dtype([('GP_SC_ID', '>i2'),
                                   ('spectral_channel_id', '>i1'),
                                   ('segment_sequence_number', '>u2'),
                                   ('planned_start_segment_number', '>u2'),
                                   ('planned_end_segment_number', '>u2'),
                                   ('data_field_representation', '>i1')])

image_segment_line_quality = np.dtype([('line_number_in_grid', '>i4'),
                                       ('line_mean_acquisition', time_cds_short),
                                       ('line_validity', 'u1'),
                                       ('line_radiometric_quality', 'u1'),
                                       ('line_geometric_quality', 'u1')])

msg_hdr_map = base_hdr_map.copy()
msg_hdr_map[SEGMENT_IDENTIFICATION] = ('segment_identification', segment_identification)
msg_variable_length_headers = base_variable_length_headers.copy()
msg_variable_length_headers[SEGMENT_LINE_QUALITY] = ('image_segment_line_quality',
                                                     image_segment_line_quality)
msg_hdr_info = HeaderInfo(msg_hdr_map, msg_variable_length_headers, base_text_headers)

SERVICE_PATTERNS = {'pzs': 'H-000-MSG*{start_time:%Y%m%d%H%M}*',
                    'rss': 'H-000-MSG*RSS*{start_time:%Y%m%d%H%M}*'}
RSS_MARKER = 'RSS'
PLATFORM_FIELD = slice(0, 26)
CHANNEL_FIELD = slice(26, 32)
SEGMENT_FIELD = slice(36, 42)

VISIR_ORIGIN = 1856
HRV_ORIGIN = 5566


class MissingPrologueError(FileNotFoundError):
    """No prologue file was found for the repeat cycle."""


class MissingEpilogueError(FileNotFoundError):
    """No epilogue file was found for the repeat cycle."""


class SegmentFileSet:
    """The files of one repeat cycle of one service."""

    def __init__(self, prologue, epilogue, channels):
        """Store the prologue and epilogue names and the channel id -> {segment: filename} mapping."""
        self.prologue = prologue
        self.epilogue = epilogue
        self.channels = channels

    def segments(self, channel):
        """Get the segment files of *channel* (name or id) ordered by segment number."""
        if isinstance(channel, str):
            chid = channel_id(channel)
            if chid is None:
                raise KeyError("Unknown channel {}".format(channel))
        else:
            chid = channel
        segs = self.channels.get(chid, {})
        return [segs[seq] for seq in sorted(segs)]

    def __repr__(self):
        nseg = {channel_name(chid): len(segs) for chid, segs in sorted(self.channels.items())}
        return "SegmentFileSet(prologue={!r}, epilogue={!r}, segments={})".format(
            self.prologue, self.epilogue, nseg)


def list_segments(directory, time, service='pzs'):
    """Find the prologue, epilogue and segment files of the repeat cycle starting at *time*.

    Raises:
        MissingPrologueError, MissingEpilogueError: if the prologue or
            epilogue file is missing.
    """
    try:
        pattern = SERVICE_PATTERNS[service.lower()]
    except KeyError:
        raise ValueError("Unknown service '{}'".format(service))
    pattern = os.path.join(directory, globify(pattern, {'start_time': time}))

    prologue = epilogue = None
    channels = {}
    for filename in sorted(glob(pattern)):
        basename = os.path.basename(filename)
        if service.lower() != 'rss' and RSS_MARKER in basename[PLATFORM_FIELD]:
            continue
        chan_str = basename[CHANNEL_FIELD]
        seg_str = basename[SEGMENT_FIELD]
        if seg_str.upper().startswith('PRO'):
            prologue = filename
        elif seg_str.upper().startswith('EPI'):
            epilogue = filename
        else:
            chid = channel_id(chan_str)
            seg_str = seg_str.rstrip('_')
            if chid is None or not seg_str.isdigit():
                logger.warning("Ignoring file with unknown channel or segment: %s", filename)
                continue
            channels.setdefault(chid, {})[int(seg_str)] = filename

    if prologue is None:
        raise MissingPrologueError("No prologue for {} ({}) in {}".format(time, service, directory))
    if epilogue is None:
        raise MissingEpilogueError("No epilogue for {} ({}) in {}".format(time, service, directory))
    file_set = SegmentFileSet(prologue, epilogue, channels)
    logger.debug("Found %s", file_set)
    return file_set


def _decode(header, record_type):
    offset, _ = find_record(header, record_type)
    return decode_record(header, offset, msg_hdr_info).content


def read_segment_header(filename):
    """Read and decode the header records of a segment file needed to read the segment."""
    with open_xrit(filename, FileType.IMAGE) as xrit:
        header = xrit.read_header()
    mda = {}
    for record_type in (RecordType.PRIMARY, RecordType.IMAGE_STRUCTURE,
                        RecordType.IMAGE_NAVIGATION, SEGMENT_IDENTIFICATION):
        mda.update(_decode(header, record_type))
    mda['image_segment_line_quality'] = _decode(header, SEGMENT_LINE_QUALITY)
    return mda


def segment_coverage(mda):
    """Get the coverage of a segment from its decoded header.

    The HRV channel has its own, three times finer, grid.
    """
    if mda['spectral_channel_id'] == HRV_ID:
        channel, origin = HRV_CHANNEL, HRV_ORIGIN
    else:
        channel, origin = VISIR_CHANNEL, VISIR_ORIGIN
    southern_line = origin - int(mda['loff']) + 1
    eastern_column = origin - int(mda['coff']) + 1
    return Coverage(channel,
                    southern_line, southern_line + int(mda['number_of_lines']) - 1,
                    eastern_column, eastern_column + int(mda['number_of_columns']) - 1)


def get_segment_coverage(filename):
    """Get the coverage of the segment file *filename* without reading its data."""
    return segment_coverage(read_segment_header(filename))


def read_segment(filename, decompressor=None):
    """Read the segment file *filename* into an :class:`L15Image` in scan order.

    Args:
        filename: segment file name
        decompressor: callable ``(data, nlin, ncol, bpp, filename=...)``
            returning the (nlin, ncol) counts of compressed data.  The
            external xRITDecompress tool is used if None.
    """
    with open_xrit(filename, FileType.IMAGE) as xrit:
        header = xrit.read_header()
        data = xrit.read_data()
    mda = {}
    for record_type in (RecordType.IMAGE_STRUCTURE, RecordType.IMAGE_NAVIGATION,
                        SEGMENT_IDENTIFICATION):
        mda.update(_decode(header, record_type))
    line_quality = _decode(header, SEGMENT_LINE_QUALITY)

    nlin = int(mda['number_of_lines'])
    ncol = int(mda['number_of_columns'])
    bpp = int(mda['number_of_bits_per_pixel'])
    if line_quality.size < nlin:
        raise TruncatedFileError("{}: {} line quality entries for {} lines".format(
            filename, line_quality.size, nlin))

    if mda['compression_flag_for_data']:
        if decompressor is None:
            decompressor = XRITDecompressTool()
        counts = decompressor(data, nlin, ncol, bpp, filename=filename)
    else:
        counts = unpack_counts(data, nlin, ncol, bpp)

    coverage = segment_coverage(mda)
    logger.debug("Read segment %d of channel %d, coverage %s",
                 mda['segment_sequence_number'], mda['spectral_channel_id'], coverage)
    return L15Image(counts, coverage,
                    line_info=_line_info(line_quality[:nlin]),
                    depth=bpp,
                    spacecraft_id=int(mda['GP_SC_ID']),
                    channel_id=int(mda['spectral_channel_id']),
                    segment_id=int(mda['segment_sequence_number']))


def _line_info(line_quality):
    info = np.zeros(line_quality.shape, dtype=line_info_dtype)
    info['line_number_in_grid'] = line_quality['line_number_in_grid']
    info['acquisition_time']['days'] = line_quality['line_mean_acquisition']['Days']
    info['acquisition_time']['msec'] = line_quality['line_mean_acquisition']['Milliseconds']
    for key in ('line_validity', 'line_radiometric_quality', 'line_geometric_quality'):
        info[key] = line_quality[key]
    return info


def _read_segment_or_skip(filename, decompressor):
    try:
        return read_segment(filename, decompressor)
    except (OSError, ValueError) as err:
        logger.warning("Skipping segment %s: %s", filename, err)
        return None


def read_image(filenames, coverage=None, decompressor=None):
    """Assemble the segment files *filenames* of one channel into an image of *coverage*.

    Segments not overlapping *coverage* are skipped without reading their
    data.  Segments that fail to read are skipped with a warning, leaving
    their lines at the fill value.  If the ``parallel_segments`` option is
    set the segments are decoded in parallel.  Without *coverage* the full
    disk of the grid of the first segment is assembled.
    """
    headers = []
    for filename in filenames:
        try:
            headers.append((filename, get_segment_coverage(filename)))
        except (OSError, ValueError) as err:
            logger.warning("Skipping segment %s: %s", filename, err)
    if coverage is None:
        coverage = full_disk(headers[0][1].channel if headers else VISIR_CHANNEL)
    image = L15Image.allocate(coverage)

    overlapping = []
    for filename, seg_cov in headers:
        if seg_cov.channel != coverage.channel:
            logger.warning("Skipping segment %s of the %s grid", filename, seg_cov.channel)
            continue
        if not coverage_overlaps(seg_cov, coverage):
            logger.debug("Segment %s does not overlap %s", filename, coverage)
            continue
        overlapping.append(filename)

    tic = datetime.now()
    if config.get('parallel_segments'):
        segments = dask.compute(*[dask.delayed(_read_segment_or_skip)(filename, decompressor)
                                  for filename in overlapping], scheduler='threads')
    else:
        segments = (_read_segment_or_skip(filename, decompressor) for filename in overlapping)
    for segment in segments:
        if segment is not None:
            merge_segment(image, segment)
    logger.debug("Assembled %d segments in %s", len(overlapping), datetime.now() - tic)
    return image


def _read_block(filename, file_type, dtype, length):
    with open_xrit(filename, file_type) as xrit:
        data = xrit.read_data()
    if len(data) < length:
        raise TruncatedFileError("{}: data field of {} bytes, expected {}".format(
            filename, len(data), length))
    return data, np.frombuffer(data, dtype=dtype, count=1)


def read_prologue(filename):
    """Read the prologue file into a nested dictionary.

    The IMPF configuration is included when present.
    """
    data, prologue = _read_block(filename, FileType.PROLOGUE, hrit_prologue, PROLOGUE_LENGTH)
    res = recarray2dict(prologue)
    if len(data) >= PROLOGUE_LENGTH + IMPF_CONFIGURATION_LENGTH:
        impf = np.frombuffer(data, dtype=impf_configuration, count=1, offset=PROLOGUE_LENGTH)
        res['ImpfConfiguration'] = recarray2dict(impf)
    elif len(data) > PROLOGUE_LENGTH:
        logger.warning("Prologue data field of unexpected length %d", len(data))
    return res


def read_epilogue(filename):
    """Read the epilogue file into a nested dictionary."""
    _, epilogue = _read_block(filename, FileType.EPILOGUE, hrit_epilogue, EPILOGUE_LENGTH)
    return recarray2dict(epilogue)


def get_satellite_id(prologue):
    """Get the satellite id of the prologue."""
    return int(prologue['SatelliteStatus']['SatelliteDefinition']['SatelliteId'])


def get_repeat_cycle_start(prologue):
    """Get the start time of the repeat cycle."""
    return prologue['ImageAcquisition']['PlannedAcquisitionTime']['TrueRepeatCycleStart']


def annotate_image(image, prologue, chaninf=None):
    """Set the calibration attributes of *image* from the prologue and the channel constants.

    Reflectance calibration is only set for channels with a solar
    irradiance; the earth-sun distance is taken at the start of the
    repeat cycle.
    """
    image.spacecraft_id = get_satellite_id(prologue)
    if chaninf is None:
        chaninf = get_channel_info(image.spacecraft_id, image.channel_id)
    calib = prologue['RadiometricProcessing']['Level15ImageCalibration']
    image.cal_slope = float(calib['CalSlope'][image.channel_id - 1])
    image.cal_offset = float(calib['CalOffset'][image.channel_id - 1])

    image.f0 = chaninf.f0
    image.lambda_c = chaninf.lambda_c
    image.nu_c = chaninf.nu_c
    image.alpha = chaninf.alpha
    image.beta = chaninf.beta
    if image.f0 > 0:
        esd = earth_sun_distance(datetime_to_jday(get_repeat_cycle_start(prologue)))
        factor = np.pi * esd ** 2 / image.f0
        image.refl_slope = image.cal_slope * factor
        image.refl_offset = image.cal_offset * factor
    else:
        image.refl_slope = 0.0
        image.refl_offset = 0.0
    logger.debug("Calibration of channel %s: slope %g, offset %g",
                 chaninf.name, image.cal_slope, image.cal_offset)
    return image
