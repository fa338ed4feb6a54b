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
"""SEVIRI level 1.5 images and their coverage in the SEVIRI reference grid.

Line numbers of the reference grid increase from south to north and column
numbers from east to west, both starting at 1.  The high resolution visible
(HRV) channel uses a grid three times finer than the other (VIS/IR)
channels.

Segments as read from file keep the scan order of their data field: the
first row is the southernmost line and the first column the easternmost
column.  Images assembled by :func:`merge_segment` are north-up with the
westernmost column first.
"""

import logging
from typing import NamedTuple

import numpy as np
import xarray as xr

from msevi._config import config

logger = logging.getLogger(__name__)

VISIR_CHANNEL = 'vis_ir'
HRV_CHANNEL = 'hrv'
VISIR_GRID_SIZE = 3712
HRV_GRID_SIZE = 3 * VISIR_GRID_SIZE

line_info_dtype = np.dtype([('line_number_in_grid', 'i4'),
                            ('acquisition_time', [('days', 'u2'),
                                                  ('msec', 'u4')]),
                            ('line_validity', 'u1'),
                            ('line_radiometric_quality', 'u1'),
                            ('line_geometric_quality', 'u1')])


class Coverage(NamedTuple):
    """Rectangle of the reference grid covered by an image."""

    channel: str
    southern_line: int
    northern_line: int
    eastern_column: int
    western_column: int

    @property
    def nlin(self):
        """Number of lines."""
        return self.northern_line - self.southern_line + 1

    @property
    def ncol(self):
        """Number of columns."""
        return self.western_column - self.eastern_column + 1

    @property
    def is_valid(self):
        """Check that the rectangle is not degenerate."""
        return self.northern_line >= self.southern_line and self.western_column >= self.eastern_column

    @classmethod
    def from_region(cls, lin0, col0, nlin, ncol, channel=VISIR_CHANNEL):
        """Create from the south-east corner and the size of a region."""
        return cls(channel, lin0, lin0 + nlin - 1, col0, col0 + ncol - 1)


def full_disk(channel=VISIR_CHANNEL):
    """Get the coverage of the complete reference grid of *channel*."""
    size = HRV_GRID_SIZE if channel == HRV_CHANNEL else VISIR_GRID_SIZE
    return Coverage(channel, 1, size, 1, size)


def coverage_overlaps(cov1, cov2):
    """Check if the rectangles of two coverages intersect."""
    return (cov1.southern_line <= cov2.northern_line and
            cov1.northern_line >= cov2.southern_line and
            cov1.eastern_column <= cov2.western_column and
            cov1.western_column >= cov2.eastern_column)


def visir_to_hrv(cov):
    """Get the HRV coverage of the VIS/IR coverage *cov*.

    Every VIS/IR pixel spans 3x3 HRV pixels.
    """
    return Coverage(HRV_CHANNEL,
                    3 * cov.southern_line - 3,
                    3 * cov.northern_line - 1,
                    3 * cov.eastern_column - 3,
                    3 * cov.western_column - 1)


class L15Image:
    """Counts of one SEVIRI channel with their per-line side information.

    The counts are a (nlin, ncol) uint16 array, the line side information a
    structured array of nlin :data:`line_info_dtype` entries.  The
    calibration attributes are set by
    :func:`msevi.readers.seviri_l15_hrit.annotate_image`.
    """

    def __init__(self, counts, coverage, line_info=None, depth=10,
                 spacecraft_id=0, channel_id=0, segment_id=0):
        """Initialize the image, checking the shapes against the coverage."""
        counts = np.asarray(counts, dtype=np.uint16)
        if counts.shape != (coverage.nlin, coverage.ncol):
            raise ValueError("Counts of shape {} do not match coverage {}".format(counts.shape, coverage))
        if line_info is None:
            line_info = np.zeros(coverage.nlin, dtype=line_info_dtype)
        if line_info.shape != (coverage.nlin,):
            raise ValueError("Got {} line entries for {} lines".format(line_info.shape[0], coverage.nlin))
        self.counts = counts
        self.coverage = coverage
        self.line_info = line_info
        self.depth = depth
        self.spacecraft_id = spacecraft_id
        self.channel_id = channel_id
        self.segment_id = segment_id

        self.cal_slope = 0.0
        self.cal_offset = 0.0
        self.f0 = 0.0
        self.nu_c = 0.0
        self.lambda_c = 0.0
        self.alpha = 1.0
        self.beta = 0.0
        self.refl_slope = 0.0
        self.refl_offset = 0.0

    @classmethod
    def allocate(cls, coverage=None, fill_value=None):
        """Allocate an empty image for *coverage*, the full VIS/IR disk by default."""
        if coverage is None:
            coverage = full_disk()
        if not coverage.is_valid:
            raise ValueError("Invalid coverage {}".format(coverage))
        if fill_value is None:
            fill_value = config.get('fill_value')
        counts = np.full((coverage.nlin, coverage.ncol), fill_value, dtype=np.uint16)
        return cls(counts, coverage)

    @property
    def nlin(self):
        """Number of lines."""
        return self.counts.shape[0]

    @property
    def ncol(self):
        """Number of columns."""
        return self.counts.shape[1]

    @property
    def attrs(self):
        """Get the metadata of the image as a dictionary."""
        return {'spacecraft_id': self.spacecraft_id,
                'channel_id': self.channel_id,
                'segment_id': self.segment_id,
                'depth': self.depth,
                'coverage': tuple(self.coverage),
                'cal_slope': self.cal_slope,
                'cal_offset': self.cal_offset,
                'f0': self.f0,
                'nu_c': self.nu_c,
                'lambda_c': self.lambda_c,
                'alpha': self.alpha,
                'beta': self.beta,
                'refl_slope': self.refl_slope,
                'refl_offset': self.refl_offset}

    def to_dataarray(self, data=None, **attrs):
        """Wrap *data* (the counts by default) into a DataArray with the line side information.

        The line and column numbers of the reference grid are attached as
        coordinates.
        """
        if data is None:
            data = self.counts
        cov = self.coverage
        lines = np.arange(cov.northern_line, cov.southern_line - 1, -1)
        columns = np.arange(cov.western_column, cov.eastern_column - 1, -1)
        lsi = self.line_info
        all_attrs = self.attrs
        all_attrs.update(attrs)
        return xr.DataArray(
            data, dims=('y', 'x'),
            coords={'line': ('y', lines),
                    'column': ('x', columns),
                    'acq_days': ('y', lsi['acquisition_time']['days']),
                    'acq_msec': ('y', lsi['acquisition_time']['msec']),
                    'line_validity': ('y', lsi['line_validity']),
                    'line_radiometric_quality': ('y', lsi['line_radiometric_quality']),
                    'line_geometric_quality': ('y', lsi['line_geometric_quality'])},
            attrs=all_attrs)


def merge_segment(dest, segment):
    """Copy the part of *segment* overlapping *dest* into *dest*.

    *segment* is in scan order (see module docstring), *dest* north-up
    and west-left, so both rows and columns are reversed while copying.
    The line side information of the copied lines goes along.

    Returns:
        The number of lines copied.
    """
    dcov = dest.coverage
    scov = segment.coverage
    south = max(dcov.southern_line, scov.southern_line)
    north = min(dcov.northern_line, scov.northern_line)
    east = max(dcov.eastern_column, scov.eastern_column)
    west = min(dcov.western_column, scov.western_column)
    nlin = north - south + 1
    ncol = west - east + 1
    if nlin <= 0 or ncol <= 0:
        return 0

    dest_rows = slice(dcov.northern_line - north, dcov.northern_line - south + 1)
    dest_cols = slice(dcov.western_column - west, dcov.western_column - east + 1)
    src_rows = slice(south - scov.southern_line, north - scov.southern_line + 1)
    src_cols = slice(east - scov.eastern_column, west - scov.eastern_column + 1)
    _check_bounds(dest.counts.shape, dest_rows, dest_cols, 'destination')
    _check_bounds(segment.counts.shape, src_rows, src_cols, 'segment')

    dest.counts[dest_rows, dest_cols] = segment.counts[src_rows, src_cols][::-1, ::-1]
    dest.line_info[dest_rows] = segment.line_info[src_rows][::-1]

    if dest.spacecraft_id == 0:
        dest.spacecraft_id = segment.spacecraft_id
        dest.channel_id = segment.channel_id
        dest.depth = segment.depth
    logger.debug("Merged lines %d-%d, columns %d-%d of segment %d",
                 south, north, east, west, segment.segment_id)
    return nlin


def _check_bounds(shape, rows, cols, what):
    if rows.start < 0 or rows.stop > shape[0] or cols.start < 0 or cols.stop > shape[1]:
        raise IndexError("Rows {}:{}, columns {}:{} out of bounds of the {} array of shape {}".format(
            rows.start, rows.stop, cols.start, cols.stop, what, shape))
