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
"""Generic reader for xRIT (HRIT/LRIT) files.

An xRIT file starts with a header made of type-tagged records.  Each
record begins with a one byte type and a two byte big-endian record
length (which includes these three bytes).  The first record is always
the 16 byte primary header giving the file type, the total header length
and the length of the data field in bits::

    byte 0       header type (0)
    byte 1-2     header record length (16)
    byte 3       file type
    byte 4-7     total header length
    byte 8-15    data field length in bits

The data field starts right after the header and is
``ceil(data_field_length / 8)`` bytes long.

References:
    - MSG Ground Segment LRIT/HRIT Mission Specific Implementation,
      EUMETSAT Document, Doc No. EUM/MSG/SPE/057, Issue 6, 21 June 2006.
    - LRIT/HRIT Global Specification, CGMS 03, Issue 2.6.
"""

import enum
import logging
import os
import subprocess
import tempfile
from collections import namedtuple

import numpy as np

from msevi._config import config
from msevi.readers.eum_base import time_cds_short

logger = logging.getLogger(__name__)

PRIMARY_HEADER_LENGTH = 16


class FileType(enum.IntEnum):
    """File types found in the primary header."""

    IMAGE = 0
    MESSAGE = 1
    ALPHANUMERIC = 2
    KEY = 3
    PROLOGUE = 128
    EPILOGUE = 129


class RecordType(enum.IntEnum):
    """Type codes of the generic header records."""

    PRIMARY = 0
    IMAGE_STRUCTURE = 1
    IMAGE_NAVIGATION = 2
    IMAGE_DATA_FUNCTION = 3
    ANNOTATION = 4
    TIMESTAMP = 5
    ANCILLARY_TEXT = 6
    KEY_HEADER = 7


class XRITError(IOError):
    """Base class of the errors raised while decoding xRIT files."""


class TruncatedFileError(XRITError):
    """The file ends before the header or data field does."""


class WrongFrameTypeError(XRITError):
    """The file type does not match the role the file is opened for."""


class UnsupportedRecordError(XRITError):
    """The header record type is unknown to the decoder."""


class RecordNotFoundError(XRITError, KeyError):
    """The header does not contain a record of the requested type."""


primary_header = np.dtype([('file_type', 'u1'),
                           ('total_header_length', '>u4'),
                           ('data_field_length', '>u8')])
image_structure = np.dtype([('number_of_bits_per_pixel', 'u1'),
                            ('number_of_columns', '>u2'),
                            ('number_of_lines', '>u2'),
                            ('compression_flag_for_data', 'u1')])
image_navigation = np.dtype([('projection_name', 'S32'),
                             ('cfac', '>i4'),
                             ('lfac', '>i4'),
                             ('coff', '>i4'),
                             ('loff', '>i4')])
timestamp_record = np.dtype([('cds_p_field', 'u1'),
                             ('timestamp', time_cds_short)])

# fixed length records, keyed by type: (name, dtype)
base_hdr_map = {RecordType.PRIMARY: ('primary_header', primary_header),
                RecordType.IMAGE_STRUCTURE: ('image_structure', image_structure),
                RecordType.IMAGE_NAVIGATION: ('image_navigation', image_navigation),
                RecordType.TIMESTAMP: ('timestamp_record', timestamp_record),
                }
# records holding free text
base_text_headers = {RecordType.IMAGE_DATA_FUNCTION: 'image_data_function',
                     RecordType.ANNOTATION: 'annotation_header',
                     RecordType.ANCILLARY_TEXT: 'ancillary_text',
                     RecordType.KEY_HEADER: 'key_header'}
# records holding an array of fixed size entries
base_variable_length_headers = {}

HeaderInfo = namedtuple('HeaderInfo', ['hdr_map', 'variable_length_headers', 'text_headers'])
base_hdr_info = HeaderInfo(base_hdr_map, base_variable_length_headers, base_text_headers)

HeaderRecord = namedtuple('HeaderRecord', ['record_type', 'record_length', 'name', 'content'])

_record_prefix = np.dtype([('hdr_id', 'u1'), ('record_length', '>u2')])


def _read_prefix(header, offset):
    prefix = np.frombuffer(header, dtype=_record_prefix, count=1, offset=offset)[0]
    hdr_id = int(prefix['hdr_id'])
    record_length = int(prefix['record_length'])
    if record_length < _record_prefix.itemsize:
        raise TruncatedFileError("Corrupt header record of type {} at offset {}".format(
            hdr_id, offset))
    return hdr_id, record_length


def iter_records(header):
    """Iterate over the ``(record_type, offset, record_length)`` of all header records."""
    offset = 0
    while offset + _record_prefix.itemsize <= len(header):
        hdr_id, record_length = _read_prefix(header, offset)
        yield hdr_id, offset, record_length
        offset += record_length


def find_record(header, record_type):
    """Find the record of *record_type* in the *header* bytes.

    The records are scanned from the start of the header, skipping
    each by its own record length.

    Returns:
        The ``(offset, record_length)`` of the record.

    Raises:
        RecordNotFoundError: when the header holds no such record.
        TruncatedFileError: when a record length is corrupt.
    """
    for hdr_id, offset, record_length in iter_records(header):
        if hdr_id == record_type:
            if offset + record_length > len(header):
                raise TruncatedFileError("Header record of type {} exceeds the header".format(hdr_id))
            return offset, record_length
    raise RecordNotFoundError("No header record of type {}".format(int(record_type)))


def decode_record(header, offset=0, hdr_info=base_hdr_info):
    """Decode the record starting at *offset* of the *header* bytes.

    Raises:
        UnsupportedRecordError: when the record type is not part of *hdr_info*.
    """
    hdr_id, record_length = _read_prefix(header, offset)
    start = offset + _record_prefix.itemsize
    end = offset + record_length
    if end > len(header):
        raise TruncatedFileError("Header record of type {} exceeds the header".format(hdr_id))

    if hdr_id in hdr_info.hdr_map:
        name, dtype = hdr_info.hdr_map[hdr_id]
        if record_length - _record_prefix.itemsize < dtype.itemsize:
            raise TruncatedFileError("Header record {} too short: {} bytes".format(name, record_length))
        content = np.frombuffer(header, dtype=dtype, count=1, offset=start)[0]
        content = {key: content[key] for key in dtype.names}
    elif hdr_id in hdr_info.variable_length_headers:
        name, dtype = hdr_info.variable_length_headers[hdr_id]
        count = (record_length - _record_prefix.itemsize) // dtype.itemsize
        content = np.frombuffer(header, dtype=dtype, count=count, offset=start)
    elif hdr_id in hdr_info.text_headers:
        name = hdr_info.text_headers[hdr_id]
        content = bytes(header[start:end])
    else:
        raise UnsupportedRecordError("Unsupported header record type {}".format(hdr_id))
    return HeaderRecord(hdr_id, record_length, name, content)


def decode_header(header, hdr_info=base_hdr_info):
    """Decode all known records of *header* into a metadata dictionary.

    Fixed length records are flattened into the dictionary, other records
    are stored under their name.  Unsupported records are skipped.
    """
    mda = {}
    for hdr_id, offset, _ in iter_records(header):
        try:
            record = decode_record(header, offset, hdr_info)
        except UnsupportedRecordError:
            logger.debug("Skipping unsupported header record of type %d", hdr_id)
            continue
        if isinstance(record.content, dict):
            mda.update(record.content)
        else:
            mda[record.name] = record.content
    return mda


class XRITFile:
    """An opened xRIT file.

    The primary header is read on opening.  The file handle is closed by
    :meth:`close`, or when leaving the context if used as a context manager.
    """

    def __init__(self, filename):
        """Open *filename* and read its primary header."""
        self.filename = os.fspath(filename)
        self._fp = open(self.filename, 'rb')
        try:
            prefix = self._read_at(0, PRIMARY_HEADER_LENGTH)
            hdr = np.frombuffer(prefix, dtype=primary_header, count=1, offset=3)[0]
        except Exception:
            self._fp.close()
            raise
        self.file_type = int(hdr['file_type'])
        self.header_length = int(hdr['total_header_length'])
        self.data_length = int(hdr['data_field_length'])
        logger.debug("Opened %s: file type %d, header %d bytes, data %d bits",
                     self.filename, self.file_type, self.header_length, self.data_length)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    @property
    def data_size(self):
        """Size of the data field in bytes."""
        return (self.data_length + 7) // 8

    def _read_at(self, offset, size):
        self._fp.seek(offset)
        buf = self._fp.read(size)
        if len(buf) != size:
            raise TruncatedFileError("{}: expected {} bytes at offset {}, got {}".format(
                self.filename, size, offset, len(buf)))
        return buf

    def read_header(self):
        """Read the complete header."""
        return self._read_at(0, self.header_length)

    def read_data(self):
        """Read the data field."""
        return self._read_at(self.header_length, self.data_size)

    def check_type(self, file_type):
        """Check that the file is of *file_type*."""
        if self.file_type != file_type:
            raise WrongFrameTypeError("{}: expected file type {}, got {}".format(
                self.filename, FileType(file_type).name, self.file_type))

    def close(self):
        """Close the file handle."""
        self._fp.close()


def open_xrit(filename, file_type=None):
    """Open an xRIT file, optionally checking its *file_type*."""
    xrit = XRITFile(filename)
    if file_type is not None:
        try:
            xrit.check_type(file_type)
        except WrongFrameTypeError:
            xrit.close()
            raise
    return xrit


def unpack_counts(data, nlin, ncol, bpp):
    """Unpack the raw data field into a (nlin, ncol) array of uint16 counts."""
    npix = nlin * ncol
    buf = np.frombuffer(data, dtype=np.uint8)
    if bpp == 8:
        counts = buf[:npix].astype(np.uint16)
    elif bpp == 10:
        counts = dec10216(buf[:(npix * 10 + 7) // 8])[:npix]
    elif bpp == 16:
        counts = np.frombuffer(data, dtype='>u2', count=npix).astype(np.uint16)
    else:
        raise ValueError("Unsupported number of bits per pixel: {}".format(bpp))
    if counts.size != npix:
        raise TruncatedFileError("Data field holds {} samples, expected {}".format(counts.size, npix))
    return counts.reshape(nlin, ncol)


def dec10216(inbuf):
    """Decode 10 bits data into 16 bits words.

    Four 10-bit words are packed big-endian into every 5 bytes.  An
    incomplete trailing group is zero padded.
    """
    arr10 = inbuf.astype(np.uint16)
    pad = (-arr10.size) % 5
    if pad:
        arr10 = np.concatenate((arr10, np.zeros(pad, dtype=np.uint16)))
    arr10 = arr10.reshape(-1, 5)
    arr16 = np.empty((arr10.shape[0], 4), dtype=np.uint16)
    arr16[:, 0] = (arr10[:, 0] << 2) + (arr10[:, 1] >> 6)
    arr16[:, 1] = ((arr10[:, 1] & 63) << 4) + (arr10[:, 2] >> 4)
    arr16[:, 2] = ((arr10[:, 2] & 15) << 6) + (arr10[:, 3] >> 2)
    arr16[:, 3] = ((arr10[:, 3] & 3) << 8) + arr10[:, 4]
    return arr16.ravel()


class XRITDecompressTool:
    """Decompressor running EUMETSAT's external ``xRITDecompress`` tool.

    The tool works on complete files: the compressed segment file is
    decompressed into a temporary directory, and the data field of the
    resulting file is unpacked.
    """

    def __init__(self, cmd=None, tmp_dir=None):
        """Set up the decompressor, defaulting to the configured tool path."""
        self.cmd = cmd or config.get('xrit_decompress_path')
        self.tmp_dir = tmp_dir or config.get('tmp_dir')

    def __call__(self, data, nlin, ncol, bpp, filename=None):
        """Decompress the segment *filename* into (nlin, ncol) uint16 counts."""
        if not self.cmd:
            raise IOError("xrit_decompress_path is not configured "
                          "(complete path to xRITDecompress)")
        if filename is None:
            raise ValueError("xRITDecompress needs the name of the compressed file")
        infile = os.path.abspath(filename)
        with tempfile.TemporaryDirectory(dir=self.tmp_dir) as outdir:
            proc = subprocess.run([self.cmd, infile], cwd=outdir,
                                  stdout=subprocess.PIPE, stderr=subprocess.PIPE)
            if proc.returncode != 0:
                raise IOError("xrit_decompress '{}' failed, status={}".format(infile, proc.returncode))
            outfile = get_xritdecompress_outfile(proc.stdout, outdir)
            logger.debug("Decompressed %s to %s", infile, outfile)
            with open_xrit(outfile) as xrit:
                raw = xrit.read_data()
        return unpack_counts(raw, nlin, ncol, bpp)


def get_xritdecompress_outfile(stdout, outdir='.'):
    """Analyse the output of xRITDecompress and return the decompressed file name."""
    for line in stdout.decode(errors='replace').splitlines():
        if 'Decompressed file:' in line:
            return os.path.join(outdir, line.split(':', 1)[1].strip())
    raise IOError("xrit_decompress did not report a decompressed file")
