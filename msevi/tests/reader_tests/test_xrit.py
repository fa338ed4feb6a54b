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
"""The xRIT base reader tests package."""

import itertools
import struct
from unittest import mock

import numpy as np
import pytest

from msevi.readers.xrit import (
    FileType,
    RecordNotFoundError,
    RecordType,
    TruncatedFileError,
    UnsupportedRecordError,
    WrongFrameTypeError,
    XRITDecompressTool,
    XRITError,
    dec10216,
    decode_header,
    decode_record,
    find_record,
    get_xritdecompress_outfile,
    open_xrit,
    unpack_counts,
)
from msevi.tests.utils import header_record, make_xrit, pack10

IMAGE_STRUCTURE = header_record(1, struct.pack('>BHHB', 10, 3712, 464, 0))
IMAGE_NAVIGATION = header_record(2, struct.pack('>32siiii', b'GEOS(+000.0)'.ljust(32),
                                                -13642337, -13642337, 1856, 1856))
ANNOTATION = header_record(4, b'H-000-MSG4__-MSG4________-VIS006___-000001___-202208180730-__')
UNKNOWN = header_record(200, b'\x01\x02\x03\x04')


@pytest.fixture
def stub_xrit_file(tmp_path):
    """Create a stub xrit image file."""
    filename = tmp_path / 'stub_xrit_file'
    data = np.arange(16, dtype='>u2').tobytes()
    filename.write_bytes(make_xrit(0, [IMAGE_STRUCTURE, IMAGE_NAVIGATION], data))
    return filename


class TestFindRecord:
    """Test locating header records."""

    def test_any_order(self):
        """Test every record is found whatever the order of the records."""
        records = [IMAGE_STRUCTURE, IMAGE_NAVIGATION, ANNOTATION, UNKNOWN]
        for perm in itertools.permutations(records):
            header = b''.join(perm)
            for rec in records:
                offset, length = find_record(header, rec[0])
                assert header[offset:offset + length] == rec

    def test_missing(self):
        """Test a missing record type."""
        header = IMAGE_STRUCTURE + ANNOTATION
        with pytest.raises(RecordNotFoundError):
            find_record(header, RecordType.IMAGE_NAVIGATION)
        with pytest.raises(KeyError):
            find_record(header, RecordType.IMAGE_NAVIGATION)

    def test_corrupt_length(self):
        """Test a record length too short to advance."""
        header = IMAGE_STRUCTURE + struct.pack('>BH', 2, 0)
        with pytest.raises(TruncatedFileError):
            find_record(header, RecordType.IMAGE_NAVIGATION)

    def test_record_beyond_header(self):
        """Test a record running past the end of the header."""
        header = IMAGE_STRUCTURE + IMAGE_NAVIGATION[:20]
        with pytest.raises(TruncatedFileError):
            find_record(header, RecordType.IMAGE_NAVIGATION)


class TestDecodeRecord:
    """Test decoding header records."""

    def test_fixed_records(self):
        """Test the image structure and navigation records."""
        header = IMAGE_STRUCTURE + IMAGE_NAVIGATION
        record = decode_record(header, 0)
        assert record.name == 'image_structure'
        assert record.record_length == 9
        assert record.content['number_of_bits_per_pixel'] == 10
        assert record.content['number_of_columns'] == 3712
        assert record.content['number_of_lines'] == 464
        assert record.content['compression_flag_for_data'] == 0

        offset, _ = find_record(header, RecordType.IMAGE_NAVIGATION)
        record = decode_record(header, offset)
        assert record.content['cfac'] == -13642337
        assert record.content['loff'] == 1856
        assert record.content['projection_name'].strip() == b'GEOS(+000.0)'

    def test_text_record(self):
        """Test the annotation text record."""
        record = decode_record(ANNOTATION)
        assert record.content.startswith(b'H-000-MSG4')

    def test_unsupported(self):
        """Test unknown record types are refused."""
        with pytest.raises(UnsupportedRecordError):
            decode_record(UNKNOWN)

    def test_short_record(self):
        """Test a fixed record shorter than its layout."""
        with pytest.raises(TruncatedFileError):
            decode_record(header_record(1, b'\x0a\x00'))

    def test_decode_header_skips_unsupported(self):
        """Test unknown records are skipped when decoding the whole header."""
        mda = decode_header(UNKNOWN + IMAGE_STRUCTURE + ANNOTATION)
        assert mda['number_of_lines'] == 464
        assert mda['annotation_header'].startswith(b'H-000')


class TestXRITFile:
    """Test the xRIT file access."""

    def test_open(self, stub_xrit_file):
        """Test reading the primary header, the header and the data."""
        with open_xrit(stub_xrit_file, FileType.IMAGE) as xrit:
            assert xrit.file_type == FileType.IMAGE
            assert xrit.header_length == 16 + 9 + 51
            assert xrit.data_length == 256
            assert xrit.data_size == 32
            header = xrit.read_header()
            data = xrit.read_data()
        assert len(header) == 76
        np.testing.assert_array_equal(np.frombuffer(data, '>u2'), np.arange(16))

    def test_data_size_rounds_up(self, tmp_path):
        """Test data field lengths that are no multiple of 8 bits."""
        filename = tmp_path / 'odd'
        filename.write_bytes(make_xrit(0, [], b'\x00' * 3, data_bits=17))
        with open_xrit(filename) as xrit:
            assert xrit.data_size == 3
            assert len(xrit.read_data()) == 3

    def test_wrong_type(self, stub_xrit_file):
        """Test opening an image file as a prologue."""
        with pytest.raises(WrongFrameTypeError):
            open_xrit(stub_xrit_file, FileType.PROLOGUE)

    def test_truncated_data(self, tmp_path):
        """Test a data field shorter than announced."""
        filename = tmp_path / 'truncated'
        filename.write_bytes(make_xrit(0, [IMAGE_STRUCTURE], b'\x00' * 10, data_bits=800))
        with open_xrit(filename) as xrit:
            with pytest.raises(TruncatedFileError):
                xrit.read_data()

    def test_truncated_primary_header(self, tmp_path):
        """Test a file shorter than the primary header."""
        filename = tmp_path / 'short'
        filename.write_bytes(b'\x00\x00\x10\x00')
        with pytest.raises(XRITError):
            open_xrit(filename)

    def test_missing_file(self, tmp_path):
        """Test a missing file."""
        with pytest.raises(FileNotFoundError):
            open_xrit(tmp_path / 'nothing')


class TestUnpack:
    """Test unpacking of the data field."""

    def test_dec10216(self):
        """Test the 10 bit decoding."""
        res = dec10216(np.array([255, 255, 255, 255, 255, 0, 0, 0, 0, 0], dtype=np.uint8))
        np.testing.assert_array_equal(res, [1023, 1023, 1023, 1023, 0, 0, 0, 0])

    def test_10bits(self):
        """Test unpacking 10 bit counts of a size that is no multiple of 4."""
        counts = np.arange(15, dtype=np.uint16).reshape(3, 5) * 60
        res = unpack_counts(pack10(counts), 3, 5, 10)
        assert res.dtype == np.uint16
        np.testing.assert_array_equal(res, counts)

    def test_8_and_16_bits(self):
        """Test unpacking 8 and 16 bit counts."""
        counts = np.arange(6, dtype=np.uint16).reshape(2, 3)
        np.testing.assert_array_equal(unpack_counts(counts.astype(np.uint8).tobytes(), 2, 3, 8), counts)
        np.testing.assert_array_equal(unpack_counts((counts * 1000).astype('>u2').tobytes(), 2, 3, 16),
                                      counts * 1000)

    def test_short_data(self):
        """Test a data field with too few samples."""
        with pytest.raises(TruncatedFileError):
            unpack_counts(b'\x00' * 5, 2, 3, 8)

    def test_unsupported_depth(self):
        """Test an unsupported number of bits per pixel."""
        with pytest.raises(ValueError):
            unpack_counts(b'\x00' * 100, 2, 3, 12)


class TestXRITDecompressTool:
    """Test the external decompressor."""

    def test_outfile(self):
        """Test parsing the tool output."""
        stdout = b'xRITDecompress\nDecompressed file: H-000-MSG4__-decompressed\n'
        assert get_xritdecompress_outfile(stdout, '/tmp') == '/tmp/H-000-MSG4__-decompressed'
        with pytest.raises(IOError):
            get_xritdecompress_outfile(b'nothing', '/tmp')

    def test_not_configured(self):
        """Test that a missing tool path is reported."""
        with pytest.raises(IOError):
            XRITDecompressTool()(b'', 2, 3, 10, filename='some_file.C_')

    @mock.patch('msevi.readers.xrit.subprocess.run')
    def test_decompress(self, run, tmp_path):
        """Test running the tool and reading the decompressed file."""
        counts = np.arange(6, dtype=np.uint16).reshape(2, 3)
        tmp_dir = tmp_path / 'work'
        tmp_dir.mkdir()

        def _run(cmd, cwd, **kwargs):
            with open(cwd + '/decompressed', 'wb') as fd:
                fd.write(make_xrit(0, [], counts.astype('>u2').tobytes()))
            return mock.Mock(returncode=0, stdout=b'Decompressed file: decompressed\n')

        run.side_effect = _run
        tool = XRITDecompressTool(cmd='/opt/xRITDecompress', tmp_dir=str(tmp_dir))
        res = tool(b'', 2, 3, 16, filename='segment.C_')
        np.testing.assert_array_equal(res, counts)
        assert run.call_args[0][0][0] == '/opt/xRITDecompress'

    @mock.patch('msevi.readers.xrit.subprocess.run')
    def test_failure(self, run, tmp_path):
        """Test a failing tool."""
        run.return_value = mock.Mock(returncode=1, stdout=b'')
        tool = XRITDecompressTool(cmd='/opt/xRITDecompress', tmp_dir=str(tmp_path))
        with pytest.raises(IOError):
            tool(b'', 2, 3, 16, filename='segment.C_')
