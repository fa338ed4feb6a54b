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
"""Shared preparation and utilities for testing.

This module is executed automatically by pytest.

"""

import pytest

import msevi


@pytest.fixture(autouse=True)
def reset_msevi_config(tmp_path):
    """Set msevi config to logical defaults for tests."""
    test_config = {
        "tmp_dir": str(tmp_path / "tmp"),
        "config_path": [],
        "xrit_decompress_path": None,
        "parallel_segments": False,
        "fill_value": 0,
    }
    with msevi.config.set(test_config):
        yield
