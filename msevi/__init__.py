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
"""Msevi Package initializer.

Decoding of Meteosat SEVIRI level 1.5 HRIT segment files into calibrated,
geolocated scenes.
"""

from msevi.version import version as __version__  # noqa

from msevi._config import config  # noqa
from msevi.image import Coverage, L15Image  # noqa
from msevi.scene import Scene  # noqa
from msevi.utils import get_logger  # noqa

log = get_logger('msevi')
