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
"""Layout of the SEVIRI level 1.5 prologue and epilogue data fields.

Every block is described by an explicit table of ``(name, byte offset,
format)`` entries and turned into a big-endian numpy dtype.  Bytes not
covered by a table entry are skipped.  All tables are checked on import
for overlapping fields, and the top-level sections against the section
lengths of the MSG Level 1.5 Image Data Format Description
(EUM/MSG/ICD/105).
"""

import numpy as np

from msevi.readers.eum_base import issue_revision, time_cds_expanded, time_cds_short

NCHANNELS = 12


def make_layout(name, itemsize, fields):
    """Build a dtype of *itemsize* bytes from a ``(name, offset, format)`` table.

    Raises:
        ValueError: if two fields overlap or a field exceeds *itemsize*.
    """
    names, formats, offsets = [], [], []
    end = 0
    for field_name, offset, fmt in fields:
        dtype = np.dtype(fmt)
        if offset < end:
            raise ValueError("{}.{} at offset {} overlaps the previous field ending at {}".format(
                name, field_name, offset, end))
        end = offset + dtype.itemsize
        names.append(field_name)
        formats.append(dtype)
        offsets.append(offset)
    if end > itemsize:
        raise ValueError("{} fields end at {}, beyond the block length {}".format(name, end, itemsize))
    return np.dtype({'names': names, 'formats': formats, 'offsets': offsets,
                     'itemsize': itemsize})


def check_sections(name, sections, total_length):
    """Check that the ``(name, offset, dtype)`` *sections* tile *total_length* bytes."""
    end = 0
    for section_name, offset, dtype in sections:
        if offset != end:
            raise ValueError("{}.{} starts at {}, expected {}".format(name, section_name, offset, end))
        end = offset + dtype.itemsize
    if end != total_length:
        raise ValueError("{} sections end at {}, expected {}".format(name, end, total_length))


def _opaque(length):
    return np.dtype(('V', length))


def _is_opaque(dtype):
    return dtype.kind == 'V' and dtype.names is None and dtype.subdtype is None


coverage = make_layout('Coverage', 16, [
    ('SouthernLine', 0, '>i4'),
    ('NorthernLine', 4, '>i4'),
    ('EasternColumn', 8, '>i4'),
    ('WesternColumn', 12, '>i4'),
])

hrv_coverage = make_layout('HRVCoverage', 32, [
    ('Lower', 0, coverage),
    ('Upper', 16, coverage),
])

# Prologue

satellite_definition = make_layout('SatelliteDefinition', 7, [
    ('SatelliteId', 0, '>u2'),
    ('NominalLongitude', 2, '>f4'),
    ('SatelliteStatus', 6, 'u1'),
])

satellite_operations = make_layout('SatelliteOperations', 28, [
    ('LastManoeuvreFlag', 0, '?'),
    ('LastManoeuvreStartTime', 1, time_cds_short),
    ('LastManoeuvreEndTime', 7, time_cds_short),
    ('LastManoeuvreType', 13, 'u1'),
    ('NextManoeuvreFlag', 14, '?'),
    ('NextManoeuvreStartTime', 15, time_cds_short),
    ('NextManoeuvreEndTime', 21, time_cds_short),
    ('NextManoeuvreType', 27, 'u1'),
])

orbit_coef = make_layout('OrbitCoef', 396, [
    ('StartTime', 0, time_cds_short),
    ('EndTime', 6, time_cds_short),
    ('X', 12, ('>f8', (8,))),
    ('Y', 76, ('>f8', (8,))),
    ('Z', 140, ('>f8', (8,))),
    ('VX', 204, ('>f8', (8,))),
    ('VY', 268, ('>f8', (8,))),
    ('VZ', 332, ('>f8', (8,))),
])

orbit = make_layout('Orbit', 39612, [
    ('PeriodStartTime', 0, time_cds_short),
    ('PeriodEndTime', 6, time_cds_short),
    ('OrbitPolynomial', 12, (orbit_coef, (100,))),
])

attitude_coef = make_layout('AttitudeCoef', 204, [
    ('StartTime', 0, time_cds_short),
    ('EndTime', 6, time_cds_short),
    ('XofSpinAxis', 12, ('>f8', (8,))),
    ('YofSpinAxis', 76, ('>f8', (8,))),
    ('ZofSpinAxis', 140, ('>f8', (8,))),
])

attitude = make_layout('Attitude', 20420, [
    ('PeriodStartTime', 0, time_cds_short),
    ('PeriodEndTime', 6, time_cds_short),
    ('PrincipleAxisOffsetAngle', 12, '>f8'),
    ('AttitudePolynomial', 20, (attitude_coef, (100,))),
])

utc_correlation = make_layout('UTCCorrelation', 59, [
    ('PeriodStartTime', 0, time_cds_short),
    ('PeriodEndTime', 6, time_cds_short),
    ('OnBoardTimeStart', 12, ('u1', (7,))),
    ('VarOnBoardTimeStart', 19, '>f8'),
    ('A1', 27, '>f8'),
    ('VarA1', 35, '>f8'),
    ('A2', 43, '>f8'),
    ('VarA2', 51, '>f8'),
])

satellite_status = make_layout('SatelliteStatus', 60134, [
    ('SatelliteDefinition', 0, satellite_definition),
    ('SatelliteOperations', 7, satellite_operations),
    ('Orbit', 35, orbit),
    ('Attitude', 39647, attitude),
    ('SpinRetreatRCStart', 60067, '>f8'),
    ('UTCCorrelation', 60075, utc_correlation),
])

planned_acquisition_time = make_layout('PlannedAcquisitionTime', 30, [
    ('TrueRepeatCycleStart', 0, time_cds_expanded),
    ('PlanForwardScanEnd', 10, time_cds_expanded),
    ('PlannedRepeatCycleEnd', 20, time_cds_expanded),
])

image_acquisition = make_layout('ImageAcquisition', 700, [
    ('PlannedAcquisitionTime', 0, planned_acquisition_time),
    ('ChannelStatus', 30, ('u1', (NCHANNELS,))),
    ('DetectorStatus', 42, ('u1', (42,))),
])

relation_to_image = make_layout('RelationToImage', 16, [
    ('TypeOfEclipse', 0, 'u1'),
    ('EclipseStartTime', 1, time_cds_short),
    ('EclipseEndTime', 7, time_cds_short),
    ('VisibleBodiesInImage', 13, 'u1'),
    ('BodiesCloseToFOV', 14, 'u1'),
    ('ImpactOnImageQuality', 15, 'u1'),
])

celestial_events = make_layout('CelestialEvents', 326058, [
    ('PeriodStartTime', 0, time_cds_short),
    ('PeriodEndTime', 6, time_cds_short),
    ('RelationToImage', 326042, relation_to_image),
])

reference_grid = make_layout('ReferenceGrid', 17, [
    ('NumberOfLines', 0, '>i4'),
    ('NumberOfColumns', 4, '>i4'),
    ('LineDirGridStep', 8, '>f4'),
    ('ColumnDirGridStep', 12, '>f4'),
    ('GridOrigin', 16, 'u1'),
])

level15_image_production = make_layout('Level15ImageProduction', 14, [
    ('ImageProcDirection', 0, 'u1'),
    ('PixelGenDirection', 1, 'u1'),
    ('PlannedChanProcessing', 2, ('u1', (NCHANNELS,))),
])

image_description = make_layout('ImageDescription', 101, [
    ('TypeOfProjection', 0, 'u1'),
    ('LongitudeOfSSP', 1, '>f4'),
    ('ReferenceGridVIS_IR', 5, reference_grid),
    ('ReferenceGridHRV', 22, reference_grid),
    ('PlannedCoverageVIS_IR', 39, coverage),
    ('PlannedCoverageHRV', 55, hrv_coverage),
    ('Level15ImageProduction', 87, level15_image_production),
])

rp_summary = make_layout('RPSummary', 72, [
    ('RadianceLinearization', 0, ('?', (NCHANNELS,))),
    ('DetectorEqualization', 12, ('?', (NCHANNELS,))),
    ('OnboardCalibrationResult', 24, ('?', (NCHANNELS,))),
    ('MPEFCalFeedback', 36, ('?', (NCHANNELS,))),
    ('MTFAdaptation', 48, ('?', (NCHANNELS,))),
    ('StrayLightCorrection', 60, ('?', (NCHANNELS,))),
])

calibration_coef = make_layout('CalibrationCoef', 16, [
    ('CalSlope', 0, '>f8'),
    ('CalOffset', 8, '>f8'),
])

radiometric_processing = make_layout('RadiometricProcessing', 20815, [
    ('RPSummary', 0, rp_summary),
    ('Level15ImageCalibration', 72, (calibration_coef, (NCHANNELS,))),
])

earth_model = make_layout('EarthModel', 25, [
    ('TypeOfEarthModel', 0, 'u1'),
    ('EquatorialRadius', 1, '>f8'),
    ('NorthPolarRadius', 9, '>f8'),
    ('SouthPolarRadius', 17, '>f8'),
])

geometric_processing = make_layout('GeometricProcessing', 17653, [
    ('E-WFocalPlane', 0, ('>f4', (42,))),
    ('N-SFocalPlane', 168, ('>f4', (42,))),
    ('EarthModel', 336, earth_model),
    ('AtmosphericModel', 361, ('>f4', (NCHANNELS, 360))),
    ('ResamplingFunctions', 17641, ('u1', (NCHANNELS,))),
])

PROLOGUE_LENGTH = 425461
PROLOGUE_SECTIONS = [
    ('SatelliteStatus', 0, satellite_status),
    ('ImageAcquisition', 60134, image_acquisition),
    ('CelestialEvents', 60834, celestial_events),
    ('ImageDescription', 386892, image_description),
    ('RadiometricProcessing', 386993, radiometric_processing),
    ('GeometricProcessing', 407808, geometric_processing),
]
check_sections('Prologue', PROLOGUE_SECTIONS, PROLOGUE_LENGTH)
hrit_prologue = make_layout('Prologue', PROLOGUE_LENGTH, PROLOGUE_SECTIONS)

IMPF_CONFIGURATION_LENGTH = 19786
impf_configuration = make_layout('ImpfConfiguration', IMPF_CONFIGURATION_LENGTH, [
    ('OverallConfiguration', 0, issue_revision),
])

# Epilogue

actual_scanning_summary = make_layout('ActualScanningSummary', 14, [
    ('NominalImageScanning', 0, 'u1'),
    ('ReducedScan', 1, 'u1'),
    ('ForwardScanStart', 2, time_cds_short),
    ('ForwardScanEnd', 8, time_cds_short),
])

radiometer_behaviour = make_layout('RadiometerBehaviour', 12, [
    ('NominalBehaviour', 0, 'u1'),
    ('RadScanIrregularity', 1, 'u1'),
    ('RadStoppage', 2, 'u1'),
    ('RepeatCycleNotCompleted', 3, 'u1'),
    ('GainChangeTookPlace', 4, 'u1'),
    ('DecontaminationTookPlace', 5, 'u1'),
    ('NoBBCalibrationAchieved', 6, 'u1'),
    ('IncorrectTemperature', 7, 'u1'),
    ('InvalidBBData', 8, 'u1'),
    ('InvalidAuxOrHKTMData', 9, 'u1'),
    ('RefocusingMechanismActuated', 10, 'u1'),
    ('MirrorBackToReferencePos', 11, 'u1'),
])

reception_summary_stats = make_layout('ReceptionSummaryStats', 192, [
    ('PlannedNumberOfL10Lines', 0, ('>u4', (NCHANNELS,))),
    ('NumberOfMissingL10Lines', 48, ('>u4', (NCHANNELS,))),
    ('NumberOfCorruptedL10Lines', 96, ('>u4', (NCHANNELS,))),
    ('NumberOfReplacedL10Lines', 144, ('>u4', (NCHANNELS,))),
])

image_validity = make_layout('L15ImageValidity', 6, [
    ('NominalImage', 0, '?'),
    ('NonNominalBecauseIncomplete', 1, '?'),
    ('NonNominalRadiometricQuality', 2, '?'),
    ('NonNominalGeometricQuality', 3, '?'),
    ('NonNominalTimeliness', 4, '?'),
    ('IncompleteL15', 5, '?'),
])

image_production_stats = make_layout('ImageProductionStats', 340, [
    ('SatelliteId', 0, '>u2'),
    ('ActualScanningSummary', 2, actual_scanning_summary),
    ('RadiometerBehaviour', 16, radiometer_behaviour),
    ('ReceptionSummaryStats', 28, reception_summary_stats),
    ('L15ImageValidity', 220, (image_validity, (NCHANNELS,))),
    ('ActualL15CoverageVIS_IR', 292, coverage),
    ('ActualL15CoverageHRV', 308, hrv_coverage),
])

timeliness = make_layout('Timeliness', 12, [
    ('MaxDelay', 0, '>f4'),
    ('MinDelay', 4, '>f4'),
    ('MeanDelay', 8, '>f4'),
])

completeness = make_layout('Completeness', 10, [
    ('PlannedL15ImageLines', 0, '>u2'),
    ('GeneratedL15ImageLines', 2, '>u2'),
    ('ValidL15ImageLines', 4, '>u2'),
    ('DummyL15ImageLines', 6, '>u2'),
    ('CorruptedL15ImageLines', 8, '>u2'),
])

timeliness_and_completeness = make_layout('TimelinessAndCompleteness', 132, [
    ('Timeliness', 0, timeliness),
    ('Completeness', 12, (completeness, (NCHANNELS,))),
])

EPILOGUE_LENGTH = 380325
EPILOGUE_SECTIONS = [
    ('15TRAILERVersion', 0, np.dtype('u1')),
    ('ImageProductionStats', 1, image_production_stats),
    ('NavigationExtractionResults', 341, _opaque(5680)),
    ('RadiometricQuality', 6021, _opaque(371256)),
    ('GeometricQuality', 377277, _opaque(2916)),
    ('TimelinessAndCompleteness', 380193, timeliness_and_completeness),
]
check_sections('Epilogue', EPILOGUE_SECTIONS, EPILOGUE_LENGTH)
hrit_epilogue = make_layout('Epilogue', EPILOGUE_LENGTH,
                            [section for section in EPILOGUE_SECTIONS
                             if not _is_opaque(section[2])])
