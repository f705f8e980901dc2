"""
Batches block mapper.

Maps the per-image orientation and geometry headers of multi-record
MTZ files to and from the "Batches" array.
"""

from typing import Any

from ..constants import AXIS_LABEL_LENGTH, BATCH_TITLE_LENGTH, NodeKind
from ..model import Batch, Record
from ..shapes import is_homogeneous_object
from .base import Mapper, MapperContext
from .fields import (
    entity_to_tree,
    integer_field,
    populate_entity,
    real_field,
    shaped_field,
    string_field,
)

BATCH_FIELDS = (
    string_field("Title", "title", BATCH_TITLE_LENGTH),
    integer_field("DatasetID", "dataset_id"),
    integer_field("CrystalNumber", "crystal_number"),
    integer_field("BatchNumber", "number"),
    real_field("Wavelength", "wavelength"),
    shaped_field("CellDimensions", "cell", (6,)),
    shaped_field("OrientationMatrix", "orientation_matrix", (9,)),
    real_field("TemperatureFactor", "temperature_factor"),
    real_field("Scale", "scale"),
    shaped_field("Mosaicity", "mosaicity", (12,)),
    shaped_field("GoniostatDatum", "goniostat_datum", (3,)),
    real_field("Dispersion", "dispersion"),
    real_field("CorrelatedComponent", "correlated_component"),
    shaped_field("DetectorLimits", "detector_limits", (2, 2, 2)),
    real_field("HorizontalBeamDivergence", "horizontal_beam_divergence"),
    real_field("VerticalBeamDivergence", "vertical_beam_divergence"),
    shaped_field("DetectorDistance", "detector_distance", (2,)),
    shaped_field("Vector1", "vector1", (3,)),
    shaped_field("Vector2", "vector2", (3,)),
    shaped_field("Vector3", "vector3", (3,)),
    shaped_field("AxesLabels", "axes_labels", (3,), NodeKind.STRING, AXIS_LABEL_LENGTH),
    integer_field("OrientationBlockType", "orientation_block_type"),
    integer_field("GoniostatScanAxisNumber", "goniostat_scan_axis_number"),
    integer_field("JumpAxis", "jump_axis"),
    shaped_field("CellRefinementFlags", "cell_refinement_flags", (6,), NodeKind.INTEGER),
    integer_field("BeamInfoFlag", "beam_info_flag"),
    integer_field("MosaicityModelFlag", "mosaicity_model_flag"),
    integer_field("DataTypeFlag", "data_type_flag"),
    integer_field("MisFlag", "mis_flag"),
    integer_field("NumberOfBatchScales", "number_of_batch_scales"),
    integer_field("NumberOfDetectors", "number_of_detectors"),
    integer_field("NumberOfGoniostatAxes", "number_of_goniostat_axes"),
    real_field("EndOfPhi", "end_of_phi"),
    real_field("PhiRange", "phi_range"),
    real_field("StartOfPhi", "start_of_phi"),
    shaped_field("MissettingAngles", "missetting_angles", (2, 3)),
    shaped_field("RotationAxis", "rotation_axis", (3,)),
    real_field("BFactorSD", "b_factor_sd"),
    real_field("BScaleSD", "b_scale_sd"),
    shaped_field("SourceVector", "source_vector", (3,)),
    shaped_field("IdealisedSourceVector", "idealised_source_vector", (3,)),
    shaped_field("Theta", "theta", (2,)),
    real_field("StartTime", "start_time"),
    real_field("StopTime", "stop_time"),
)


class BatchesMapper(Mapper):
    """
    Maps batch headers in file order.

    Every shaped field must match its declared dimensions exactly
    (e.g. DetectorLimits is 2 x 2 x 2 reals). A malformed field is
    skipped on its own; the rest of the batch is still read.
    """

    @property
    def block_name(self) -> str:
        return "Batches"

    def is_required(self) -> bool:
        return True

    def to_tree(self, record: Record, context: MapperContext) -> list[dict[str, Any]]:
        return [entity_to_tree(batch, BATCH_FIELDS) for batch in record.batches]

    def populate(self, record: Record, node: Any, context: MapperContext) -> None:
        if not is_homogeneous_object(node):
            context.skip_field("Batches", "expected an array of objects")
            return

        batches = []
        for index, jbatch in enumerate(node):
            batch = Batch()
            populate_entity(batch, jbatch, BATCH_FIELDS, context, f"Batches[{index}]")
            batches.append(batch)
        record.batches = batches
