"""
Reading and writing MTZ files with gemmi.

gemmi keeps datasets in a flat list, each naming its project and
crystal, and stores batch headers as the raw integer and real words of
the MTZ batch record. This module regroups datasets into crystals and
unpacks the batch words into Batch fields, so the rest of the package
only sees the Record model.
"""

import logging
from pathlib import Path
from typing import Union

import gemmi
import numpy as np

from .constants import MAX_SYMMETRY_OPERATIONS, SORT_ORDER_SLOTS
from .errors import RecordIOError
from .model import (
    DEFAULT_MISSING_VALUE,
    Batch,
    Column,
    Crystal,
    Dataset,
    Record,
    Symmetry,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Sizes of the integer and real parts of an MTZ batch header
BATCH_INT_WORDS = 29
BATCH_FLOAT_WORDS = 156

# Position of each integer batch field in Batch.ints
BATCH_INTS = {
    "orientation_block_type": 3,
    "mis_flag": 10,
    "jump_axis": 11,
    "crystal_number": 12,
    "mosaicity_model_flag": 13,
    "data_type_flag": 14,
    "goniostat_scan_axis_number": 15,
    "number_of_batch_scales": 16,
    "number_of_goniostat_axes": 17,
    "beam_info_flag": 18,
    "number_of_detectors": 19,
    "dataset_id": 20,
}
CELL_REFINEMENT_FLAGS_OFFSET = 4

# Offset of each real batch field in Batch.floats; arrays are stored flat
BATCH_FLOATS = {
    "cell": 0,
    "orientation_matrix": 6,
    "missetting_angles": 15,
    "mosaicity": 21,
    "goniostat_datum": 33,
    "start_of_phi": 36,
    "end_of_phi": 37,
    "rotation_axis": 38,
    "start_time": 41,
    "stop_time": 42,
    "scale": 43,
    "temperature_factor": 44,
    "b_scale_sd": 45,
    "b_factor_sd": 46,
    "phi_range": 47,
    "vector1": 59,
    "vector2": 62,
    "vector3": 65,
    "idealised_source_vector": 80,
    "source_vector": 83,
    "wavelength": 86,
    "dispersion": 87,
    "correlated_component": 88,
    "horizontal_beam_divergence": 89,
    "vertical_beam_divergence": 90,
    "detector_distance": 111,
    "theta": 113,
    "detector_limits": 115,
}


# -----------------------------------------------------------------------------
# Reading
# -----------------------------------------------------------------------------


def read_record(path: PathLike) -> Record:
    """
    Read an MTZ file into a Record.

    Raises:
        RecordIOError: If the file does not exist or cannot be parsed
    """
    path = Path(path)
    if not path.is_file():
        raise RecordIOError(f"No such file: {path}")

    try:
        mtz = gemmi.read_mtz_file(str(path))
    except (RuntimeError, OSError, ValueError) as e:
        raise RecordIOError(f"Cannot read MTZ file {path}: {e}") from e

    record = Record(
        nref=mtz.nreflections,
        missing_value=DEFAULT_MISSING_VALUE,
        title=mtz.title,
        history=list(mtz.history),
    )
    record.crystals = _read_crystals(mtz)
    record.symmetry = _read_symmetry(mtz)
    record.batches = [_read_batch(batch) for batch in mtz.batches]

    columns = list(record.iter_columns())
    for slot, index in enumerate(list(mtz.sort_order)[:SORT_ORDER_SLOTS]):
        if 0 < index <= len(columns):
            record.sort_order[slot] = columns[index - 1]

    logger.info(f"Read {path}: {record.nref} reflections, {len(columns)} columns")
    return record


def _read_crystals(mtz: "gemmi.Mtz") -> list[Crystal]:
    """Group gemmi datasets into crystals by project and crystal name."""
    crystals: dict[tuple[str, str], Crystal] = {}
    reso_min, reso_max = float(mtz.min_1_d2), float(mtz.max_1_d2)

    for ds in mtz.datasets:
        key = (ds.project_name, ds.crystal_name)
        crystal = crystals.get(key)
        if crystal is None:
            crystal = Crystal(
                name=ds.crystal_name,
                # gemmi keeps no crystal id; number crystals from 0 in file order
                crystal_id=len(crystals),
                project_name=ds.project_name,
                cell=np.array(ds.cell.parameters, dtype=np.float32),
                resolution_min=reso_min,
                resolution_max=reso_max,
            )
            crystals[key] = crystal

        dataset = Dataset(name=ds.dataset_name, dataset_id=ds.id, wavelength=ds.wavelength)
        dataset.columns = [
            _read_column(col) for col in mtz.columns if col.dataset_id == ds.id
        ]
        crystal.datasets.append(dataset)

    return [crystal for crystal in crystals.values() if crystal.datasets]


def _read_column(col: "gemmi.Mtz.Column") -> Column:
    return Column(
        label=col.label,
        type=col.type,
        column_source=col.source,
        # MTZ column ids are 1-based positions in the reflection table
        source=col.idx + 1,
        min_value=float(col.min_value),
        max_value=float(col.max_value),
        data=np.array(col.array, dtype=np.float32),
    )


def _read_symmetry(mtz: "gemmi.Mtz") -> Symmetry:
    symmetry = Symmetry()
    sg = mtz.spacegroup
    if sg is None:
        return symmetry

    ops = sg.operations()
    all_ops = list(ops)[:MAX_SYMMETRY_OPERATIONS]
    for i, op in enumerate(all_ops):
        symmetry.operations[i] = _op_to_matrix(op)

    symmetry.space_group_number = sg.ccp4
    symmetry.space_group_name = sg.xhm()
    symmetry.point_group_name = f"PG{sg.point_group_hm()}"
    symmetry.space_group_confidence = "X"
    symmetry.nsym = len(all_ops)
    symmetry.nsymp = len(ops.sym_ops)
    symmetry.lattice_type = sg.centring_type()
    return symmetry


def _op_to_matrix(op: "gemmi.Op") -> np.ndarray:
    """Rotation and translation of a symmetry operation as a 4 x 4 matrix."""
    matrix = np.zeros((4, 4), dtype=np.float32)
    for i in range(3):
        for j in range(3):
            matrix[i, j] = op.rot[i][j] / gemmi.Op.DEN
        matrix[i, 3] = op.tran[i] / gemmi.Op.DEN
    matrix[3, 3] = 1.0
    return matrix


def _read_batch(gbatch: "gemmi.Mtz.Batch") -> Batch:
    batch = Batch(title=gbatch.title, number=gbatch.number)
    ints = list(gbatch.ints)
    floats = np.array(list(gbatch.floats), dtype=np.float32)

    if len(ints) >= BATCH_INT_WORDS:
        for attr, index in BATCH_INTS.items():
            setattr(batch, attr, int(ints[index]))
        start = CELL_REFINEMENT_FLAGS_OFFSET
        batch.cell_refinement_flags = [int(v) for v in ints[start : start + 6]]

    if len(floats) >= BATCH_FLOAT_WORDS:
        for attr, offset in BATCH_FLOATS.items():
            default = getattr(batch, attr)
            if isinstance(default, np.ndarray):
                size = default.size
                setattr(batch, attr, floats[offset : offset + size].reshape(default.shape))
            else:
                setattr(batch, attr, float(floats[offset]))

    axes = list(gbatch.axes)[:3]
    batch.axes_labels = axes + [""] * (3 - len(axes))
    return batch


# -----------------------------------------------------------------------------
# Writing
# -----------------------------------------------------------------------------


def write_record(record: Record, path: PathLike) -> None:
    """
    Write a Record as an MTZ file.

    Raises:
        RecordIOError: If gemmi cannot build or write the file
    """
    path = Path(path)
    for note in dropped_blocks(record):
        logger.warning(note)
    try:
        mtz = _build_mtz(record)
        mtz.write_to_file(str(path))
    except (RuntimeError, OSError, ValueError, TypeError, OverflowError) as e:
        raise RecordIOError(f"Cannot write MTZ file {path}: {e}") from e

    logger.info(f"Wrote {path}")


def dropped_blocks(record: Record) -> list[str]:
    """
    Describe record content that an MTZ file written by gemmi cannot hold.

    gemmi discards header records it does not recognise, both when
    reading and when writing, so unknown header lines are lost.
    """
    notes = []
    if record.unknown_headers:
        notes.append(
            f"UnknownHeaders: {len(record.unknown_headers)} line(s) not written, "
            "gemmi does not store unrecognised MTZ header records"
        )
    return notes


def _build_mtz(record: Record) -> "gemmi.Mtz":
    mtz = gemmi.Mtz(with_base=False)
    mtz.title = record.title
    mtz.history = [line.rstrip(" \0") for line in record.history]

    sg = _find_spacegroup(record.symmetry)
    if sg is not None:
        mtz.spacegroup = sg

    first_cell = record.crystals[0].cell
    if np.any(first_cell):
        mtz.cell = gemmi.UnitCell(*[float(v) for v in first_cell])

    for crystal in record.crystals:
        for dataset in crystal.datasets:
            ds = mtz.add_dataset(dataset.name)
            ds.project_name = crystal.project_name
            ds.crystal_name = crystal.name
            ds.wavelength = float(dataset.wavelength)
            if np.any(crystal.cell):
                ds.cell = gemmi.UnitCell(*[float(v) for v in crystal.cell])
            dataset_id = ds.id
            for column in dataset.columns:
                col = mtz.add_column(column.label, column.type or "R", dataset_id=dataset_id)
                col.source = column.column_source

    columns = list(record.iter_columns())
    data = np.column_stack([column.data for column in columns]).astype(np.float32)
    mtz.set_data(data)

    for batch in record.batches:
        mtz.batches.append(_build_batch(batch))

    order = []
    for column in record.sort_order:
        index = next((i for i, c in enumerate(columns) if c is column), None)
        order.append(index + 1 if index is not None else 0)
    mtz.sort_order = order

    # Resolution limits are computed from the Miller indices in columns 1-3
    if len(columns) >= 3 and all(c.type == "H" for c in columns[:3]):
        mtz.update_reso()
    return mtz


def _find_spacegroup(symmetry: Symmetry):
    sg = None
    if symmetry.space_group_number:
        sg = gemmi.find_spacegroup_by_number(symmetry.space_group_number)
    if sg is None and symmetry.space_group_name:
        sg = gemmi.find_spacegroup_by_name(symmetry.space_group_name)
    if sg is None:
        logger.warning(
            f"Unknown space group {symmetry.space_group_number} "
            f"'{symmetry.space_group_name}', symmetry not written"
        )
    return sg


def _build_batch(batch: Batch) -> "gemmi.Mtz.Batch":
    ints = [0] * BATCH_INT_WORDS
    ints[0] = BATCH_INT_WORDS + BATCH_FLOAT_WORDS
    ints[1] = BATCH_INT_WORDS
    ints[2] = BATCH_FLOAT_WORDS
    for attr, index in BATCH_INTS.items():
        ints[index] = int(getattr(batch, attr))
    start = CELL_REFINEMENT_FLAGS_OFFSET
    ints[start : start + 6] = [int(v) for v in batch.cell_refinement_flags]

    floats = np.zeros(BATCH_FLOAT_WORDS, dtype=np.float32)
    for attr, offset in BATCH_FLOATS.items():
        values = np.ravel(np.asarray(getattr(batch, attr), dtype=np.float32))
        floats[offset : offset + values.size] = values

    gbatch = gemmi.Mtz.Batch()
    gbatch.number = int(batch.number)
    gbatch.title = batch.title
    gbatch.ints = ints
    gbatch.floats = floats.tolist()
    gbatch.axes = list(batch.axes_labels)
    return gbatch
