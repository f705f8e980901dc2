"""
In-memory model of an MTZ reflection file.

The hierarchy mirrors the MTZ header: a Record owns crystals, each
crystal owns datasets and each dataset owns columns of reflection data.
Batch headers and the symmetry block hang off the Record. Every column
holds exactly ``Record.nref`` values.

Records are built with allocate_record(), which sizes the hierarchy up
front and fills every field with its default: empty strings, zeros and,
for reflection data, the record's missing-value marker.
"""

import math
from dataclasses import dataclass, field
from typing import Iterator, Optional, Sequence

import numpy as np

from .constants import SORT_ORDER_SLOTS, SYMMETRY_SHAPE

# Missing number flag used by MTZ files unless the header says otherwise
DEFAULT_MISSING_VALUE = float("nan")


def _zeros(*shape: int) -> np.ndarray:
    return np.zeros(shape, dtype=np.float32)


@dataclass
class Column:
    """A labelled reflection data column."""

    label: str = ""
    type: str = ""
    group_name: str = ""
    group_type: str = ""
    group_position: int = 0
    column_source: str = ""
    source: int = 0
    min_value: float = 0.0
    max_value: float = 0.0
    data: np.ndarray = field(default_factory=lambda: _zeros(0))


@dataclass
class Dataset:
    """A dataset (e.g. one wavelength) of a crystal."""

    name: str = ""
    dataset_id: int = 0
    wavelength: float = 0.0
    columns: list[Column] = field(default_factory=list)


@dataclass
class Crystal:
    """A crystal with its unit cell and datasets."""

    name: str = ""
    crystal_id: int = 0
    project_name: str = ""
    cell: np.ndarray = field(default_factory=lambda: _zeros(6))
    resolution_min: float = 0.0
    resolution_max: float = 0.0
    datasets: list[Dataset] = field(default_factory=list)


@dataclass
class Batch:
    """
    Orientation and geometry header of one image batch.

    Shaped fields keep the dimensions of the MTZ batch header, e.g.
    detector_limits is 2 detectors x 2 axes x (min, max).
    """

    title: str = ""
    dataset_id: int = 0
    crystal_number: int = 0
    number: int = 0
    wavelength: float = 0.0
    cell: np.ndarray = field(default_factory=lambda: _zeros(6))
    orientation_matrix: np.ndarray = field(default_factory=lambda: _zeros(9))
    temperature_factor: float = 0.0
    scale: float = 0.0
    mosaicity: np.ndarray = field(default_factory=lambda: _zeros(12))
    goniostat_datum: np.ndarray = field(default_factory=lambda: _zeros(3))
    dispersion: float = 0.0
    correlated_component: float = 0.0
    detector_limits: np.ndarray = field(default_factory=lambda: _zeros(2, 2, 2))
    horizontal_beam_divergence: float = 0.0
    vertical_beam_divergence: float = 0.0
    detector_distance: np.ndarray = field(default_factory=lambda: _zeros(2))
    vector1: np.ndarray = field(default_factory=lambda: _zeros(3))
    vector2: np.ndarray = field(default_factory=lambda: _zeros(3))
    vector3: np.ndarray = field(default_factory=lambda: _zeros(3))
    axes_labels: list[str] = field(default_factory=lambda: ["", "", ""])
    orientation_block_type: int = 0
    goniostat_scan_axis_number: int = 0
    jump_axis: int = 0
    cell_refinement_flags: list[int] = field(default_factory=lambda: [0] * 6)
    beam_info_flag: int = 0
    mosaicity_model_flag: int = 0
    data_type_flag: int = 0
    mis_flag: int = 0
    number_of_batch_scales: int = 0
    number_of_detectors: int = 0
    number_of_goniostat_axes: int = 0
    end_of_phi: float = 0.0
    phi_range: float = 0.0
    start_of_phi: float = 0.0
    missetting_angles: np.ndarray = field(default_factory=lambda: _zeros(2, 3))
    rotation_axis: np.ndarray = field(default_factory=lambda: _zeros(3))
    b_factor_sd: float = 0.0
    b_scale_sd: float = 0.0
    source_vector: np.ndarray = field(default_factory=lambda: _zeros(3))
    idealised_source_vector: np.ndarray = field(default_factory=lambda: _zeros(3))
    theta: np.ndarray = field(default_factory=lambda: _zeros(2))
    start_time: float = 0.0
    stop_time: float = 0.0


@dataclass
class Symmetry:
    """Space group information and symmetry operation matrices."""

    space_group_number: int = 0
    space_group_name: str = ""
    point_group_name: str = ""
    space_group_confidence: str = ""
    nsym: int = 0
    nsymp: int = 0
    operations: np.ndarray = field(default_factory=lambda: _zeros(*SYMMETRY_SHAPE))
    lattice_type: str = ""


@dataclass
class Record:
    """
    A complete MTZ file held in memory.

    Attributes:
        nref: Number of reflections, shared by every column
        missing_value: Marker stored in columns for unmeasured reflections
        title: File title
        history: History lines, oldest first
        crystals: Crystals in file order
        symmetry: The symmetry block
        batches: Batch headers in file order
        sort_order: Columns the reflections are sorted by (None if unset)
        unknown_headers: Raw header lines not understood by the MTZ reader
    """

    nref: int = 0
    missing_value: float = DEFAULT_MISSING_VALUE
    title: str = ""
    history: list[str] = field(default_factory=list)
    crystals: list[Crystal] = field(default_factory=list)
    symmetry: Symmetry = field(default_factory=Symmetry)
    batches: list[Batch] = field(default_factory=list)
    sort_order: list[Optional[Column]] = field(
        default_factory=lambda: [None] * SORT_ORDER_SLOTS
    )
    unknown_headers: list[str] = field(default_factory=list)

    def is_missing(self, value: float) -> bool:
        """Check whether a reflection value is the missing-value marker."""
        if math.isnan(self.missing_value):
            return math.isnan(value)
        return value == self.missing_value

    def iter_columns(self) -> Iterator[Column]:
        """Iterate over all columns, crystal by crystal, dataset by dataset."""
        for crystal in self.crystals:
            for dataset in crystal.datasets:
                yield from dataset.columns

    def find_column_by_source(self, source: int) -> Optional[Column]:
        """Return the first column with the given id, or None."""
        for column in self.iter_columns():
            if column.source == source:
                return column
        return None

    def add_history_line(self, line: str) -> None:
        """Append a line to the history."""
        self.history.append(line)


def allocate_columns(
    dataset: Dataset,
    ncol: int,
    nref: int,
    missing_value: float = DEFAULT_MISSING_VALUE,
) -> Dataset:
    """
    Give a dataset ncol default columns of nref missing values each.

    Returns:
        The same dataset, for chaining
    """
    dataset.columns = [
        Column(data=np.full(nref, missing_value, dtype=np.float32)) for _ in range(ncol)
    ]
    return dataset


def allocate_record(
    dataset_counts: Sequence[int],
    nref: int,
    missing_value: float = DEFAULT_MISSING_VALUE,
) -> Record:
    """
    Allocate a Record with one crystal per entry of dataset_counts.

    Args:
        dataset_counts: Number of datasets of each crystal
        nref: Number of reflections per column
        missing_value: Missing-value marker of the new record

    Returns:
        Record with default crystals and datasets. Columns are added
        per dataset with allocate_columns().

    Raises:
        ValueError: If there are no crystals or nref is negative
    """
    if not dataset_counts:
        raise ValueError("A record needs at least one crystal")
    if nref < 0:
        raise ValueError(f"Invalid reflection count: {nref}")

    crystals = [
        Crystal(datasets=[Dataset() for _ in range(nsets)]) for nsets in dataset_counts
    ]
    return Record(nref=nref, missing_value=missing_value, crystals=crystals)
