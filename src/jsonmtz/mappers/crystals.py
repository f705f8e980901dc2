"""
Crystals block mapper.

Maps the crystal -> dataset -> column hierarchy, including the
reflection data of every column, to and from the "Crystals" array.
"""

import logging
from typing import Any

from ..constants import (
    COLUMN_LABEL_LENGTH,
    COLUMN_SOURCE_LENGTH,
    COLUMN_TYPE_LENGTH,
    CRYSTAL_NAME_LENGTH,
    DATASET_NAME_LENGTH,
    GROUP_NAME_LENGTH,
    GROUP_TYPE_LENGTH,
    PROJECT_NAME_LENGTH,
    NodeKind,
)
from ..model import Column, Crystal, Dataset, Record
from ..shapes import is_kind
from .base import Mapper, MapperContext
from .fields import (
    entity_to_tree,
    fits_float32,
    integer_field,
    populate_entity,
    real_field,
    shaped_field,
    string_field,
)

logger = logging.getLogger(__name__)

CRYSTAL_FIELDS = (
    string_field("CrystalName", "name", CRYSTAL_NAME_LENGTH),
    integer_field("CrystalID", "crystal_id"),
    shaped_field("CellConstants", "cell", (6,)),
    string_field("ProjectName", "project_name", PROJECT_NAME_LENGTH),
    real_field("ResolutionMax", "resolution_max"),
    real_field("ResolutionMin", "resolution_min"),
)

DATASET_FIELDS = (
    string_field("DatasetName", "name", DATASET_NAME_LENGTH),
    integer_field("DatasetID", "dataset_id"),
    real_field("Wavelength", "wavelength"),
)

COLUMN_FIELDS = (
    string_field("ColumnSource", "column_source", COLUMN_SOURCE_LENGTH),
    string_field("GroupName", "group_name", GROUP_NAME_LENGTH),
    integer_field("GroupPosition", "group_position"),
    string_field("GroupType", "group_type", GROUP_TYPE_LENGTH),
    string_field("Label", "label", COLUMN_LABEL_LENGTH),
    real_field("MaxValue", "max_value"),
    real_field("MinValue", "min_value"),
    integer_field("ColumnID", "source"),
    string_field("Type", "type", COLUMN_TYPE_LENGTH),
)


class CrystalsMapper(Mapper):
    """
    Maps crystals, their datasets and columns.

    JSON Schema:
    ```json
    "Crystals": [{
        "CrystalName": "xtal", "CrystalID": 1,
        "CellConstants": [50.0, 60.0, 70.0, 90.0, 90.0, 90.0],
        "ProjectName": "proj", "ResolutionMax": 0.25, "ResolutionMin": 0.0004,
        "Datasets": [{
            "DatasetName": "native", "DatasetID": 1, "Wavelength": 0.979,
            "Columns": [{
                "ColumnSource": "", "GroupName": "", "GroupPosition": 0,
                "GroupType": "", "Label": "FP", "MaxValue": 912.0,
                "MinValue": 3.5, "ColumnID": 4, "Type": "F",
                "Data": [12.5, "NaN", 3.5]
            }]
        }]
    }]
    ```

    The array sizes were fixed when the record was allocated; populate()
    only fills values into the existing hierarchy.
    """

    @property
    def block_name(self) -> str:
        return "Crystals"

    def is_required(self) -> bool:
        return True

    def to_tree(self, record: Record, context: MapperContext) -> list[dict[str, Any]]:
        return [self._crystal_to_tree(crystal, record, context) for crystal in record.crystals]

    def _crystal_to_tree(
        self, crystal: Crystal, record: Record, context: MapperContext
    ) -> dict[str, Any]:
        result = entity_to_tree(crystal, CRYSTAL_FIELDS)
        result["Datasets"] = [
            self._dataset_to_tree(dataset, record, context) for dataset in crystal.datasets
        ]
        return result

    def _dataset_to_tree(
        self, dataset: Dataset, record: Record, context: MapperContext
    ) -> dict[str, Any]:
        result = entity_to_tree(dataset, DATASET_FIELDS)
        result["Columns"] = [
            self._column_to_tree(column, record, context) for column in dataset.columns
        ]
        return result

    def _column_to_tree(
        self, column: Column, record: Record, context: MapperContext
    ) -> dict[str, Any]:
        result = entity_to_tree(column, COLUMN_FIELDS)
        result["Data"] = self._data_to_tree(column, record, context)
        return result

    def _data_to_tree(self, column: Column, record: Record, context: MapperContext) -> list:
        """Reflection values, with missing entries replaced by the sentinel token."""
        token = context.missing_token
        return [
            token if record.is_missing(value) else value
            for value in column.data[: record.nref].tolist()
        ]

    def populate(self, record: Record, node: Any, context: MapperContext) -> None:
        for index, (crystal, jcrystal) in enumerate(zip(record.crystals, node)):
            path = f"Crystals[{index}]"
            populate_entity(crystal, jcrystal, CRYSTAL_FIELDS, context, path)
            for set_index, (dataset, jset) in enumerate(
                zip(crystal.datasets, jcrystal["Datasets"])
            ):
                self._populate_dataset(
                    dataset, jset, record, context, f"{path}.Datasets[{set_index}]"
                )

    def _populate_dataset(
        self,
        dataset: Dataset,
        jset: dict[str, Any],
        record: Record,
        context: MapperContext,
        path: str,
    ) -> None:
        populate_entity(dataset, jset, DATASET_FIELDS, context, path)
        for col_index, (column, jcol) in enumerate(zip(dataset.columns, jset["Columns"])):
            col_path = f"{path}.Columns[{col_index}]"
            populate_entity(column, jcol, COLUMN_FIELDS, context, col_path)
            self._populate_data(column, jcol["Data"], context, col_path)

    def _populate_data(
        self, column: Column, values: list, context: MapperContext, path: str
    ) -> None:
        """
        Copy numeric reflection values into a preallocated column.

        Anything that is not a number (the missing token included), and
        any number a float32 cannot hold, keeps the missing-value default
        the column was allocated with.
        """
        skipped = 0
        out_of_range = 0
        for index, value in enumerate(values):
            if is_kind(value, NodeKind.REAL) or is_kind(value, NodeKind.INTEGER):
                try:
                    number = float(value)
                except OverflowError:
                    out_of_range += 1
                    continue
                if not fits_float32(number):
                    out_of_range += 1
                    continue
                column.data[index] = number
            elif value != context.missing_token:
                skipped += 1

        if skipped:
            context.skip_field(f"{path}.Data", f"{skipped} non-numeric value(s)")
        if out_of_range:
            context.skip_field(f"{path}.Data", f"{out_of_range} value(s) out of float32 range")
