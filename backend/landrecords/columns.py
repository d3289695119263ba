from __future__ import annotations

from enum import Enum
from typing import Tuple

# Source table of pre-loaded plot records
PLOT_TABLE = "all_data"
PRIMARY_KEY = "ID"

# Location hierarchy, shallowest first. Filter predicates are always emitted in this order.
NODE = "NAME_OF_NODE"
SECTOR = "SECTOR_NO_"
BLOCK = "BLOCK_ROAD_NAME"
PLOT = "PLOT_NO_"

HIERARCHY: Tuple[Tuple[str, str], ...] = (
    ("node", NODE),
    ("sector", SECTOR),
    ("block", BLOCK),
    ("plot", PLOT),
)
HIERARCHY_LEVELS: Tuple[str, ...] = tuple(level for level, _ in HIERARCHY)

# Text columns holding numbers with formatting noise (currency, commas)
AREA_FOR_INVOICE = "PLOT_AREA_FOR_INVOICE"
ADDITIONAL_PLOT_COUNT = "Additional_Plot_Count"

SUBMISSION = "SUBMISSION"

# Ownership transfers after the original allottee: 2nd .. 11th owner
OWNER_ORDINALS: Tuple[str, ...] = ("2ND", "3RD", "4TH", "5TH", "6TH", "7TH", "8TH", "9TH", "10TH", "11TH")


def owner_columns(ordinal: str) -> Tuple[str, str]:
    """Return the (name, transfer date) column pair for one owner slot."""
    return f"NAME_OF_{ordinal}_OWNER", f"_{ordinal}_OWNER_TRANSFER_DATE"


OWNER_HISTORY_COLUMNS: Tuple[str, ...] = tuple(col for o in OWNER_ORDINALS for col in owner_columns(o))

# Every writable column of a plot record, in storage order. ID is never writable.
PLOT_COLUMNS: Tuple[str, ...] = (
    NODE,
    SECTOR,
    BLOCK,
    "PLOT_NO_AFTER_SURVEY",
    PLOT,
    "SUB_PLOT_NO_",
    "UID",
    "DATE_OF_ALLOTMENT",
    "NAME_OF_ORIGINAL_ALLOTTEE",
    "PLOT_AREA_SQM_",
    "BUILTUP_AREA_SQM_",
    "USE_OF_PLOT_ACCORDING_TO_FILE",
    "TOTAL_PRICE_RS_",
    "RATE_SQM_",
    "LEASE_TERM_YEARS_",
    "FSI",
    "COMENCEMENT_CERTIFICATE",
    "OCCUPANCY_CERTIFICATE",
    *OWNER_HISTORY_COLUMNS,
    "INVESTIGATOR_REMARKS",
    "INVESTIGATOR_NAME",
    "FILE_LOCATION",
    "FILE_NAME",
    "TOTAL_AREA_SQM",
    "USE_OF_PLOT",
    "SUB_USE_OF_PLOT",
    "PLOT_STATUS",
    "SURVEY_REMARKS",
    "PHOTO_FOLDER",
    "PLANNING_USE",
    AREA_FOR_INVOICE,
    "PLOT_USE_FOR_INVOICE",
    "Tentative_Plot_Count",
    "Minimum_Plot_Count",
    ADDITIONAL_PLOT_COUNT,
    "Percentage_Match",
    "Department_Remark",
    "MAP_AREA",
    SUBMISSION,
    "IMAGES_PRESENT",
    "PDFS_PRESENT",
)

# Columns returned by the hierarchy search
SEARCH_COLUMNS: Tuple[str, ...] = (PRIMARY_KEY, NODE, SECTOR, BLOCK, PLOT, "PLOT_NO_AFTER_SURVEY")


class GroupColumn(str, Enum):
    """Categorical columns a summary report may be grouped by."""

    PLOT_USE = "PLOT_USE_FOR_INVOICE"
    DEPARTMENT_REMARK = "Department_Remark"
