"""
Bronze layer: full-refresh load of the six raw CSV extracts.

Each destination table is truncated and reloaded verbatim from its source
file. Values are only cast to the raw column types.
"""
import os
import csv
import sqlite3
import logging
from typing import List

import pandas as pd

from sqlite_warehouse.batch import CsvStructureError, LayerResult, LoadStep, run_layer
from sqlite_warehouse.schema import BRONZE_TABLES, Columns, coerce_frame, table_name, to_storage_frame

logger = logging.getLogger("sqlite_warehouse.bronze")

SOURCE_FILES = {
    "crm_cust_info": os.path.join("source_crm", "cust_info.csv"),
    "crm_prd_info": os.path.join("source_crm", "prd_info.csv"),
    "crm_sales_details": os.path.join("source_crm", "sales_details.csv"),
    "erp_loc_a101": os.path.join("source_erp", "loc_a101.csv"),
    "erp_cust_az12": os.path.join("source_erp", "cust_az12.csv"),
    "erp_px_cat_g1v2": os.path.join("source_erp", "px_cat_g1v2.csv"),
}


def source_group(table: str) -> str:
    """'crm_cust_info' -> 'CRM'."""
    return table.split("_", 1)[0].upper()


def validate_csv_structure(csv_file: str, required_columns: List[str]) -> None:
    """
    Validate the header of a source CSV file.

    Args:
        csv_file: Path to the CSV file
        required_columns: Column names the destination table expects

    Raises:
        FileNotFoundError: if the file doesn't exist
        CsvStructureError: if the header is missing, incomplete or has extra columns
    """
    with open(csv_file, newline='', encoding='utf-8') as f:
        reader = csv.reader(f)
        header = next(reader, None)

    if not header:
        raise CsvStructureError(f"CSV file is empty or has no headers: {csv_file}")

    csv_columns = [column.strip() for column in header]
    missing_columns = [col for col in required_columns if col not in csv_columns]
    if missing_columns:
        raise CsvStructureError(f"CSV file {csv_file} is missing required columns: {missing_columns}")

    extra_columns = [col for col in csv_columns if col not in required_columns]
    if extra_columns:
        raise CsvStructureError(f"CSV file {csv_file} has unexpected columns: {extra_columns}")


def read_source_csv(csv_file: str, columns: Columns) -> pd.DataFrame:
    """
    Read a header-bearing, comma-delimited extract and cast it to raw types.

    Empty fields are read as NULL.
    """
    validate_csv_structure(csv_file, [name for name, _ in columns])
    raw = pd.read_csv(
        csv_file,
        sep=",",
        dtype=str,
        encoding="utf-8",
        keep_default_na=False,
        na_values=[""],
    )
    raw.columns = [column.strip() for column in raw.columns]
    return coerce_frame(raw, columns)


def _bronze_step(datasets_dir: str, table: str) -> LoadStep:
    columns = BRONZE_TABLES[table]
    csv_file = os.path.join(datasets_dir, SOURCE_FILES[table])

    def build_frame() -> pd.DataFrame:
        logger.info(f">> Reading Source File: {csv_file}")
        return to_storage_frame(read_source_csv(csv_file, columns), columns)

    return source_group(table), table_name("bronze", table), build_frame


def load_bronze(conn: sqlite3.Connection, datasets_dir: str) -> LayerResult:
    """
    Truncate and reload every bronze table from the source extracts.

    Args:
        conn: Open warehouse connection
        datasets_dir: Directory holding the source_crm/ and source_erp/ folders

    Returns:
        LayerResult with per-table row counts and durations

    Raises:
        LayerLoadError: if any file is missing, malformed or fails to load
    """
    steps = [_bronze_step(datasets_dir, table) for table in SOURCE_FILES]
    return run_layer(conn, "bronze", steps)
