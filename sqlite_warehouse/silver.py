"""
Silver layer: cleansed and standardized copies of the bronze tables.

Each silver table is rebuilt from its bronze counterpart only; there are no
cross-table joins at this stage.
"""
import sqlite3
import logging
from datetime import date
from functools import partial
from typing import Callable, Optional

import pandas as pd

from sqlite_warehouse.batch import LayerResult, LoadStep, run_layer
from sqlite_warehouse.cleansing import (
    clean_crm_customers,
    clean_crm_products,
    clean_crm_sales,
    clean_erp_categories,
    clean_erp_customers,
    clean_erp_locations,
)
from sqlite_warehouse.schema import BRONZE_TABLES, SILVER_TABLES, coerce_frame, table_name, to_storage_frame

logger = logging.getLogger("sqlite_warehouse.silver")


def read_bronze(conn: sqlite3.Connection, table: str) -> pd.DataFrame:
    """Read a bronze table and cast it back to its raw column types."""
    columns = BRONZE_TABLES[table]
    select_list = ", ".join(name for name, _ in columns)
    df = pd.read_sql(f"SELECT {select_list} FROM {table_name('bronze', table)}", conn)
    logger.info(f">> Read {len(df)} records from {table_name('bronze', table)}")
    return coerce_frame(df, columns)


def _silver_step(
    conn: sqlite3.Connection,
    group: str,
    table: str,
    transform: Callable[[pd.DataFrame], pd.DataFrame],
) -> LoadStep:
    columns = SILVER_TABLES[table]

    def build_frame() -> pd.DataFrame:
        return to_storage_frame(transform(read_bronze(conn, table)), columns)

    return group, table_name("silver", table), build_frame


def load_silver(conn: sqlite3.Connection, today: Optional[date] = None) -> LayerResult:
    """
    Truncate and rebuild every silver table from bronze.

    Args:
        conn: Open warehouse connection
        today: Reference date for the future-birth-date rule (default: today)

    Returns:
        LayerResult with per-table row counts and durations

    Raises:
        LayerLoadError: on the first table that fails to transform or load
    """
    steps = [
        _silver_step(conn, "CRM", "crm_cust_info", clean_crm_customers),
        _silver_step(conn, "CRM", "crm_prd_info", clean_crm_products),
        _silver_step(conn, "CRM", "crm_sales_details", clean_crm_sales),
        _silver_step(conn, "ERP", "erp_cust_az12", partial(clean_erp_customers, today=today)),
        _silver_step(conn, "ERP", "erp_loc_a101", clean_erp_locations),
        _silver_step(conn, "ERP", "erp_px_cat_g1v2", clean_erp_categories),
    ]
    return run_layer(conn, "silver", steps)
