"""
Table catalog and DDL for the warehouse layers.

All three layers live in one SQLite database file. A layer is expressed as a
table-name prefix, so ``bronze.crm_cust_info`` becomes ``bronze_crm_cust_info``.
"""
import os
import sqlite3
import logging
from typing import Dict, List, Tuple

import pandas as pd

logger = logging.getLogger("sqlite_warehouse.schema")

Columns = List[Tuple[str, str]]

LAYERS = ("bronze", "silver", "gold")

BRONZE_TABLES: Dict[str, Columns] = {
    "crm_cust_info": [
        ("cst_id", "INTEGER"),
        ("cst_key", "TEXT"),
        ("cst_firstname", "TEXT"),
        ("cst_lastname", "TEXT"),
        ("cst_marital_status", "TEXT"),
        ("cst_gndr", "TEXT"),
        ("cst_create_date", "DATE"),
    ],
    "crm_prd_info": [
        ("prd_id", "INTEGER"),
        ("prd_key", "TEXT"),
        ("prd_nm", "TEXT"),
        ("prd_cost", "INTEGER"),
        ("prd_line", "TEXT"),
        ("prd_start_dt", "TIMESTAMP"),
        ("prd_end_dt", "TIMESTAMP"),
    ],
    "crm_sales_details": [
        ("sls_ord_num", "TEXT"),
        ("sls_prd_key", "TEXT"),
        ("sls_cust_id", "INTEGER"),
        ("sls_order_dt", "INTEGER"),
        ("sls_ship_dt", "INTEGER"),
        ("sls_due_dt", "INTEGER"),
        ("sls_sales", "INTEGER"),
        ("sls_quantity", "INTEGER"),
        ("sls_price", "INTEGER"),
    ],
    "erp_loc_a101": [
        ("cid", "TEXT"),
        ("cntry", "TEXT"),
    ],
    "erp_cust_az12": [
        ("cid", "TEXT"),
        ("bdate", "DATE"),
        ("gen", "TEXT"),
    ],
    "erp_px_cat_g1v2": [
        ("id", "TEXT"),
        ("cat", "TEXT"),
        ("subcat", "TEXT"),
        ("maintenance", "TEXT"),
    ],
}

SILVER_TABLES: Dict[str, Columns] = {
    "crm_cust_info": [
        ("cst_id", "INTEGER"),
        ("cst_key", "TEXT"),
        ("cst_firstname", "TEXT"),
        ("cst_lastname", "TEXT"),
        ("cst_marital_status", "TEXT"),
        ("cst_gndr", "TEXT"),
        ("cst_create_date", "DATE"),
    ],
    "crm_prd_info": [
        ("prd_id", "INTEGER"),
        ("cat_id", "TEXT"),
        ("prd_key", "TEXT"),
        ("prd_nm", "TEXT"),
        ("prd_cost", "INTEGER"),
        ("prd_line", "TEXT"),
        ("prd_start_dt", "DATE"),
        ("prd_end_dt", "DATE"),
    ],
    "crm_sales_details": [
        ("sls_ord_num", "TEXT"),
        ("sls_prd_key", "TEXT"),
        ("sls_cust_id", "INTEGER"),
        ("sls_order_dt", "DATE"),
        ("sls_ship_dt", "DATE"),
        ("sls_due_dt", "DATE"),
        ("sls_sales", "REAL"),
        ("sls_quantity", "INTEGER"),
        ("sls_price", "REAL"),
    ],
    "erp_cust_az12": [
        ("cid", "TEXT"),
        ("bdate", "DATE"),
        ("gen", "TEXT"),
    ],
    "erp_loc_a101": [
        ("cid", "TEXT"),
        ("cntry", "TEXT"),
    ],
    "erp_px_cat_g1v2": [
        ("id", "TEXT"),
        ("cat", "TEXT"),
        ("subcat", "TEXT"),
        ("maintenance", "TEXT"),
    ],
}

GOLD_VIEWS = ("dim_customers", "dim_products", "fact_sales")

DATE_FORMAT = "%Y-%m-%d"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def table_name(layer: str, table: str) -> str:
    """Physical name of a layer table, e.g. ``silver_crm_prd_info``."""
    if layer not in LAYERS:
        raise ValueError(f"Unknown layer: {layer}")
    return f"{layer}_{table}"


def create_layer_tables(cursor: sqlite3.Cursor, layer: str, tables: Dict[str, Columns]) -> None:
    """
    Create the tables of one layer if they don't already exist.

    Silver tables get a ``dwh_create_date`` audit column filled by SQLite.
    """
    for table, columns in tables.items():
        column_ddl = [f"{name} {sql_type}" for name, sql_type in columns]
        if layer == "silver":
            column_ddl.append("dwh_create_date TIMESTAMP DEFAULT CURRENT_TIMESTAMP")
        cursor.execute(
            f"CREATE TABLE IF NOT EXISTS {table_name(layer, table)} (\n    "
            + ",\n    ".join(column_ddl)
            + "\n)"
        )


def create_tables(conn: sqlite3.Connection) -> None:
    """Create bronze and silver tables in the warehouse database."""
    cursor = conn.cursor()
    create_layer_tables(cursor, "bronze", BRONZE_TABLES)
    create_layer_tables(cursor, "silver", SILVER_TABLES)
    conn.commit()


def drop_all(conn: sqlite3.Connection) -> None:
    """Drop every gold view and every bronze/silver table."""
    cursor = conn.cursor()
    for view in GOLD_VIEWS:
        cursor.execute(f"DROP VIEW IF EXISTS {table_name('gold', view)}")
    for layer, tables in (("silver", SILVER_TABLES), ("bronze", BRONZE_TABLES)):
        for table in tables:
            cursor.execute(f"DROP TABLE IF EXISTS {table_name(layer, table)}")
    conn.commit()


def init_database(db_file: str) -> None:
    """
    Drop and recreate the warehouse objects in ``db_file``.

    Gold views are not created here; they depend on silver tables and are
    (re)built by the gold layer.

    Args:
        db_file: Path to the SQLite database file
    """
    directory = os.path.dirname(db_file)
    if directory:
        os.makedirs(directory, exist_ok=True)

    conn = sqlite3.connect(db_file)
    try:
        drop_all(conn)
        create_tables(conn)
    finally:
        conn.close()
    logger.info(f"Warehouse database initialised at: {db_file}")


def coerce_frame(df: pd.DataFrame, columns: Columns) -> pd.DataFrame:
    """
    Cast a DataFrame to the declared column types.

    Integers become nullable ``Int64``, dates and timestamps become
    ``datetime64``. A value that can't be cast raises, which aborts the load.

    Args:
        df: Frame holding at least the declared columns
        columns: (column, sql_type) pairs

    Returns:
        A new DataFrame restricted to the declared columns, in declared order
    """
    coerced = pd.DataFrame(index=df.index)
    for name, sql_type in columns:
        values = df[name]
        if sql_type == "INTEGER":
            coerced[name] = pd.to_numeric(values).astype("Int64")
        elif sql_type == "REAL":
            coerced[name] = pd.to_numeric(values).astype("float64")
        elif sql_type == "DATE":
            coerced[name] = pd.to_datetime(values, format="ISO8601").dt.normalize()
        elif sql_type == "TIMESTAMP":
            coerced[name] = pd.to_datetime(values, format="ISO8601")
        else:
            coerced[name] = values.astype(object).where(values.notna(), None)
    return coerced


def to_storage_frame(df: pd.DataFrame, columns: Columns) -> pd.DataFrame:
    """Order columns for insertion and render dates as ISO text."""
    stored = pd.DataFrame(index=df.index)
    for name, sql_type in columns:
        values = df[name]
        if sql_type == "DATE":
            stored[name] = pd.to_datetime(values).dt.strftime(DATE_FORMAT)
        elif sql_type == "TIMESTAMP":
            stored[name] = pd.to_datetime(values).dt.strftime(TIMESTAMP_FORMAT)
        else:
            stored[name] = values
    return stored.reset_index(drop=True)
