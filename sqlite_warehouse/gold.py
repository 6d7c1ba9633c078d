"""
Gold layer: star schema views over the silver tables.

The views are computed on read; (re)creating them is cheap and leaves no
data behind.
"""
import sqlite3
import logging
import time

import pandas as pd

from sqlite_warehouse.batch import BANNER, LayerLoadError, LayerResult, TableLoad, error_code, log_failure
from sqlite_warehouse.schema import GOLD_VIEWS, table_name

logger = logging.getLogger("sqlite_warehouse.gold")

GOLD_VIEW_SQL = {
    "dim_customers": """
        SELECT
            ROW_NUMBER() OVER (ORDER BY ci.cst_id) AS customer_key,
            ci.cst_id AS customer_id,
            ci.cst_key AS customer_number,
            ci.cst_firstname AS first_name,
            ci.cst_lastname AS last_name,
            la.cntry AS country,
            ci.cst_marital_status AS marital_status,
            CASE
                WHEN ci.cst_gndr != 'n/a' THEN ci.cst_gndr
                ELSE COALESCE(ca.gen, 'n/a')
            END AS gender,
            ca.bdate AS birthdate,
            ci.cst_create_date AS create_date
        FROM silver_crm_cust_info ci
        LEFT JOIN silver_erp_cust_az12 ca
            ON ci.cst_key = ca.cid
        LEFT JOIN silver_erp_loc_a101 la
            ON ci.cst_key = la.cid
    """,
    "dim_products": """
        SELECT
            ROW_NUMBER() OVER (ORDER BY pn.prd_start_dt, pn.prd_key) AS product_key,
            pn.prd_id AS product_id,
            pn.prd_key AS product_number,
            pn.prd_nm AS product_name,
            pn.cat_id AS category_id,
            pc.cat AS category,
            pc.subcat AS subcategory,
            pc.maintenance AS maintenance,
            pn.prd_cost AS cost,
            pn.prd_line AS product_line,
            pn.prd_start_dt AS start_date
        FROM silver_crm_prd_info pn
        LEFT JOIN silver_erp_px_cat_g1v2 pc
            ON pn.cat_id = pc.id
        WHERE pn.prd_end_dt IS NULL
    """,
    "fact_sales": """
        SELECT
            sd.sls_ord_num AS order_number,
            pr.product_key AS product_key,
            cu.customer_key AS customer_key,
            sd.sls_order_dt AS order_date,
            sd.sls_ship_dt AS shipping_date,
            sd.sls_due_dt AS due_date,
            sd.sls_sales AS sales_amount,
            sd.sls_quantity AS quantity,
            sd.sls_price AS price
        FROM silver_crm_sales_details sd
        LEFT JOIN gold_dim_products pr
            ON sd.sls_prd_key = pr.product_number
        LEFT JOIN gold_dim_customers cu
            ON sd.sls_cust_id = cu.customer_id
    """,
}


def create_gold_views(conn: sqlite3.Connection) -> LayerResult:
    """
    Drop and recreate the gold views, then count the rows each one exposes.

    Returns:
        LayerResult with one entry per view

    Raises:
        LayerLoadError: if a view can't be created or queried
    """
    result = LayerResult(layer="gold")
    batch_start = time.perf_counter()
    cursor = conn.cursor()

    logger.info(BANNER)
    logger.info("Creating Gold Layer Views")
    logger.info(BANNER)

    try:
        # fact_sales depends on both dimensions, drop it first
        for view in reversed(GOLD_VIEWS):
            cursor.execute(f"DROP VIEW IF EXISTS {table_name('gold', view)}")

        for view in GOLD_VIEWS:
            start = time.perf_counter()
            name = table_name("gold", view)
            logger.info(f">> Creating View: {name}")
            cursor.execute(f"CREATE VIEW {name} AS {GOLD_VIEW_SQL[view]}")
            rows = cursor.execute(f"SELECT COUNT(*) FROM {name}").fetchone()[0]
            result.tables.append(
                TableLoad(table=name, rows=rows, duration_seconds=time.perf_counter() - start)
            )
            logger.info(f">> Rows Exposed: {rows}")
        conn.commit()

    except Exception as e:
        conn.rollback()
        result.duration_seconds = time.perf_counter() - batch_start
        result.error_message = str(e)
        result.error_code = error_code(e)
        log_failure("gold", result)
        raise LayerLoadError("gold", result) from e

    result.duration_seconds = time.perf_counter() - batch_start
    logger.info(f"Gold layer views created in {round(result.duration_seconds)} seconds")
    return result


def read_gold(conn: sqlite3.Connection, view: str) -> pd.DataFrame:
    """Read one gold view ('dim_customers', 'dim_products' or 'fact_sales')."""
    if view not in GOLD_VIEWS:
        raise ValueError(f"Unknown gold view: {view}")
    return pd.read_sql(f"SELECT * FROM {table_name('gold', view)}", conn)
