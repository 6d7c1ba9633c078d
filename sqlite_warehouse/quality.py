"""
Data quality checks for each layer.

Every check is a query that returns the offending rows; a healthy layer
returns none. Bronze checks are profiling queries: they describe the dirt
the silver rules are expected to clean, so hits there are informational.
"""
import sqlite3
import logging
from typing import Dict

logger = logging.getLogger("sqlite_warehouse.quality")

BRONZE_CHECKS = {
    "customer_id_duplicates_or_nulls": """
        SELECT cst_id, COUNT(*) FROM bronze_crm_cust_info
        GROUP BY cst_id HAVING COUNT(*) > 1 OR cst_id IS NULL
    """,
    "customer_names_untrimmed": """
        SELECT cst_id FROM bronze_crm_cust_info
        WHERE cst_firstname != TRIM(cst_firstname) OR cst_lastname != TRIM(cst_lastname)
    """,
    "product_cost_negative_or_null": """
        SELECT prd_id FROM bronze_crm_prd_info
        WHERE prd_cost < 0 OR prd_cost IS NULL
    """,
    "sales_date_keys_invalid": """
        SELECT sls_ord_num FROM bronze_crm_sales_details
        WHERE sls_order_dt <= 0 OR LENGTH(sls_order_dt) != 8
           OR sls_ship_dt <= 0 OR LENGTH(sls_ship_dt) != 8
           OR sls_due_dt <= 0 OR LENGTH(sls_due_dt) != 8
    """,
    "sales_amount_inconsistent": """
        SELECT sls_ord_num FROM bronze_crm_sales_details
        WHERE sls_sales IS NULL OR sls_quantity IS NULL OR sls_price IS NULL
           OR sls_sales <= 0 OR sls_sales != sls_quantity * ABS(sls_price)
    """,
    "erp_customer_ids_prefixed": """
        SELECT cid FROM bronze_erp_cust_az12 WHERE cid LIKE 'NAS%'
    """,
    "erp_birth_dates_in_future": """
        SELECT cid FROM bronze_erp_cust_az12 WHERE bdate > DATE('now')
    """,
    "location_ids_hyphenated": """
        SELECT cid FROM bronze_erp_loc_a101 WHERE cid LIKE '%-%'
    """,
}

SILVER_CHECKS = {
    "customer_id_duplicates_or_nulls": """
        SELECT cst_id, COUNT(*) FROM silver_crm_cust_info
        GROUP BY cst_id HAVING COUNT(*) > 1 OR cst_id IS NULL
    """,
    "customer_names_untrimmed": """
        SELECT cst_id FROM silver_crm_cust_info
        WHERE cst_firstname != TRIM(cst_firstname) OR cst_lastname != TRIM(cst_lastname)
    """,
    "customer_marital_status_nonstandard": """
        SELECT cst_id FROM silver_crm_cust_info
        WHERE cst_marital_status IS NULL OR cst_marital_status NOT IN ('Single', 'Married', 'n/a')
    """,
    "customer_gender_nonstandard": """
        SELECT cst_id FROM silver_crm_cust_info
        WHERE cst_gndr IS NULL OR cst_gndr NOT IN ('Female', 'Male', 'n/a')
    """,
    "product_id_duplicates_or_nulls": """
        SELECT prd_id, COUNT(*) FROM silver_crm_prd_info
        GROUP BY prd_id HAVING COUNT(*) > 1 OR prd_id IS NULL
    """,
    "product_cost_negative_or_null": """
        SELECT prd_id FROM silver_crm_prd_info WHERE prd_cost < 0 OR prd_cost IS NULL
    """,
    "product_line_nonstandard": """
        SELECT prd_id FROM silver_crm_prd_info
        WHERE prd_line IS NULL OR prd_line NOT IN ('Mountain', 'Road', 'Other Sales', 'Touring', 'n/a')
    """,
    "product_end_before_start": """
        SELECT prd_id FROM silver_crm_prd_info WHERE prd_end_dt < prd_start_dt
    """,
    "sales_order_after_ship_or_due": """
        SELECT sls_ord_num FROM silver_crm_sales_details
        WHERE sls_order_dt > sls_ship_dt OR sls_order_dt > sls_due_dt
    """,
    "sales_amount_inconsistent": """
        SELECT sls_ord_num FROM silver_crm_sales_details
        WHERE sls_sales IS NULL OR sls_quantity IS NULL OR sls_price IS NULL
           OR ABS(sls_sales - sls_quantity * ABS(sls_price)) > 1e-6
    """,
    "sales_values_non_positive": """
        SELECT sls_ord_num FROM silver_crm_sales_details
        WHERE sls_sales <= 0 OR sls_quantity <= 0 OR sls_price <= 0
    """,
    "erp_customer_ids_prefixed": """
        SELECT cid FROM silver_erp_cust_az12 WHERE cid LIKE 'NAS%'
    """,
    "erp_birth_dates_in_future": """
        SELECT cid FROM silver_erp_cust_az12 WHERE bdate > DATE('now')
    """,
    "erp_gender_nonstandard": """
        SELECT cid FROM silver_erp_cust_az12
        WHERE gen IS NULL OR gen NOT IN ('Female', 'Male', 'n/a')
    """,
    "location_ids_hyphenated": """
        SELECT cid FROM silver_erp_loc_a101 WHERE cid LIKE '%-%'
    """,
    "location_country_blank_or_untrimmed": """
        SELECT cid FROM silver_erp_loc_a101
        WHERE cntry IS NULL OR TRIM(cntry) = '' OR cntry != TRIM(cntry)
    """,
    "category_fields_untrimmed": """
        SELECT id FROM silver_erp_px_cat_g1v2
        WHERE cat != TRIM(cat) OR subcat != TRIM(subcat) OR maintenance != TRIM(maintenance)
    """,
}

GOLD_CHECKS = {
    "customer_key_duplicates": """
        SELECT customer_key FROM gold_dim_customers
        GROUP BY customer_key HAVING COUNT(*) > 1
    """,
    "product_key_duplicates": """
        SELECT product_key FROM gold_dim_products
        GROUP BY product_key HAVING COUNT(*) > 1
    """,
    "fact_sales_dangling_keys": """
        SELECT f.order_number
        FROM gold_fact_sales f
        LEFT JOIN gold_dim_customers c ON c.customer_key = f.customer_key
        LEFT JOIN gold_dim_products p ON p.product_key = f.product_key
        WHERE p.product_key IS NULL OR c.customer_key IS NULL
    """,
}

LAYER_CHECKS = {
    "bronze": BRONZE_CHECKS,
    "silver": SILVER_CHECKS,
    "gold": GOLD_CHECKS,
}


def run_quality_checks(conn: sqlite3.Connection, layer: str) -> Dict[str, int]:
    """
    Run every quality check of a layer.

    Args:
        conn: Open warehouse connection
        layer: 'bronze', 'silver' or 'gold'

    Returns:
        Mapping of check name to the number of offending rows
    """
    if layer not in LAYER_CHECKS:
        raise ValueError(f"Invalid layer: {layer}")

    cursor = conn.cursor()
    results = {}
    for name, query in LAYER_CHECKS[layer].items():
        failures = len(cursor.execute(query).fetchall())
        results[name] = failures
        if failures and layer != "bronze":
            logger.warning(f"Quality check '{layer}.{name}' failed: {failures} rows")
        elif failures:
            logger.info(f"Profiling check '{layer}.{name}': {failures} rows to cleanse")

    failed = sum(1 for count in results.values() if count)
    logger.info(f"{layer.capitalize()} quality checks completed: {len(results) - failed} passed, {failed} flagged")
    return results
