"""
SQLite Medallion Data Warehouse Package

Modules:
    schema.py       - Table catalog, DDL and type coercion for every layer.
    bronze.py       - Full-refresh load of the CRM/ERP CSV extracts into the bronze layer.
    cleansing.py    - Bronze -> silver cleansing rules as DataFrame functions.
    silver.py       - Rebuilds the silver layer from bronze.
    gold.py         - Star schema views (dim_customers, dim_products, fact_sales).
    quality.py      - Data quality checks per layer.
    export.py       - Parquet export and S3 upload.
    run_pipeline.py - Orchestrates the full load and provides the CLI.

Version: 1.0.0
"""

__version__ = "1.0.0"
