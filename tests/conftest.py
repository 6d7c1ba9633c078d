"""
Pytest configuration and shared fixtures
"""

import os
import shutil
import sqlite3
import tempfile
from datetime import date
from pathlib import Path

import pytest

from sqlite_warehouse.bronze import load_bronze
from sqlite_warehouse.gold import create_gold_views
from sqlite_warehouse.schema import create_tables
from sqlite_warehouse.silver import load_silver

TODAY = date(2026, 10, 18)

SOURCE_CSV = {
    os.path.join("source_crm", "cust_info.csv"): (
        "cst_id,cst_key,cst_firstname,cst_lastname,cst_marital_status,cst_gndr,cst_create_date\n"
        "11000,AW00011000, Jon ,Yang ,M,m ,2025-10-06\n"
        "11001,AW00011001,Eugene,Huang,S,,2025-10-06\n"
        "11001,AW00011001,Eugene,Huang,M,M,2025-10-07\n"
        "11002,AW00011002,Ruben,Torres,,,2025-10-06\n"
        ",SF566,,,,,\n"
    ),
    os.path.join("source_crm", "prd_info.csv"): (
        "prd_id,prd_key,prd_nm,prd_cost,prd_line,prd_start_dt,prd_end_dt\n"
        "210,CO-RF-FR-R92B-58,HL Road Frame - Black- 58,,R ,2003-07-01,\n"
        "212,AC-HE-HL-U509-R,Sport-100 Helmet- Red,12,S,2011-07-01,2007-12-28\n"
        "213,AC-HE-HL-U509-R,Sport-100 Helmet- Red,14,S,2012-07-01,2008-12-27\n"
        "214,AC-HE-HL-U509-R,Sport-100 Helmet- Red,13,S,2013-07-01,\n"
        "215,BI-RB-BK-R93R-62,Road-150 Red- 62,2171,,2013-07-01,\n"
    ),
    os.path.join("source_crm", "sales_details.csv"): (
        "sls_ord_num,sls_prd_key,sls_cust_id,sls_order_dt,sls_ship_dt,sls_due_dt,sls_sales,sls_quantity,sls_price\n"
        "SO43697,BK-R93R-62,11000,20101229,20110105,20110110,3578,1,3578\n"
        "SO43698,HL-U509-R,11001,20101229,20110105,20110110,,3,10\n"
        "SO43699,FR-R92B-58,11002,0,20110105,20110110,40,2,\n"
        "SO43700,HL-U509-R,11001,5489,20110105,20110110,-30,3,-10\n"
        "SO43701,BK-R93R-62,11000,20110101,20110108,20110113,50,2,20\n"
    ),
    os.path.join("source_erp", "loc_a101.csv"): (
        "cid,cntry\n"
        "AW-00011000,Australia\n"
        "AW-00011001,USA\n"
        "AW-00011002,\n"
    ),
    os.path.join("source_erp", "cust_az12.csv"): (
        "cid,bdate,gen\n"
        "NASAW00011000,1971-10-06,Male\n"
        "AW00011001,1976-05-10,\n"
        "NASAW00011002,2050-01-01, FEMALE\n"
    ),
    os.path.join("source_erp", "px_cat_g1v2.csv"): (
        "id,cat,subcat,maintenance\n"
        "AC_HE,Accessories,Helmets,Yes\n"
        "BI_RB,Bikes,Road Bikes,Yes\n"
        "CO_RF,Components,Road Frames,No\n"
    ),
}


def write_source_files(root: Path) -> Path:
    """Write the sample CRM/ERP extracts below ``root``."""
    for relative_path, content in SOURCE_CSV.items():
        path = root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def datasets_dir(temp_dir):
    """Sample source extracts laid out as source_crm/ and source_erp/"""
    return write_source_files(temp_dir / "datasets")


@pytest.fixture
def conn():
    """In-memory warehouse with empty bronze and silver tables"""
    connection = sqlite3.connect(":memory:")
    create_tables(connection)
    yield connection
    connection.close()


@pytest.fixture
def bronze_conn(conn, datasets_dir):
    """Warehouse with the bronze layer loaded from the sample extracts"""
    load_bronze(conn, str(datasets_dir))
    return conn


@pytest.fixture
def silver_conn(bronze_conn):
    """Warehouse with bronze and silver loaded"""
    load_silver(bronze_conn, today=TODAY)
    return bronze_conn


@pytest.fixture
def gold_conn(silver_conn):
    """Warehouse with all three layers built"""
    create_gold_views(silver_conn)
    return silver_conn
