import os
from datetime import datetime, timedelta
from typing import Dict, Optional

import numpy as np
import pandas as pd

from sqlite_warehouse.bronze import SOURCE_FILES

CATEGORIES = [
    ("AC_BR", "Accessories", "Bike Racks", "Yes"),
    ("AC_HE", "Accessories", "Helmets", "Yes"),
    ("BI_MB", "Bikes", "Mountain Bikes", "Yes"),
    ("BI_RB", "Bikes", "Road Bikes", "Yes"),
    ("BI_TB", "Bikes", "Touring Bikes", "Yes"),
    ("CL_JE", "Clothing", "Jerseys", "No"),
]
FIRST_NAMES = ["Jon", "Elizabeth", "Lauren", "Ian", "Chloe", "Ruben", "Christy", "Wyatt"]
LAST_NAMES = ["Yang", "Johnson", "Walker", "Jenkins", "Young", "Torres", "Zhu", "Hill"]
PRODUCT_LINES = ["M", "R", "S", "T", " R ", None]
COUNTRIES = ["DE", "US", "USA", "Germany", "United States", "Australia", " Canada", "", None]
ERP_GENDERS = ["F", "M", "Female", "Male", " female", "", None]


def _customer_key(customer_id: int) -> str:
    return f"AW{customer_id:08d}"


def _date_key(value: datetime) -> int:
    return int(value.strftime("%Y%m%d"))


def generate_customers(rng: np.random.Generator, num_customers: int, start: datetime) -> pd.DataFrame:
    """CRM customers with duplicated ids, stray whitespace and coded values."""
    records = []
    for i in range(num_customers):
        customer_id = 11000 + i
        created = start + timedelta(days=int(rng.integers(0, 365)))
        records.append({
            "cst_id": customer_id,
            "cst_key": _customer_key(customer_id),
            "cst_firstname": rng.choice(FIRST_NAMES) + rng.choice(["", " "]),
            "cst_lastname": rng.choice(["", " "]) + rng.choice(LAST_NAMES),
            "cst_marital_status": rng.choice(["S", "M", "s", ""]),
            "cst_gndr": rng.choice(["F", "M", "", "f"]),
            "cst_create_date": created.strftime("%Y-%m-%d"),
        })
        # Some customers were captured twice; the later record is the correction
        if rng.random() < 0.05:
            duplicate = dict(records[-1])
            duplicate["cst_create_date"] = (created + timedelta(days=1)).strftime("%Y-%m-%d")
            duplicate["cst_marital_status"] = "M"
            records.append(duplicate)
    records.append({"cst_id": None, "cst_key": "SF566", "cst_firstname": None, "cst_lastname": None,
                    "cst_marital_status": None, "cst_gndr": None, "cst_create_date": None})
    return pd.DataFrame(records).astype({"cst_id": "Int64"})


def generate_products(rng: np.random.Generator, num_products: int, start: datetime) -> pd.DataFrame:
    """CRM products; about a third of them carry a second, later version."""
    records = []
    prd_id = 210
    for i in range(num_products):
        cat_id = CATEGORIES[i % len(CATEGORIES)][0]
        prd_key = f"{cat_id.replace('_', '-')}-PR-{1000 + i}"
        versions = 2 if rng.random() < 0.33 else 1
        version_start = start
        for _ in range(versions):
            records.append({
                "prd_id": prd_id,
                "prd_key": prd_key,
                "prd_nm": f"Product {1000 + i}",
                "prd_cost": None if rng.random() < 0.05 else int(rng.integers(5, 1500)),
                "prd_line": rng.choice(PRODUCT_LINES),
                "prd_start_dt": version_start.strftime("%Y-%m-%d"),
                "prd_end_dt": None,
            })
            prd_id += 1
            version_start = version_start + timedelta(days=int(rng.integers(180, 540)))
    return pd.DataFrame(records).astype({"prd_cost": "Int64"})


def generate_sales(
    rng: np.random.Generator,
    customers: pd.DataFrame,
    products: pd.DataFrame,
    num_orders: int,
    start: datetime,
) -> pd.DataFrame:
    """Sales lines with bad date keys, inconsistent amounts and zero or negative quantities."""
    customer_ids = customers["cst_id"].dropna().astype(int).unique()
    product_keys = products["prd_key"].str[6:].unique()
    records = []
    for i in range(num_orders):
        ordered = start + timedelta(days=int(rng.integers(0, 700)))
        quantity = int(rng.integers(1, 4))
        price = int(rng.integers(2, 2500))
        sales = quantity * price
        order_dt = _date_key(ordered)

        roll = rng.random()
        if roll < 0.02:
            sales = None
        elif roll < 0.04:
            sales = -sales
        elif roll < 0.06:
            price = None
        elif roll < 0.08:
            price = -price
        elif roll < 0.10:
            order_dt = 0
        elif roll < 0.11:
            order_dt = 32154
        elif roll < 0.115:
            quantity = 0
        elif roll < 0.12:
            quantity = -quantity

        records.append({
            "sls_ord_num": f"SO{43697 + i}",
            "sls_prd_key": rng.choice(product_keys),
            "sls_cust_id": int(rng.choice(customer_ids)),
            "sls_order_dt": order_dt,
            "sls_ship_dt": _date_key(ordered + timedelta(days=7)),
            "sls_due_dt": _date_key(ordered + timedelta(days=12)),
            "sls_sales": sales,
            "sls_quantity": quantity,
            "sls_price": price,
        })
    return pd.DataFrame(records).astype({"sls_sales": "Int64", "sls_price": "Int64"})


def generate_erp_customers(rng: np.random.Generator, customers: pd.DataFrame, now: datetime) -> pd.DataFrame:
    """ERP demographics keyed by customer number, some with a NAS prefix."""
    records = []
    for key in customers["cst_key"].dropna().unique():
        birth = now - timedelta(days=int(rng.integers(18 * 365, 90 * 365)))
        if rng.random() < 0.02:
            birth = now + timedelta(days=int(rng.integers(30, 3650)))
        records.append({
            "cid": ("NAS" + key) if rng.random() < 0.5 else key,
            "bdate": birth.strftime("%Y-%m-%d"),
            "gen": rng.choice(ERP_GENDERS),
        })
    return pd.DataFrame(records)


def generate_locations(rng: np.random.Generator, customers: pd.DataFrame) -> pd.DataFrame:
    """ERP locations with hyphenated ids ('AW-00011000') and mixed country spellings."""
    keys = customers["cst_key"].dropna().unique()
    return pd.DataFrame({
        "cid": [f"{key[:2]}-{key[2:]}" for key in keys],
        "cntry": [rng.choice(COUNTRIES) for _ in keys],
    })


def generate_categories() -> pd.DataFrame:
    return pd.DataFrame(CATEGORIES, columns=["id", "cat", "subcat", "maintenance"])


def generate_datasets(
    num_customers: int = 500,
    num_products: int = 60,
    num_orders: int = 2000,
    seed: Optional[int] = None,
) -> Dict[str, pd.DataFrame]:
    """
    Generate all six source extracts.

    Returns:
        Mapping of bronze table name to its extract
    """
    rng = np.random.default_rng(seed)
    now = datetime.now()
    start = datetime(2010, 12, 29)

    customers = generate_customers(rng, num_customers, start)
    products = generate_products(rng, num_products, datetime(2003, 7, 1))
    return {
        "crm_cust_info": customers,
        "crm_prd_info": products,
        "crm_sales_details": generate_sales(rng, customers, products, num_orders, start),
        "erp_loc_a101": generate_locations(rng, customers),
        "erp_cust_az12": generate_erp_customers(rng, customers, now),
        "erp_px_cat_g1v2": generate_categories(),
    }


def write_datasets(output_dir: str, datasets: Dict[str, pd.DataFrame]) -> Dict[str, str]:
    """Write extracts to ``output_dir`` using the bronze source file layout."""
    written = {}
    for table, df in datasets.items():
        output_file = os.path.join(output_dir, SOURCE_FILES[table])
        os.makedirs(os.path.dirname(output_file), exist_ok=True)
        df.to_csv(output_file, index=False)
        written[table] = output_file
    return written


if __name__ == "__main__":
    BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__)))
    output_dir = os.path.join(BASE_DIR, "datasets")
    for table, output_file in write_datasets(output_dir, generate_datasets(seed=42)).items():
        print(f"Generated {table} extract at: {output_file}")
