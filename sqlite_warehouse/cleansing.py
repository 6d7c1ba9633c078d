"""
Bronze -> Silver cleansing rules.

Every function takes a bronze frame already cast to its raw column types
(see ``schema.coerce_frame``) and returns the silver frame for the same
source table. Nothing here touches the database.
"""
from datetime import date
from typing import Dict, Optional

import numpy as np
import pandas as pd

NOT_AVAILABLE = "n/a"

MARITAL_STATUS = {"S": "Single", "M": "Married"}
CUSTOMER_GENDER = {"F": "Female", "M": "Male"}
PRODUCT_LINE = {"M": "Mountain", "R": "Road", "S": "Other Sales", "T": "Touring"}
ERP_GENDER = {"F": "Female", "FEMALE": "Female", "M": "Male", "MALE": "Male"}
COUNTRY_NAMES = {"DE": "Germany", "US": "United States", "USA": "United States"}


def _trim(value):
    return value.strip() if isinstance(value, str) else value


def trim_text(series: pd.Series) -> pd.Series:
    """Strip surrounding whitespace, leaving nulls alone."""
    return series.map(_trim)


def normalize_code(value) -> Optional[str]:
    """Trim and upper-case a code; None for null or non-text values."""
    if not isinstance(value, str):
        return None
    return value.strip().upper()


def map_codes(series: pd.Series, lookup: Dict[str, str], default: str = NOT_AVAILABLE) -> pd.Series:
    """
    Map coded values to their descriptions.

    Codes are compared trimmed and upper-cased. Blank, null and unknown codes
    all map to ``default``.
    """
    return series.map(lambda value: lookup.get(normalize_code(value), default))


def latest_per_key(df: pd.DataFrame, key: str, order_by: str) -> pd.DataFrame:
    """
    Keep one row per ``key``: the one with the greatest ``order_by``.

    Rows with a null key are dropped. A null ``order_by`` ranks below any
    value. When two rows tie, the one that appears later in ``df`` wins.
    The surviving rows keep their original relative order.
    """
    ranked = df[df[key].notna()].copy()
    ranked["_seq"] = np.arange(len(ranked))
    ranked = ranked.sort_values(
        [order_by, "_seq"],
        ascending=[False, False],
        na_position="last",
        kind="mergesort",
    )
    latest = ranked.drop_duplicates(subset=[key], keep="first").sort_values("_seq")
    return latest.drop(columns="_seq")


def derive_end_dates(df: pd.DataFrame, key: str, start: str) -> pd.Series:
    """
    End date of each version: the day before the next version's start.

    Versions are ordered by ``start`` within ``key``; the latest version of
    a key gets NaT (open ended).

    Returns:
        Series aligned with ``df.index``
    """
    ordered = df.sort_values([key, start], kind="mergesort")
    next_start = ordered.groupby(key, sort=False)[start].shift(-1)
    end = next_start - pd.Timedelta(days=1)
    return end.reindex(df.index)


def parse_date_key(value) -> pd.Timestamp:
    """
    Convert an 8-digit ``YYYYMMDD`` integer to a timestamp.

    0, negative, null and wrong-length values give NaT. Eight digits that
    don't form a calendar date raise ``ValueError``.
    """
    if pd.isna(value) or value <= 0:
        return pd.NaT
    text = str(int(value))
    if len(text) != 8:
        return pd.NaT
    return pd.to_datetime(text, format="%Y%m%d")


def reconcile_sales(sales: pd.Series, quantity: pd.Series, price: pd.Series):
    """
    Repair sales amount and price so that ``sales = quantity * |price|``.

    Sales becomes ``quantity * |price|`` whenever it is null, not positive
    or inconsistent. A positive sales amount is kept when quantity or price
    is missing. Price is derived as ``|sales / quantity|`` when it is null
    or not positive; a zero quantity gives a null price. Applying the rule
    to its own output changes nothing.

    Zero and negative quantities are not corrected here, the silver quality
    checks report them.

    Returns:
        (sales, price) as float Series
    """
    sales = pd.to_numeric(sales).astype("float64")
    quantity = pd.to_numeric(quantity).astype("float64")
    price = pd.to_numeric(price).astype("float64")

    expected = quantity * price.abs()
    keep = (sales > 0) & (expected.isna() | np.isclose(sales, expected))
    fixed_sales = sales.where(keep, expected)

    derived_price = (fixed_sales / quantity.where(quantity != 0)).abs()
    fixed_price = price.where(price > 0, derived_price)

    # a derived price makes sales recomputable too
    rebuilt = quantity * fixed_price.abs()
    fixed_sales = rebuilt.where(rebuilt.notna(), fixed_sales)
    return fixed_sales, fixed_price


def clean_crm_customers(df: pd.DataFrame) -> pd.DataFrame:
    """Most recent row per customer, trimmed names, readable status codes."""
    latest = latest_per_key(df, "cst_id", "cst_create_date")
    return pd.DataFrame({
        "cst_id": latest["cst_id"],
        "cst_key": latest["cst_key"],
        "cst_firstname": trim_text(latest["cst_firstname"]),
        "cst_lastname": trim_text(latest["cst_lastname"]),
        "cst_marital_status": map_codes(latest["cst_marital_status"], MARITAL_STATUS),
        "cst_gndr": map_codes(latest["cst_gndr"], CUSTOMER_GENDER),
        "cst_create_date": latest["cst_create_date"],
    }).reset_index(drop=True)


def clean_crm_products(df: pd.DataFrame) -> pd.DataFrame:
    """
    Split the product key, default missing costs and derive version end dates.

    ``CO-RF-FR-R92B-58`` yields category id ``CO_RF`` and product key
    ``FR-R92B-58``.
    """
    products = pd.DataFrame({
        "prd_id": df["prd_id"],
        "cat_id": df["prd_key"].str[:5].str.replace("-", "_", regex=False),
        "prd_key": df["prd_key"].str[6:],
        "prd_nm": df["prd_nm"],
        "prd_cost": df["prd_cost"].fillna(0),
        "prd_line": map_codes(df["prd_line"], PRODUCT_LINE),
        "prd_start_dt": pd.to_datetime(df["prd_start_dt"]).dt.normalize(),
    })
    products["prd_end_dt"] = derive_end_dates(products, "prd_key", "prd_start_dt")
    return products.reset_index(drop=True)


def clean_crm_sales(df: pd.DataFrame) -> pd.DataFrame:
    """Typed order/ship/due dates and reconciled sales and price."""
    sales, price = reconcile_sales(df["sls_sales"], df["sls_quantity"], df["sls_price"])
    return pd.DataFrame({
        "sls_ord_num": df["sls_ord_num"],
        "sls_prd_key": df["sls_prd_key"],
        "sls_cust_id": df["sls_cust_id"],
        "sls_order_dt": pd.to_datetime(df["sls_order_dt"].map(parse_date_key)),
        "sls_ship_dt": pd.to_datetime(df["sls_ship_dt"].map(parse_date_key)),
        "sls_due_dt": pd.to_datetime(df["sls_due_dt"].map(parse_date_key)),
        "sls_sales": sales,
        "sls_quantity": df["sls_quantity"],
        "sls_price": price,
    }).reset_index(drop=True)


def strip_prefix(series: pd.Series, prefix: str) -> pd.Series:
    return series.map(
        lambda value: value[len(prefix):] if isinstance(value, str) and value.startswith(prefix) else value
    )


def clean_erp_customers(df: pd.DataFrame, today: Optional[date] = None) -> pd.DataFrame:
    """
    Drop the ``NAS`` id prefix, null future birth dates, normalize gender.

    Args:
        df: bronze erp_cust_az12 rows
        today: reference date for the future check (default: today)
    """
    cutoff = pd.Timestamp(today or date.today())
    return pd.DataFrame({
        "cid": strip_prefix(df["cid"], "NAS"),
        "bdate": df["bdate"].mask(df["bdate"] > cutoff),
        "gen": map_codes(df["gen"], ERP_GENDER),
    }).reset_index(drop=True)


def normalize_country(value) -> str:
    """Full country name for known codes, ``n/a`` for blanks, else trimmed."""
    if not isinstance(value, str) or not value.strip():
        return NOT_AVAILABLE
    trimmed = value.strip()
    return COUNTRY_NAMES.get(trimmed, trimmed)


def clean_erp_locations(df: pd.DataFrame) -> pd.DataFrame:
    """Hyphen-free customer ids and standardized country names."""
    return pd.DataFrame({
        "cid": df["cid"].str.replace("-", "", regex=False),
        "cntry": df["cntry"].map(normalize_country),
    }).reset_index(drop=True)


def clean_erp_categories(df: pd.DataFrame) -> pd.DataFrame:
    """Category rows are copied as-is apart from surrounding whitespace."""
    return pd.DataFrame({
        column: trim_text(df[column]) for column in ("id", "cat", "subcat", "maintenance")
    }).reset_index(drop=True)
