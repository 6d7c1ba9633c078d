"""
Unit tests for the bronze -> silver cleansing rules
"""

from datetime import date

import numpy as np
import pandas as pd
import pytest

from sqlite_warehouse.cleansing import (
    NOT_AVAILABLE,
    PRODUCT_LINE,
    clean_crm_customers,
    clean_crm_products,
    clean_crm_sales,
    clean_erp_categories,
    clean_erp_customers,
    clean_erp_locations,
    derive_end_dates,
    latest_per_key,
    map_codes,
    normalize_country,
    parse_date_key,
    reconcile_sales,
)


def _customers(rows):
    df = pd.DataFrame(rows, columns=[
        "cst_id", "cst_key", "cst_firstname", "cst_lastname",
        "cst_marital_status", "cst_gndr", "cst_create_date",
    ])
    df["cst_id"] = df["cst_id"].astype("Int64")
    df["cst_create_date"] = pd.to_datetime(df["cst_create_date"])
    return df


def _sales(rows):
    df = pd.DataFrame(rows, columns=[
        "sls_ord_num", "sls_prd_key", "sls_cust_id", "sls_order_dt",
        "sls_ship_dt", "sls_due_dt", "sls_sales", "sls_quantity", "sls_price",
    ])
    for column in df.columns[2:]:
        df[column] = df[column].astype("Int64")
    return df


class TestCodeMapping:
    """Test cases for fixed-lookup code normalization"""

    def test_should_trim_and_uppercase_before_lookup(self):
        result = map_codes(pd.Series([" r ", "m", "S", "T"]), PRODUCT_LINE)
        assert result.tolist() == ["Road", "Mountain", "Other Sales", "Touring"]

    def test_should_default_unknown_blank_and_null_to_na(self):
        result = map_codes(pd.Series(["X", "", "   ", None, np.nan]), PRODUCT_LINE)
        assert result.tolist() == [NOT_AVAILABLE] * 5

    @pytest.mark.parametrize("value,expected", [
        ("DE", "Germany"),
        ("US", "United States"),
        ("USA", "United States"),
        (" USA ", "United States"),
        ("", "n/a"),
        ("   ", "n/a"),
        (None, "n/a"),
        (" Australia ", "Australia"),
    ])
    def test_should_normalize_country(self, value, expected):
        assert normalize_country(value) == expected


class TestLatestPerKey:
    """Test cases for most-recent-row selection"""

    def test_should_keep_row_with_greatest_order_value(self):
        df = pd.DataFrame({
            "key": [1, 1, 2, 1],
            "ts": pd.to_datetime(["2024-01-01", "2024-03-01", "2024-01-01", "2024-02-01"]),
            "value": ["a", "b", "c", "d"],
        })

        result = latest_per_key(df, "key", "ts")

        assert sorted(result["value"].tolist()) == ["b", "c"]

    def test_should_drop_null_keys(self):
        df = pd.DataFrame({
            "key": pd.array([1, None], dtype="Int64"),
            "ts": pd.to_datetime(["2024-01-01", "2024-01-02"]),
        })

        result = latest_per_key(df, "key", "ts")

        assert result["key"].tolist() == [1]

    def test_should_rank_null_order_value_last(self):
        df = pd.DataFrame({
            "key": [1, 1],
            "ts": pd.to_datetime([None, "2024-01-02"]),
            "value": ["undated", "dated"],
        })

        assert latest_per_key(df, "key", "ts")["value"].tolist() == ["dated"]

    def test_should_prefer_later_row_on_tie(self):
        df = pd.DataFrame({
            "key": [1, 1],
            "ts": pd.to_datetime(["2024-01-01", "2024-01-01"]),
            "value": ["first", "second"],
        })

        assert latest_per_key(df, "key", "ts")["value"].tolist() == ["second"]


class TestDeriveEndDates:
    """Test cases for version end-date derivation"""

    def test_should_end_one_day_before_next_start(self):
        df = pd.DataFrame({
            "key": ["A", "A", "B", "A"],
            "start": pd.to_datetime(["2012-07-01", "2011-07-01", "2011-07-01", "2013-07-01"]),
        })

        result = derive_end_dates(df, "key", "start")

        assert result.loc[1] == pd.Timestamp("2012-06-30")
        assert result.loc[0] == pd.Timestamp("2013-06-30")
        assert pd.isna(result.loc[3])
        assert pd.isna(result.loc[2])


class TestParseDateKey:
    """Test cases for YYYYMMDD integer conversion"""

    @pytest.mark.parametrize("value", [0, -20101229, 5489, 201012291, None, pd.NA])
    def test_should_treat_invalid_keys_as_null(self, value):
        assert pd.isna(parse_date_key(value))

    def test_should_parse_valid_key(self):
        assert parse_date_key(20101229) == pd.Timestamp("2010-12-29")

    def test_should_raise_on_impossible_calendar_date(self):
        with pytest.raises(ValueError):
            parse_date_key(20101345)


class TestReconcileSales:
    """Test cases for sales/price reconciliation"""

    def _run(self, sales, quantity, price):
        fixed_sales, fixed_price = reconcile_sales(
            pd.Series([sales], dtype="Float64"),
            pd.Series([quantity], dtype="Float64"),
            pd.Series([price], dtype="Float64"),
        )
        return fixed_sales.iloc[0], fixed_price.iloc[0]

    def test_should_derive_missing_sales_from_quantity_and_price(self):
        assert self._run(None, 3, 10) == (30.0, 10.0)

    def test_should_recompute_inconsistent_sales(self):
        assert self._run(50, 2, 20) == (40.0, 20.0)

    def test_should_recompute_non_positive_sales_with_absolute_price(self):
        assert self._run(-30, 3, -10) == (30.0, 10.0)

    def test_should_derive_missing_price_from_sales(self):
        assert self._run(40, 2, None) == (40.0, 20.0)

    def test_should_recompute_sales_for_zero_price(self):
        assert self._run(None, 3, 0) == (0.0, 0.0)
        assert self._run(30, 3, 0) == (0.0, 0.0)

    def test_should_recompute_sales_for_zero_quantity(self):
        assert self._run(30, 0, 10) == (0.0, 10.0)

    def test_should_recompute_sales_for_negative_quantity(self):
        assert self._run(20, -2, 10) == (-20.0, 10.0)

    @pytest.mark.parametrize("sales,quantity,price", [
        (30, 0, 10),
        (None, 0, 10),
        (20, -2, 10),
        (20, -2, -10),
        (20, -2, None),
        (None, 3, 0),
        (30, 3, 0),
        (-5, 1, 0),
    ])
    def test_should_hold_invariant_for_degenerate_quantity_and_price(self, sales, quantity, price):
        fixed_sales, fixed_price = self._run(sales, quantity, price)

        assert fixed_sales == pytest.approx(quantity * abs(fixed_price))
        assert self._run(fixed_sales, quantity, fixed_price) == (fixed_sales, fixed_price)

    def test_should_leave_price_null_when_quantity_is_zero(self):
        sales, price = self._run(30, 0, None)
        assert sales == 30.0
        assert np.isnan(price)

    def test_should_leave_both_null_when_unrecoverable(self):
        sales, price = self._run(None, 3, None)
        assert np.isnan(sales)
        assert np.isnan(price)

    def test_should_be_idempotent(self):
        sales = pd.Series([None, 50, -30, 40, 35], dtype="Float64")
        quantity = pd.Series([3, 2, 3, 2, 3], dtype="Float64")
        price = pd.Series([10, 20, -10, None, None], dtype="Float64")

        first_sales, first_price = reconcile_sales(sales, quantity, price)
        second_sales, second_price = reconcile_sales(first_sales, quantity, first_price)

        pd.testing.assert_series_equal(first_sales, second_sales)
        pd.testing.assert_series_equal(first_price, second_price)
        assert np.allclose(first_sales, quantity.astype(float) * first_price.abs())


class TestCrmCleansing:
    """Test cases for the CRM table rules"""

    def test_should_keep_most_recent_customer_row(self):
        df = _customers([
            (11001, "AW00011001", "Eugene", "Huang", "S", "", "2025-10-06"),
            (11001, "AW00011001", "Eugene", "Huang", "M", "M", "2025-10-07"),
            (None, "SF566", None, None, None, None, None),
        ])

        result = clean_crm_customers(df)

        assert len(result) == 1
        row = result.iloc[0]
        assert row["cst_marital_status"] == "Married"
        assert row["cst_gndr"] == "Male"
        assert row["cst_create_date"] == pd.Timestamp("2025-10-07")

    def test_should_trim_names_and_standardize_codes(self):
        df = _customers([
            (11000, "AW00011000", " Jon ", "Yang ", "s", "f ", "2025-10-06"),
            (11002, "AW00011002", "Ruben", "Torres", None, "", "2025-10-06"),
        ])

        result = clean_crm_customers(df)

        assert result["cst_firstname"].tolist() == ["Jon", "Ruben"]
        assert result["cst_lastname"].tolist() == ["Yang", "Torres"]
        assert result["cst_marital_status"].tolist() == ["Single", "n/a"]
        assert result["cst_gndr"].tolist() == ["Female", "n/a"]

    def test_should_split_product_key_and_version_products(self):
        df = pd.DataFrame({
            "prd_id": pd.array([212, 213, 210], dtype="Int64"),
            "prd_key": ["AC-HE-HL-U509-R", "AC-HE-HL-U509-R", "CO-RF-FR-R92B-58"],
            "prd_nm": ["Helmet", "Helmet", "Frame"],
            "prd_cost": pd.array([12, None, 300], dtype="Int64"),
            "prd_line": ["S", "s", "Z"],
            "prd_start_dt": pd.to_datetime(["2011-07-01", "2012-07-01", "2003-07-01"]),
            "prd_end_dt": pd.to_datetime([None, None, None]),
        })

        result = clean_crm_products(df)

        assert result["cat_id"].tolist() == ["AC_HE", "AC_HE", "CO_RF"]
        assert result["prd_key"].tolist() == ["HL-U509-R", "HL-U509-R", "FR-R92B-58"]
        assert result["prd_cost"].tolist() == [12, 0, 300]
        assert result["prd_line"].tolist() == ["Other Sales", "Other Sales", "n/a"]
        assert result.loc[0, "prd_end_dt"] == pd.Timestamp("2012-06-30")
        assert pd.isna(result.loc[1, "prd_end_dt"])
        assert pd.isna(result.loc[2, "prd_end_dt"])

    def test_should_convert_date_keys_and_reconcile_amounts(self):
        df = _sales([
            ("SO1", "BK-R93R-62", 11000, 20101229, 20110105, 20110110, None, 3, 10),
            ("SO2", "BK-R93R-62", 11000, 0, 20110105, 20110110, 40, 2, None),
        ])

        result = clean_crm_sales(df)

        assert result.loc[0, "sls_order_dt"] == pd.Timestamp("2010-12-29")
        assert pd.isna(result.loc[1, "sls_order_dt"])
        assert result["sls_sales"].tolist() == [30.0, 40.0]
        assert result["sls_price"].tolist() == [10.0, 20.0]
        assert result["sls_quantity"].tolist() == [3, 2]


class TestErpCleansing:
    """Test cases for the ERP table rules"""

    def test_should_clean_erp_customers(self):
        df = pd.DataFrame({
            "cid": ["NAS12345", "AW00011001", None],
            "bdate": pd.to_datetime(["1971-10-06", "2026-10-19", "1980-01-01"]),
            "gen": ["FEMALE", " m", "unknown"],
        })

        result = clean_erp_customers(df, today=date(2026, 10, 18))

        assert result["cid"].tolist()[:2] == ["12345", "AW00011001"]
        assert result.loc[0, "bdate"] == pd.Timestamp("1971-10-06")
        assert pd.isna(result.loc[1, "bdate"])
        assert result["gen"].tolist() == ["Female", "Male", "n/a"]

    def test_should_keep_birth_date_equal_to_today(self):
        df = pd.DataFrame({
            "cid": ["AW1"],
            "bdate": pd.to_datetime(["2026-10-18"]),
            "gen": ["F"],
        })

        result = clean_erp_customers(df, today=date(2026, 10, 18))

        assert result.loc[0, "bdate"] == pd.Timestamp("2026-10-18")

    def test_should_clean_erp_locations(self):
        df = pd.DataFrame({
            "cid": ["AW-00011000", "AW-00011001", "AW00011002"],
            "cntry": ["USA", "", "DE"],
        })

        result = clean_erp_locations(df)

        assert result["cid"].tolist() == ["AW00011000", "AW00011001", "AW00011002"]
        assert result["cntry"].tolist() == ["United States", "n/a", "Germany"]

    def test_should_copy_categories(self):
        df = pd.DataFrame({
            "id": ["AC_HE"],
            "cat": ["Accessories "],
            "subcat": ["Helmets"],
            "maintenance": ["Yes"],
        })

        result = clean_erp_categories(df)

        assert result.to_dict("records") == [
            {"id": "AC_HE", "cat": "Accessories", "subcat": "Helmets", "maintenance": "Yes"}
        ]
