"""
Shared run frame for the bronze and silver loads.

Each layer is a list of steps. A step truncates one destination table and
inserts the frame its builder returns. Progress, durations and failures are
logged, and the outcome is returned as a ``LayerResult``.
"""
import errno
import sqlite3
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import pandas as pd

logger = logging.getLogger("sqlite_warehouse.batch")

BANNER = "=" * 48
SECTION = "-" * 48

# (source group, physical table name, frame builder)
LoadStep = Tuple[str, str, Callable[[], pd.DataFrame]]


class WarehouseError(Exception):
    """Base class for warehouse pipeline errors."""


class CsvStructureError(WarehouseError):
    """A source CSV is empty or its header doesn't match the table columns."""


class LayerLoadError(WarehouseError):
    """
    A layer load was aborted.

    The original exception is chained as ``__cause__``; ``result`` holds the
    tables committed before the failure.
    """

    def __init__(self, layer: str, result: "LayerResult"):
        self.layer = layer
        self.result = result
        self.code = result.error_code
        super().__init__(
            f"Error occurred during loading {layer} layer: "
            f"{result.error_message} (code: {result.error_code})"
        )


@dataclass
class TableLoad:
    table: str
    rows: int
    duration_seconds: float


@dataclass
class LayerResult:
    layer: str
    tables: List[TableLoad] = field(default_factory=list)
    duration_seconds: float = 0.0
    error_message: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error_message is None

    @property
    def total_rows(self) -> int:
        return sum(load.rows for load in self.tables)

    def rows_for(self, table: str) -> Optional[int]:
        for load in self.tables:
            if load.table == table:
                return load.rows
        return None


def error_code(exc: BaseException) -> str:
    """
    Resolve a short code for an exception.

    SQLite errors report the engine's error name (Python 3.11+), OS errors
    their errno symbol, anything else its class name.
    """
    if isinstance(exc, sqlite3.Error):
        name = getattr(exc, "sqlite_errorname", None)
        if name:
            return name
    if isinstance(exc, OSError) and exc.errno in errno.errorcode:
        return errno.errorcode[exc.errno]
    return type(exc).__name__


def log_failure(layer: str, result: LayerResult) -> None:
    """Log the error banner for an aborted layer."""
    logger.error(BANNER)
    logger.error(f"ERROR OCCURRED DURING LOADING {layer.upper()} LAYER")
    logger.error(f"Error Message: {result.error_message}")
    logger.error(f"Error Code: {result.error_code}")
    logger.error(BANNER)


def replace_table(conn: sqlite3.Connection, table: str, frame: pd.DataFrame) -> int:
    """
    Truncate ``table`` and insert ``frame`` in a single transaction.

    Returns:
        Number of rows inserted
    """
    cursor = conn.cursor()
    logger.info(f">> Truncating Table: {table}")
    cursor.execute(f"DELETE FROM {table}")

    logger.info(f">> Inserting Data Into: {table}")
    if not frame.empty:
        frame.to_sql(table, conn, if_exists="append", index=False)
    conn.commit()
    return len(frame)


def run_layer(conn: sqlite3.Connection, layer: str, steps: List[LoadStep]) -> LayerResult:
    """
    Run every load step of a layer, in order.

    Args:
        conn: Open warehouse connection
        layer: Layer name used in log lines ('bronze', 'silver')
        steps: (group, table, build_frame) tuples

    Returns:
        LayerResult with one TableLoad per step

    Raises:
        LayerLoadError: on the first failing step, after logging it
    """
    result = LayerResult(layer=layer)
    batch_start = time.perf_counter()

    logger.info(BANNER)
    logger.info(f"Loading {layer.capitalize()} Layer")
    logger.info(BANNER)

    current_group = None
    try:
        for group, table, build_frame in steps:
            if group != current_group:
                current_group = group
                logger.info(SECTION)
                logger.info(f"Loading {group} Tables")
                logger.info(SECTION)

            start = time.perf_counter()
            frame = build_frame()
            rows = replace_table(conn, table, frame)
            duration = time.perf_counter() - start

            result.tables.append(TableLoad(table=table, rows=rows, duration_seconds=duration))
            logger.info(f">> Rows Loaded: {rows}")
            logger.info(f">> Load Duration: {round(duration)} seconds")
            logger.info(">> -------------")

    except Exception as e:
        conn.rollback()
        result.duration_seconds = time.perf_counter() - batch_start
        result.error_message = str(e)
        result.error_code = error_code(e)

        log_failure(layer, result)
        raise LayerLoadError(layer, result) from e

    result.duration_seconds = time.perf_counter() - batch_start
    logger.info(BANNER)
    logger.info(f"Loading {layer.capitalize()} Layer is Completed")
    logger.info(f"   - Total Load Duration: {round(result.duration_seconds)} seconds")
    logger.info(BANNER)
    return result
