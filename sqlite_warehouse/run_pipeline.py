"""
Orchestrates the warehouse load: bronze -> silver -> gold.

The layers run in order and the first failing layer stops the run. Quality
checks, Parquet export and S3 upload are optional follow-ups.
"""
import os
import sys
import sqlite3
import logging
import argparse
import datetime
from datetime import date
from typing import Dict, List, Optional, Sequence

from sqlite_warehouse.batch import LayerLoadError, LayerResult
from sqlite_warehouse.bronze import load_bronze
from sqlite_warehouse.config import WarehouseSettings
from sqlite_warehouse.export import create_s3_client, export_table_to_parquet, upload_file_to_s3
from sqlite_warehouse.gold import create_gold_views
from sqlite_warehouse.quality import run_quality_checks
from sqlite_warehouse.schema import (
    BRONZE_TABLES,
    GOLD_VIEWS,
    LAYERS,
    SILVER_TABLES,
    create_tables,
    init_database,
    table_name,
)
from sqlite_warehouse.silver import load_silver
from utils.logger import setup_logger

logger = logging.getLogger("sqlite_warehouse.pipeline")

LAYER_RELATIONS = {
    "bronze": [table_name("bronze", table) for table in BRONZE_TABLES],
    "silver": [table_name("silver", table) for table in SILVER_TABLES],
    "gold": [table_name("gold", view) for view in GOLD_VIEWS],
}


class WarehousePipeline:
    """Runs the medallion warehouse load against one SQLite database."""

    def __init__(self, db_path: str, datasets_dir: str, today: Optional[date] = None):
        """
        Initialize the pipeline.

        Args:
            db_path: Path to the SQLite database file
            datasets_dir: Directory holding source_crm/ and source_erp/
            today: Reference date for silver date rules (default: today)
        """
        self.db_path = db_path
        self.datasets_dir = datasets_dir
        self.today = today
        self._ensure_db_directory()

    def _ensure_db_directory(self) -> None:
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def init_database(self) -> None:
        """Drop and recreate every warehouse table."""
        init_database(self.db_path)

    def create_tables(self) -> None:
        conn = self.connect()
        try:
            create_tables(conn)
        finally:
            conn.close()

    def load_bronze(self) -> LayerResult:
        conn = self.connect()
        try:
            return load_bronze(conn, self.datasets_dir)
        finally:
            conn.close()

    def load_silver(self) -> LayerResult:
        conn = self.connect()
        try:
            return load_silver(conn, today=self.today)
        finally:
            conn.close()

    def load_gold(self) -> LayerResult:
        conn = self.connect()
        try:
            return create_gold_views(conn)
        finally:
            conn.close()

    def run_quality_checks(self, layer: str) -> Dict[str, int]:
        conn = self.connect()
        try:
            return run_quality_checks(conn, layer)
        finally:
            conn.close()

    def export_data(self, layer: str, output_dir: str) -> List[str]:
        """
        Export every table (or view) of a layer to timestamped Parquet files.

        Args:
            layer: 'bronze', 'silver' or 'gold'
            output_dir: Directory to save the exported files

        Returns:
            Paths of the files written; empty relations are skipped
        """
        if layer not in LAYER_RELATIONS:
            raise ValueError(f"Invalid layer: {layer}")

        ts = datetime.datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        exported = []
        conn = self.connect()
        try:
            for relation in LAYER_RELATIONS[layer]:
                output_file = os.path.join(output_dir, layer, f"{ts}_{relation}.parquet")
                path = export_table_to_parquet(conn, relation, output_file)
                if path:
                    exported.append(path)
        finally:
            conn.close()
        return exported

    def get_layer_stats(self) -> Dict[str, int]:
        """
        Get record counts for each layer.

        Returns:
            Dictionary with record counts per layer; -1 when a layer is not built yet
        """
        conn = self.connect()
        stats = {}
        try:
            cursor = conn.cursor()
            for layer, relations in LAYER_RELATIONS.items():
                try:
                    stats[f"{layer}_count"] = sum(
                        cursor.execute(f"SELECT COUNT(*) FROM {relation}").fetchone()[0]
                        for relation in relations
                    )
                except sqlite3.OperationalError:
                    stats[f"{layer}_count"] = -1
        finally:
            conn.close()
        return stats

    def run_pipeline(self, layers: Sequence[str] = LAYERS) -> Dict[str, LayerResult]:
        """
        Run the requested layers in bronze -> silver -> gold order.

        Returns:
            LayerResult per layer that ran

        Raises:
            LayerLoadError: from the first layer that fails
        """
        self.create_tables()
        loaders = {
            "bronze": self.load_bronze,
            "silver": self.load_silver,
            "gold": self.load_gold,
        }
        results = {}
        for layer in LAYERS:
            if layer in layers:
                results[layer] = loaders[layer]()

        logger.info(f"Pipeline completed successfully. Layer statistics: {self.get_layer_stats()}")
        return results


def upload_exports(settings: WarehouseSettings, exported: Dict[str, List[str]], s3_client=None) -> int:
    """
    Upload exported files to the per-layer S3 buckets.

    Returns:
        Number of files that failed to upload
    """
    s3_client = s3_client or create_s3_client(settings)
    failures = 0
    for layer, files in exported.items():
        bucket = settings.bucket_for(layer)
        for local_file in files:
            if not upload_file_to_s3(local_file, bucket, os.path.basename(local_file), s3_client):
                failures += 1
    return failures


def build_parser(settings: WarehouseSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Run the medallion data warehouse load')
    parser.add_argument('--db', type=str, default=settings.db_path, help='Path to SQLite database')
    parser.add_argument('--datasets', type=str, default=settings.datasets_dir,
                        help='Directory holding source_crm/ and source_erp/')
    parser.add_argument('--layer', choices=list(LAYERS) + ['all'], default='all',
                        help='Layer to load (default: all)')
    parser.add_argument('--init', action='store_true', help='Drop and recreate all warehouse tables first')
    parser.add_argument('--checks', action='store_true', help='Run quality checks after loading')
    parser.add_argument('--export', action='store_true', help='Export loaded layers to Parquet')
    parser.add_argument('--export-dir', type=str, default=settings.export_dir,
                        help='Directory for exported files')
    parser.add_argument('--upload', action='store_true', help='Upload exported files to S3')
    parser.add_argument('--log-dir', type=str, default=settings.log_dir, help='Directory for log files')
    parser.add_argument('--log-level', type=str, default=settings.log_level, help='Logging level (default: INFO)')
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command-line entry point for the warehouse load."""
    settings = WarehouseSettings.from_env()
    args = build_parser(settings).parse_args(argv)
    setup_logger(log_dir=args.log_dir, level=args.log_level)

    layers = list(LAYERS) if args.layer == 'all' else [args.layer]
    pipeline = WarehousePipeline(db_path=args.db, datasets_dir=args.datasets)

    if args.init:
        pipeline.init_database()

    try:
        results = pipeline.run_pipeline(layers)
    except LayerLoadError as e:
        logger.error(f"Pipeline aborted in {e.layer} layer: {e.result.error_message}")
        return 1

    print("Pipeline execution completed:")
    for layer, result in results.items():
        print(f"{layer.capitalize()} layer: {result.total_rows} rows in {result.duration_seconds:.2f} seconds")

    if args.checks:
        for layer in layers:
            flagged = {name: count for name, count in pipeline.run_quality_checks(layer).items() if count}
            print(f"{layer.capitalize()} quality checks flagged: {flagged or 'none'}")

    if args.export or args.upload:
        exported = {layer: pipeline.export_data(layer, args.export_dir) for layer in layers}
        if args.upload:
            failures = upload_exports(settings, exported)
            if failures:
                logger.error(f"{failures} exported files failed to upload")
                return 1

    stats = pipeline.get_layer_stats()
    print("\nLayer statistics:")
    for layer in LAYERS:
        print(f"{layer.capitalize()} layer: {stats[f'{layer}_count']} records")
    return 0


if __name__ == "__main__":
    sys.exit(main())
