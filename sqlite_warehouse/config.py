import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


# Define constants
DEFAULT_DB_PATH = "data/warehouse.db"
DEFAULT_DATASETS_DIR = "datasets"
DEFAULT_EXPORT_DIR = "data/exports"
DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_BUCKET_PREFIX = "sqlite-warehouse"
DEFAULT_REGION = "us-east-1"


@dataclass
class WarehouseSettings:
    """Runtime settings for the warehouse pipeline, read from the environment."""

    db_path: str = DEFAULT_DB_PATH
    datasets_dir: str = DEFAULT_DATASETS_DIR
    export_dir: str = DEFAULT_EXPORT_DIR
    log_dir: str = DEFAULT_LOG_DIR
    log_level: str = DEFAULT_LOG_LEVEL
    bucket_prefix: str = DEFAULT_BUCKET_PREFIX
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = DEFAULT_REGION

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "WarehouseSettings":
        """
        Build settings from environment variables, loading a .env file first.

        Variables already present in the environment win over the .env file.

        Args:
            dotenv_path: Optional explicit path to a .env file

        Returns:
            WarehouseSettings instance
        """
        load_dotenv(dotenv_path=dotenv_path, override=False)
        return cls(
            db_path=os.environ.get("WAREHOUSE_DB_PATH", DEFAULT_DB_PATH),
            datasets_dir=os.environ.get("WAREHOUSE_DATASETS_DIR", DEFAULT_DATASETS_DIR),
            export_dir=os.environ.get("WAREHOUSE_EXPORT_DIR", DEFAULT_EXPORT_DIR),
            log_dir=os.environ.get("WAREHOUSE_LOG_DIR", DEFAULT_LOG_DIR),
            log_level=os.environ.get("WAREHOUSE_LOG_LEVEL", DEFAULT_LOG_LEVEL),
            bucket_prefix=os.environ.get("WAREHOUSE_BUCKET_PREFIX", DEFAULT_BUCKET_PREFIX),
            aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY"),
            aws_region=os.environ.get("AWS_REGION", DEFAULT_REGION),
        )

    def bucket_for(self, layer: str) -> str:
        """S3 bucket name for a layer, e.g. ``sqlite-warehouse-silver``."""
        return f"{self.bucket_prefix}-{layer}"
