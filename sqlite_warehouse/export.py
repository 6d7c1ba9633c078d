import os
import sqlite3
import logging
from typing import Optional

import boto3
from boto3.exceptions import S3UploadFailedError
import pandas as pd
from botocore.exceptions import BotoCoreError, ClientError

from sqlite_warehouse.config import WarehouseSettings

logger = logging.getLogger("sqlite_warehouse.export")


def export_table_to_parquet(conn: sqlite3.Connection, table_name: str, output_file: str) -> Optional[str]:
    """
    Export a warehouse table or view to a Parquet file.

    Returns:
        Path to the written file, or None when the relation is empty
    """
    df = pd.read_sql(f"SELECT * FROM {table_name}", conn)
    if df.empty:
        logger.warning(f"Table '{table_name}' is empty. No data to export.")
        return None

    directory = os.path.dirname(output_file)
    if directory:
        os.makedirs(directory, exist_ok=True)
    df.to_parquet(output_file, index=False, engine="pyarrow")
    logger.info(f"Exported {len(df)} records from table '{table_name}' to {output_file}")
    return output_file


def create_s3_client(settings: WarehouseSettings):
    """Create an S3 client using the credentials and region from settings."""
    return boto3.client(
        's3',
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
        region_name=settings.aws_region,
    )


def upload_file_to_s3(local_file: str, bucket: str, s3_key: str, s3_client) -> bool:
    """
    Upload a local file to ``s3://bucket/s3_key``.

    Returns:
        True if the upload succeeded, False otherwise
    """
    try:
        s3_client.upload_file(local_file, bucket, s3_key)
        logger.info(f"Uploaded {local_file} to s3://{bucket}/{s3_key}")
        return True
    except (BotoCoreError, ClientError, S3UploadFailedError) as e:
        logger.error(f"Failed to upload {local_file} to s3://{bucket}/{s3_key}: {e}")
        return False
