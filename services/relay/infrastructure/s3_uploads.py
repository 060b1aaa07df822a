from __future__ import annotations

import logging

import boto3
from botocore.client import Config as BotoConfig

from ..config import RelayConfig

logger = logging.getLogger(__name__)


def create_s3_client(config: RelayConfig):
    addressing_style = "path" if config.storage_endpoint_url else "auto"
    return boto3.client(
        "s3",
        endpoint_url=config.storage_endpoint_url,
        region_name=config.storage_region,
        aws_access_key_id=config.storage_access_key,
        aws_secret_access_key=config.storage_secret_key,
        config=BotoConfig(
            signature_version="s3v4", s3={"addressing_style": addressing_style}
        ),
    )


class S3MultipartUploadClient:
    def __init__(self, client) -> None:
        self._client = client

    def initiate_upload(
        self, *, bucket: str, object_key: str, content_type: str
    ) -> str:
        logger.info(
            "Starting multipart upload to bucket: %s, key: %s", bucket, object_key
        )
        response = self._client.create_multipart_upload(
            Bucket=bucket,
            Key=object_key,
            ContentType=content_type,
        )
        return response["UploadId"]

    def upload_part(
        self,
        *,
        bucket: str,
        object_key: str,
        upload_id: str,
        part_no: int,
        body: bytes,
    ) -> str:
        response = self._client.upload_part(
            Bucket=bucket,
            Key=object_key,
            UploadId=upload_id,
            PartNumber=part_no,
            Body=body,
            ContentLength=len(body),
        )
        return response["ETag"]

    def complete_upload(
        self,
        *,
        bucket: str,
        object_key: str,
        upload_id: str,
        parts: list[tuple[int, str]],
    ) -> str | None:
        response = self._client.complete_multipart_upload(
            Bucket=bucket,
            Key=object_key,
            UploadId=upload_id,
            MultipartUpload={
                "Parts": [
                    {"ETag": etag, "PartNumber": part_no} for part_no, etag in parts
                ]
            },
        )
        return response.get("Location")

    def abort_upload(self, *, bucket: str, object_key: str, upload_id: str) -> None:
        self._client.abort_multipart_upload(
            Bucket=bucket,
            Key=object_key,
            UploadId=upload_id,
        )


def create_multipart_client(config: RelayConfig) -> S3MultipartUploadClient:
    return S3MultipartUploadClient(create_s3_client(config))
