import base64
import binascii
import logging

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError

from image_gateway.errors import InternalError, TransportError

logger = logging.getLogger(__name__)

ASSET_CONTENT_TYPE = "image/jpeg"
PUBLIC_READ_ACL = "public-read"


def create_s3_client(endpoint_url=None, access_key=None, secret_key=None, region=None):
    return boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        region_name=region,
        config=Config(signature_version="s3v4"),
    )


def generated_image_path(uid: str, generation_id: str, index: int) -> str:
    return f"users/{uid}/generated/{generation_id}/{index}.jpg"


class AssetStore:
    """Writes generated images to an S3-compatible bucket."""

    def __init__(self, s3_client, bucket: str, public_base_url: str):
        self.s3_client = s3_client
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{self.bucket}/{path}"

    def upload_generated_image(self, uid: str, generation_id: str, index: int, base64_data: str) -> str:
        """Upload one generated image and return its public URL.

        Uploading the same (uid, generation_id, index) twice replaces the
        earlier object.
        """
        path = generated_image_path(uid, generation_id, index)
        try:
            body = base64.b64decode(base64_data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InternalError(f"Invalid image data for {path}: {exc}") from exc

        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=body,
                ContentType=ASSET_CONTENT_TYPE,
                ACL=PUBLIC_READ_ACL,
            )
        except EndpointConnectionError as exc:
            raise TransportError(f"Failed to reach object storage: {exc}") from exc
        except (ClientError, BotoCoreError) as exc:
            raise InternalError(f"Failed to upload {path}: {exc}") from exc

        logger.info(
            "Uploaded generated image",
            extra={"uid": uid, "generation_id": generation_id, "index": index, "size": len(body)},
        )
        return self.public_url(path)
