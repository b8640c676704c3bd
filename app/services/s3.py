import functools
import logging
from io import BytesIO
from urllib.parse import urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, UnidentifiedImageError

from ..config import (
    AWS_ACCESS_KEY, AWS_SECRET_KEY, S3_REGION, S3_BUCKET_NAME, S3_URL,
    IDEA_IMAGE_WIDTH, IDEA_IMAGE_HEIGHT, IDEA_IMAGE_QUALITY,
)
from .errors import AssetCleanupError, InvalidInputError, TransientError

logger = logging.getLogger(__name__)


def process_image(file_content: bytes,
                  width: int = IDEA_IMAGE_WIDTH,
                  height: int = IDEA_IMAGE_HEIGHT,
                  quality: int = IDEA_IMAGE_QUALITY) -> bytes:
    """Centre-crop an uploaded image to the target ratio and re-encode it as JPEG."""
    try:
        image = Image.open(BytesIO(file_content))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise InvalidInputError(f"File must be an image: {e}")

    # JPEG has no alpha channel or palette
    if image.mode != 'RGB':
        image = image.convert('RGB')

    target_ratio = width / height
    current_ratio = image.width / image.height

    if current_ratio != target_ratio:
        if current_ratio > target_ratio:
            # Image is too wide - crop width
            new_width = int(image.height * target_ratio)
            left = (image.width - new_width) // 2
            image = image.crop((left, 0, left + new_width, image.height))
        else:
            # Image is too tall - crop height
            new_height = int(image.width / target_ratio)
            top = (image.height - new_height) // 2
            image = image.crop((0, top, image.width, top + new_height))

    image = image.resize((width, height),
        Image.Resampling.LANCZOS if image.width > width
        else Image.Resampling.BICUBIC
    )

    output = BytesIO()
    image.save(output, format='JPEG', quality=quality)
    return output.getvalue()


class S3AssetStore:
    """Blob storage for idea images, keyed by object path."""

    def __init__(self, client=None, bucket: str = S3_BUCKET_NAME, base_url: str = S3_URL):
        self.client = client or boto3.client("s3",
            aws_access_key_id=AWS_ACCESS_KEY,
            aws_secret_access_key=AWS_SECRET_KEY,
            region_name=S3_REGION
        )
        self.bucket = bucket
        self.base_url = base_url.rstrip("/")

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def key_from_url(self, url: str) -> str:
        parsed_url = urlparse(url)
        return parsed_url.path.lstrip("/")

    def upload(self, key: str, content: bytes, content_type: str = "image/jpeg") -> str:
        try:
            self.client.upload_fileobj(
                BytesIO(content),
                self.bucket,
                key,
                ExtraArgs={'ContentType': content_type}
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to upload %s: %s", key, e)
            raise TransientError(f"Failed to upload image: {e}")
        return self.public_url(key)

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise AssetCleanupError(f"Failed to delete file {key}: {e}")


@functools.lru_cache()
def get_asset_store() -> S3AssetStore:
    return S3AssetStore()
