import io
import logging
import os
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional, Protocol, Tuple

from google.cloud import storage
from google.oauth2 import service_account
from PIL import Image, UnidentifiedImageError

from hardware_store.config import Settings
from hardware_store.core.errors import InfrastructureError, ValidationError

logger = logging.getLogger(__name__)

PRODUCT_IMAGE_MAX_SIZE = (800, 600)
DEFAULT_QUALITY = 85
MAX_DIMENSION = 4000

# format name accepted by the API -> (Pillow format, content type)
IMAGE_FORMATS = {
    "jpg": ("JPEG", "image/jpeg"),
    "png": ("PNG", "image/png"),
    "webp": ("WEBP", "image/webp"),
}


class StorageError(InfrastructureError):
    error = "StorageError"


@dataclass
class UploadedImage:
    url: str
    public_id: str
    width: int
    height: int
    format: str
    bytes: int

    def to_dict(self) -> dict:
        return asdict(self)


class ImageStorage(Protocol):
    """What the rest of the application needs from an image store."""

    def upload(self, content: bytes, options: dict) -> UploadedImage: ...

    def delete(self, public_id: str) -> bool: ...

    def info(self, public_id: str) -> dict: ...

    def public_id_from_url(self, image_url: Optional[str]) -> Optional[str]: ...

    def variant(self, public_id: str, options: dict) -> UploadedImage: ...


def product_upload_options(product_code: str) -> dict:
    return {
        "folder": "products",
        "prefix": f"product_{product_code}",
        "max_size": PRODUCT_IMAGE_MAX_SIZE,
    }


def variant_max_size(options: dict) -> Optional[Tuple[int, int]]:
    width, height = options.get("width"), options.get("height")
    if not width and not height:
        return None
    return (width or MAX_DIMENSION, height or MAX_DIMENSION)


def variant_public_id(public_id: str, options: dict) -> str:
    """Name of a resized copy, stored next to the original"""
    stem = os.path.splitext(public_id)[0]
    size = f"{options.get('width') or 'auto'}x{options.get('height') or 'auto'}"
    return f"{stem}_{size}_q{options.get('quality', DEFAULT_QUALITY)}.{options.get('format', 'jpg')}"


def optimize_image(
    file_content: bytes,
    max_size: Optional[Tuple[int, int]],
    quality: int = DEFAULT_QUALITY,
    image_format: str = "jpg",
) -> Tuple[bytes, int, int]:
    """Re-encode within max_size (None keeps the size); returns content, width and height"""
    try:
        image = Image.open(io.BytesIO(file_content))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError("The uploaded file is not a valid image") from e

    pil_format = IMAGE_FORMATS[image_format][0]

    # JPEG has no alpha channel
    if pil_format != "JPEG":
        if image.mode not in ("RGB", "RGBA"):
            image = image.convert("RGBA")
    elif image.mode == 'RGBA':
        background = Image.new('RGB', image.size, (255, 255, 255))
        background.paste(image, mask=image.split()[3])
        image = background
    elif image.mode != 'RGB':
        image = image.convert('RGB')

    # Resize if larger than max_size
    if max_size:
        image.thumbnail(max_size, Image.Resampling.LANCZOS)

    output = io.BytesIO()
    image.save(output, format=pil_format, quality=quality, optimize=True)
    return output.getvalue(), image.width, image.height


class GCSImageStorage:
    """Images kept in a Google Cloud Storage bucket and served through a CDN base URL."""

    def __init__(self, credentials_path: str, bucket_name: str, cdn_base_url: str):
        # Make path absolute if it's relative
        if not os.path.isabs(credentials_path):
            credentials_path = os.path.join(os.getcwd(), credentials_path)

        if not os.path.exists(credentials_path):
            raise ValueError(f"GCS credentials file not found at: {credentials_path}")

        credentials = service_account.Credentials.from_service_account_file(credentials_path)
        self.client = storage.Client(credentials=credentials)
        self.bucket = self.client.bucket(bucket_name)
        self.cdn_base_url = cdn_base_url.rstrip("/")

    def _generate_filename(self, folder: str, prefix: str) -> str:
        """Generate unique filename"""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        unique_id = str(uuid.uuid4())[:8]
        return f"{folder}/{prefix}_{timestamp}_{unique_id}.jpg"

    def _store(self, filename: str, content: bytes, width: int, height: int, image_format: str) -> UploadedImage:
        try:
            blob = self.bucket.blob(filename)
            blob.metadata = {"width": str(width), "height": str(height)}
            blob.upload_from_string(content, content_type=IMAGE_FORMATS[image_format][1])
            blob.make_public()
        except Exception as e:
            logger.error(f"Failed to upload image {filename}: {str(e)}")
            raise StorageError("Failed to upload the image") from e

        logger.info(f"Image uploaded successfully: {filename}")
        return UploadedImage(
            url=f"{self.cdn_base_url}/{filename}",
            public_id=filename,
            width=width,
            height=height,
            format=image_format,
            bytes=len(content),
        )

    def upload(self, content: bytes, options: dict) -> UploadedImage:
        optimized, width, height = optimize_image(content, options.get("max_size", PRODUCT_IMAGE_MAX_SIZE))
        filename = self._generate_filename(options.get("folder", "products"), options.get("prefix", "image"))
        return self._store(filename, optimized, width, height, "jpg")

    def variant(self, public_id: str, options: dict) -> UploadedImage:
        """
        Resized copy of a stored image. Copies are generated once and
        reused for the same size, quality and format.
        """
        filename = variant_public_id(public_id, options)
        try:
            existing = self.bucket.get_blob(filename)
            source = None if existing else self.bucket.get_blob(public_id)
        except Exception as e:
            raise StorageError("Failed to read the image") from e

        if existing:
            metadata = existing.metadata or {}
            return UploadedImage(
                url=f"{self.cdn_base_url}/{filename}",
                public_id=filename,
                width=int(metadata.get("width", 0)),
                height=int(metadata.get("height", 0)),
                format=options.get("format", "jpg"),
                bytes=existing.size or 0,
            )
        if source is None:
            raise StorageError(f"Image {public_id} not found in storage")

        try:
            original = source.download_as_bytes()
        except Exception as e:
            raise StorageError("Failed to read the image") from e

        image_format = options.get("format", "jpg")
        content, width, height = optimize_image(
            original,
            variant_max_size(options),
            options.get("quality", DEFAULT_QUALITY),
            image_format,
        )
        return self._store(filename, content, width, height, image_format)

    def delete(self, public_id: str) -> bool:
        try:
            blob = self.bucket.blob(public_id)
            if not blob.exists():
                return False
            blob.delete()
            # resized copies share the original's stem
            for resized in self.bucket.list_blobs(prefix=f"{os.path.splitext(public_id)[0]}_"):
                resized.delete()
        except Exception as e:
            logger.error(f"Failed to delete image {public_id}: {str(e)}")
            raise StorageError("Failed to delete the image") from e
        return True

    def info(self, public_id: str) -> dict:
        try:
            blob = self.bucket.get_blob(public_id)
        except Exception as e:
            raise StorageError("Failed to read image information") from e
        if blob is None:
            raise StorageError(f"Image {public_id} not found in storage")

        metadata = blob.metadata or {}
        return {
            "public_id": public_id,
            "format": os.path.splitext(public_id)[1].lstrip(".") or None,
            "width": int(metadata["width"]) if "width" in metadata else None,
            "height": int(metadata["height"]) if "height" in metadata else None,
            "bytes": blob.size,
            "created_at": blob.time_created,
        }

    def public_id_from_url(self, image_url: Optional[str]) -> Optional[str]:
        if not image_url or not image_url.startswith(f"{self.cdn_base_url}/"):
            return None
        return image_url[len(self.cdn_base_url) + 1:] or None


def build_image_storage(settings: Settings) -> Optional[ImageStorage]:
    if not settings.image_storage_configured:
        logger.warning("GCS configuration missing; product image endpoints are disabled")
        return None
    try:
        return GCSImageStorage(
            settings.gcs_credentials_path,
            settings.gcs_bucket_name,
            settings.cdn_base_url,
        )
    except Exception as e:
        logger.error(f"Failed to initialize image storage: {str(e)}")
        logger.error("Make sure GCS_CREDENTIALS_PATH, GCS_BUCKET_NAME, and CDN_BASE_URL are set in .env file")
        return None
