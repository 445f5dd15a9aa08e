import logging
from typing import Optional

from sqlalchemy.orm import joinedload

from hardware_store.core.errors import InfrastructureError, NotFoundError, ValidationError
from hardware_store.database import Database
from hardware_store.models import Product, SubCategory
from hardware_store.schemas.images import (
    ImageDetails,
    ImageTransformations,
    OptimizedImage,
    ProductImageInfo,
    ProductImageUpload,
)
from hardware_store.schemas.products import ProductResponse
from hardware_store.services.catalog_service import normalize_code
from hardware_store.services.storage_service import (
    DEFAULT_QUALITY,
    IMAGE_FORMATS,
    ImageStorage,
    product_upload_options,
)

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
MAX_IMAGE_BYTES = 5 * 1024 * 1024


class ImageService:
    """
    Product images kept in an external image store.

    The product row and the stored asset must never disagree in a way that
    loses data: the product is only pointed at an image once the upload
    succeeded, and an uploaded asset whose product update failed is
    deleted again.
    """

    def __init__(self, database: Database, storage: Optional[ImageStorage]):
        self.database = database
        self.storage = storage

    def _require_storage(self) -> ImageStorage:
        if self.storage is None:
            raise InfrastructureError("Image storage is not configured")
        return self.storage

    def _find_active_product(self, code: str) -> Product:
        with self.database.session() as db:
            product = db.query(Product).filter(Product.code == code, Product.active.is_(True)).first()
            if not product:
                raise NotFoundError(f"Product with code {code} not found")
            db.expunge(product)
            return product

    def _discard(self, public_id: str) -> None:
        """Best-effort removal of a stored asset."""
        try:
            self.storage.delete(public_id)
        except Exception as e:
            logger.warning(f"Unable to delete image {public_id}: {str(e)}")

    def upload_product_image(
        self, code: str, content: bytes, content_type: Optional[str] = None
    ) -> ProductImageUpload:
        code = normalize_code(code)
        storage = self._require_storage()

        if not content:
            raise ValidationError("An image file is required")
        if content_type and content_type.lower() not in ALLOWED_CONTENT_TYPES:
            raise ValidationError("File type not allowed. Only JPEG, PNG, GIF and WebP images are accepted")
        if len(content) > MAX_IMAGE_BYTES:
            raise ValidationError("File too large. Maximum allowed size is 5MB")

        # Fail before uploading anything when the product is unknown
        self._find_active_product(code)

        uploaded = storage.upload(content, product_upload_options(code))

        try:
            with self.database.unit_of_work() as db:
                product = (
                    db.query(Product)
                    .filter(Product.code == code, Product.active.is_(True))
                    .with_for_update()
                    .first()
                )
                if not product:
                    raise NotFoundError(f"Product with code {code} not found")
                previous_url = product.image_url
                product.image_url = uploaded.url
                db.flush()
                db.refresh(product)
                result = ProductResponse.model_validate(product)
        except Exception:
            logger.error(f"Product {code} update failed, removing uploaded image {uploaded.public_id}")
            self._discard(uploaded.public_id)
            raise

        previous_id = storage.public_id_from_url(previous_url)
        if previous_id and previous_id != uploaded.public_id:
            self._discard(previous_id)

        logger.info(f"Image uploaded for product {code}: {uploaded.url}")
        return ProductImageUpload(product=result, image=uploaded.to_dict())

    def delete_product_image(self, code: str) -> ProductResponse:
        code = normalize_code(code)
        storage = self._require_storage()

        with self.database.unit_of_work() as db:
            product = (
                db.query(Product)
                .options(joinedload(Product.sub_category).joinedload(SubCategory.category))
                .filter(Product.code == code, Product.active.is_(True))
                .first()
            )
            if not product:
                raise NotFoundError(f"Product with code {code} not found")
            if not product.image_url:
                raise ValidationError("This product has no image to delete")

            public_id = storage.public_id_from_url(product.image_url)
            product.image_url = None
            db.flush()
            db.refresh(product)
            result = ProductResponse.model_validate(product)

        if public_id:
            self._discard(public_id)
        logger.info(f"Image removed from product {code}")
        return result

    def get_image_info(self, code: str) -> ProductImageInfo:
        code = normalize_code(code)
        product = self._find_active_product(code)
        if not product.image_url:
            raise NotFoundError("No image is associated with this product")

        storage = self._require_storage()
        public_id = storage.public_id_from_url(product.image_url)
        if not public_id:
            raise ValidationError("Invalid image URL")

        try:
            details = ImageDetails(url=product.image_url, **storage.info(public_id))
        except InfrastructureError as e:
            logger.warning(f"Image details unavailable for {public_id}: {e.message}")
            details = ImageDetails(url=product.image_url, note="Detailed information is not available")

        return ProductImageInfo(code=product.code, designation=product.designation, image=details)

    def get_optimized_image_url(
        self,
        code: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
        quality: int = DEFAULT_QUALITY,
        image_format: str = "jpg",
    ) -> OptimizedImage:
        """
        URL of a resized, re-encoded copy of the product image.

        Width and height are upper bounds and keep the aspect ratio; with
        neither given the copy keeps the original size.
        """
        code = normalize_code(code)
        image_format = (image_format or "jpg").lower()
        if image_format not in IMAGE_FORMATS:
            raise ValidationError(f"Unsupported format. Allowed formats: {', '.join(IMAGE_FORMATS)}")
        if not 1 <= quality <= 100:
            raise ValidationError("Quality must be between 1 and 100")

        with self.database.session() as db:
            product = db.query(Product).filter(Product.code == code, Product.active.is_(True)).first()
            image_url = product.image_url if product else None
        if not image_url:
            raise NotFoundError("Product or image not found")

        storage = self._require_storage()
        public_id = storage.public_id_from_url(image_url)
        if not public_id:
            raise ValidationError("Invalid image URL")

        transformations = ImageTransformations(
            width=width, height=height, quality=quality, format=image_format
        )
        resized = storage.variant(public_id, transformations.model_dump())
        logger.info(f"Optimized image for product {code}: {resized.public_id}")
        return OptimizedImage(
            original_url=image_url,
            optimized_url=resized.url,
            width=resized.width,
            height=resized.height,
            bytes=resized.bytes,
            transformations=transformations,
        )
