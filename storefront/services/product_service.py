# storefront/services/product_service.py
import logging
import re
import uuid
from datetime import datetime, timezone

from sqlmodel import Session

from storefront.core.errors import InvalidArgumentError, NotFoundError
from storefront.core.storage_utils import (
    upload_to_storage,
    delete_public_url,
    generate_filename,
)
from storefront.models.product import Product
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.product import ProductCreate, ProductUpdate, StockUpdate

logger = logging.getLogger(__name__)

# --- Image config ---

MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB per image

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


class ProductService:
    """
    Catalog administration.

    Responsibilities:
      - slug generation & uniqueness
      - stock level overrides
      - image upload / cleanup in Supabase Storage
    """

    def __init__(self, repo: ProductRepository):
        self.repo = repo

    # ----- Helpers -----

    @staticmethod
    def _slugify(raw: str) -> str:
        """
        lowercase, non-alphanumerics to '-', collapsed and trimmed.
        """
        value = raw.strip().lower()
        value = re.sub(r"[^a-z0-9]+", "-", value)
        value = re.sub(r"-+", "-", value)
        value = value.strip("-")
        return value or "product"

    def _ensure_unique_slug(self, session: Session, base_slug: str) -> str:
        """
        Append -2, -3, ... until the slug is free.
        """
        slug = base_slug
        i = 2
        while self.repo.get_by_slug(session, slug) is not None:
            slug = f"{base_slug}-{i}"
            i += 1
        return slug

    @staticmethod
    def _discard_image(url: str) -> None:
        # Storage cleanup never blocks catalog changes
        try:
            delete_public_url(url)
        except Exception:
            logger.warning("Failed to delete product image %s", url, exc_info=True)

    # ----- Products -----

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_active: bool = True,
    ) -> list[Product]:
        return self.repo.list(session, skip=skip, limit=limit, only_active=only_active)

    def get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    def create_product(self, session: Session, payload: ProductCreate) -> Product:
        base_slug = self._slugify(payload.slug or payload.name)
        product = Product(
            name=payload.name,
            slug=self._ensure_unique_slug(session, base_slug),
            description=payload.description,
            price=payload.price,
            stock_quantity=payload.stock_quantity,
            is_active=payload.is_active,
        )
        return self.repo.create(session, product)

    def update_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: ProductUpdate,
    ) -> Product:
        product = self.get_product(session, product_id)
        changes = payload.model_dump(exclude_unset=True)

        slug = changes.pop("slug", None)
        if slug is not None:
            new_base_slug = self._slugify(slug)
            if new_base_slug != product.slug:
                product.slug = self._ensure_unique_slug(session, new_base_slug)

        for field, value in changes.items():
            if value is not None:
                setattr(product, field, value)

        product.updated_at = datetime.now(timezone.utc)
        return self.repo.update(session, product)

    def set_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: StockUpdate,
    ) -> Product:
        product = self.get_product(session, product_id)
        product.stock_quantity = payload.quantity
        product.updated_at = datetime.now(timezone.utc)
        return self.repo.update(session, product)

    def delete_product(self, session: Session, product_id: uuid.UUID) -> None:
        """
        Delete a product, cleaning up its Storage image first (best-effort).
        """
        product = self.get_product(session, product_id)
        if product.image_url:
            self._discard_image(product.image_url)
        self.repo.delete(session, product)
        logger.info("Product %s deleted", product_id)

    def set_image(
        self,
        session: Session,
        product_id: uuid.UUID,
        content_type: str,
        file_bytes: bytes,
    ) -> Product:
        """
        Upload or replace the product image.

        Path pattern:
            <product_id>/<uuid>.<ext>
        """
        product = self.get_product(session, product_id)

        ext = ALLOWED_IMAGE_CONTENT_TYPES.get(content_type)
        if ext is None:
            raise InvalidArgumentError(
                "Unsupported image type. Allowed: JPEG, PNG, WEBP."
            )
        if len(file_bytes) > MAX_IMAGE_BYTES:
            raise InvalidArgumentError("Image too large (max 5MB).")

        previous = product.image_url
        path = f"{product.id}/{generate_filename(ext)}"
        product.image_url = upload_to_storage(path, file_bytes, content_type)
        product.updated_at = datetime.now(timezone.utc)
        product = self.repo.update(session, product)

        if previous:
            self._discard_image(previous)
        return product
