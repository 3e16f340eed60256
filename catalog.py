import logging
import time
from typing import List, Optional, Sequence

from fastapi import UploadFile

from database import JsonStore
from errors import NotFoundError, ValidationError
from media import MediaManager
from schemas import DEFAULT_SIZES, MediaRef, Product, ProductForm, ReviewIn

logger = logging.getLogger("storefront.catalog")

PLACEHOLDER_IMAGE = "/img/placeholder.jpg"
REQUIRED_FIELDS = ("name", "price", "category")

SAMPLE_PRODUCTS = [
    {
        "name": "Classic Tee",
        "price": 19.99,
        "category": "Apparel",
        "sizes": ["S", "M", "L", "XL"],
        "description": "Soft cotton tee with a relaxed fit.",
    },
    {
        "name": "Denim Jacket",
        "price": 79.0,
        "category": "Outerwear",
        "sizes": ["S", "M", "L"],
        "description": "Washed denim with brass buttons.",
    },
    {
        "name": "Wool Beanie",
        "price": 15.5,
        "category": "Accessories",
        "sizes": ["One Size"],
        "description": "Ribbed merino beanie.",
    },
    {
        "name": "Running Shorts",
        "price": 29.0,
        "category": "Sportswear",
        "sizes": ["S", "M", "L"],
        "description": "Lightweight shorts with a zip pocket.",
    },
]


def primary_image(media: Sequence[MediaRef]) -> str:
    return media[0].url if media else PLACEHOLDER_IMAGE


def next_id(records) -> int:
    """Current epoch milliseconds, bumped past the highest id already used."""
    candidate = int(time.time() * 1000)
    highest = max((r.get("id", 0) for r in records), default=0)
    return max(candidate, highest + 1)


def find_index(records, product_id: int) -> int:
    for i, r in enumerate(records):
        if r.get("id") == product_id:
            return i
    return -1


class ProductCatalog:
    collection = "products"

    def __init__(self, store: JsonStore, media: MediaManager, max_media_files: int = 10):
        self.store = store
        self.media = media
        self.max_media_files = max_media_files

    def list(self) -> List[Product]:
        return [Product.model_validate(r) for r in self.store.read(self.collection)]

    def get(self, product_id: int) -> Product:
        records = self.store.read(self.collection)
        i = find_index(records, product_id)
        if i == -1:
            raise NotFoundError("Product not found")
        return Product.model_validate(records[i])

    def create(self, form: ProductForm, uploads: Optional[Sequence[UploadFile]] = None) -> Product:
        missing = [f for f in REQUIRED_FIELDS if getattr(form, f) is None]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        media = self._store_uploads(uploads)

        try:
            with self.store.transaction(self.collection):
                records = self.store.read(self.collection)
                product = Product(
                    id=next_id(records),
                    name=form.name,
                    price=form.price,
                    category=form.category,
                    image=primary_image(media),
                    media=media,
                    sizes=form.sizes or list(DEFAULT_SIZES),
                    description=form.description,
                    reviews=[],
                )
                records.append(product.to_record())
                self.store.write(self.collection, records)
        except Exception:
            self.media.discard(media)
            raise

        logger.info("Created product %s (%s)", product.id, product.name)
        return product

    def update(self, product_id: int, form: ProductForm, uploads: Optional[Sequence[UploadFile]] = None) -> Product:
        media = self._store_uploads(uploads)

        try:
            with self.store.transaction(self.collection):
                records = self.store.read(self.collection)
                i = find_index(records, product_id)
                if i == -1:
                    raise NotFoundError("Product not found")

                current = Product.model_validate(records[i])
                changes = form.present()
                replaced: List[MediaRef] = []
                if media:
                    replaced = current.media
                    changes["media"] = media
                    changes["image"] = primary_image(media)
                updated = current.model_copy(update=changes)
                # model_copy skips validation; round-trip so the stored record is well formed.
                updated = Product.model_validate(updated.model_dump())

                records[i] = updated.to_record()
                self.store.write(self.collection, records)
        except Exception:
            self.media.discard(media)
            raise

        self.media.discard(replaced)
        logger.info("Updated product %s", product_id)
        return updated

    def delete(self, product_id: int) -> Product:
        with self.store.transaction(self.collection):
            records = self.store.read(self.collection)
            i = find_index(records, product_id)
            if i == -1:
                raise NotFoundError("Product not found")
            product = Product.model_validate(records.pop(i))
            self.store.write(self.collection, records)

        self.media.discard(product.media)
        logger.info("Deleted product %s", product_id)
        return product

    def add_review(self, product_id: int, review: ReviewIn) -> Product:
        with self.store.transaction(self.collection):
            records = self.store.read(self.collection)
            i = find_index(records, product_id)
            if i == -1:
                raise NotFoundError("Product not found")
            product = Product.model_validate(records[i])
            product.reviews.append(review.to_review())
            records[i] = product.to_record()
            self.store.write(self.collection, records)
        return product

    def seed(self, force: bool = False) -> int:
        with self.store.transaction(self.collection):
            records = self.store.read(self.collection)
            if records and not force:
                return 0
            old_media = [m for r in records for m in Product.model_validate(r).media]
            records = []
            for sample in SAMPLE_PRODUCTS:
                product = Product(id=next_id(records), image=PLACEHOLDER_IMAGE, **sample)
                records.append(product.to_record())
            self.store.write(self.collection, records)

        self.media.discard(old_media)
        logger.info("Seeded %d products", len(records))
        return len(records)

    def _store_uploads(self, uploads: Optional[Sequence[UploadFile]]) -> List[MediaRef]:
        uploads = [u for u in (uploads or []) if u.filename]
        if len(uploads) > self.max_media_files:
            raise ValidationError(f"Too many files: at most {self.max_media_files} allowed")
        return self.media.store_all(uploads)
