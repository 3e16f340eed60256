"""
Shared fixtures: every test gets its own data and upload directories.
"""
import io

import pytest
from fastapi import UploadFile
from fastapi.testclient import TestClient
from starlette.datastructures import Headers

from cart import CartLedger
from catalog import ProductCatalog
from config import Settings
from database import JsonStore
from main import create_app
from media import MediaManager
from orders import OrderProcessor


def make_upload(filename="photo.png", content=b"\x89PNG fake image", content_type="image/png"):
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def product_record(product_id=1, name="Tee", price=10.0, **extra):
    record = {
        "id": product_id,
        "name": name,
        "price": price,
        "category": "Apparel",
        "image": "/img/placeholder.jpg",
        "media": [],
        "sizes": ["S", "M", "L"],
        "description": None,
        "reviews": [],
    }
    record.update(extra)
    return record


@pytest.fixture
def settings(tmp_path):
    return Settings(
        data_dir=str(tmp_path / "data"),
        upload_dir=str(tmp_path / "uploads"),
        max_upload_bytes=1024,
        max_media_files=3,
    )


@pytest.fixture
def store(settings):
    s = JsonStore(settings.data_dir)
    s.bootstrap()
    return s


@pytest.fixture
def media(settings):
    m = MediaManager(settings.upload_dir, max_upload_bytes=settings.max_upload_bytes)
    m.bootstrap()
    return m


@pytest.fixture
def catalog(store, media, settings):
    return ProductCatalog(store, media, max_media_files=settings.max_media_files)


@pytest.fixture
def cart(store):
    return CartLedger(store)


@pytest.fixture
def orders(store):
    return OrderProcessor(store)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def lenient_client(settings):
    with TestClient(create_app(settings), raise_server_exceptions=False) as c:
        yield c
