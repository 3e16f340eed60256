import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError as PydanticValidationError

from cart import CartLedger
from catalog import ProductCatalog
from config import Settings
from database import COLLECTIONS, JsonStore
from errors import StoreError
from media import MediaManager
from orders import OrderProcessor
from schemas import CartAdd, CartAdjust, OrderIn, ProductForm, ReviewIn, SeedRequest

logger = logging.getLogger("storefront.api")

router = APIRouter()

# ---------- Helpers ----------

def describe_errors(errors) -> str:
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", "invalid"))
    return "Invalid request: " + "; ".join(parts)


def product_form(
    name: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    sizes: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
) -> ProductForm:
    try:
        return ProductForm(name=name, price=price, category=category, sizes=sizes, description=description)
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors()) from e


# ---------- Health ----------

@router.get("/")
def root():
    return {"message": "Storefront API running"}

@router.get("/test")
def test_database(request: Request):
    store: JsonStore = request.app.state.store
    resp = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "data_dir": store.name,
        "upload_dir": str(request.app.state.media.upload_dir),
        "collections": []
    }
    try:
        resp["collections"] = store.list_collection_names()
        if len(resp["collections"]) == len(COLLECTIONS):
            resp["database"] = "✅ Connected"
        else:
            resp["database"] = "⚠️ Missing collections"
    except Exception as e:
        resp["database"] = f"⚠️ {str(e)[:80]}"
    return resp

# ---------- Seed Data ----------

@router.post("/api/seed")
def seed(request: Request, req: Optional[SeedRequest] = None):
    req = req or SeedRequest()
    count = request.app.state.catalog.seed(force=req.force)
    if not count:
        return {"status": "ok", "message": "Already seeded"}
    return {"status": "ok", "seeded": count}

# ---------- Products ----------

@router.get("/api/products")
def list_products(request: Request):
    return [p.to_record() for p in request.app.state.catalog.list()]

@router.get("/api/products/{product_id}")
def get_product(request: Request, product_id: int):
    return request.app.state.catalog.get(product_id).to_record()

@router.post("/api/products", status_code=201)
def create_product(
    request: Request,
    form: ProductForm = Depends(product_form),
    media: Optional[List[UploadFile]] = File(None),
):
    product = request.app.state.catalog.create(form, media)
    return {"message": "Product added successfully", "product": product.to_record()}

@router.put("/api/products/{product_id}")
def update_product(
    request: Request,
    product_id: int,
    form: ProductForm = Depends(product_form),
    media: Optional[List[UploadFile]] = File(None),
):
    product = request.app.state.catalog.update(product_id, form, media)
    return {"message": "Product updated successfully", "product": product.to_record()}

@router.delete("/api/products/{product_id}")
def delete_product(request: Request, product_id: int):
    product = request.app.state.catalog.delete(product_id)
    return {"message": "Product deleted successfully", "product": product.to_record()}

@router.post("/api/products/{product_id}/reviews", status_code=201)
def add_review(request: Request, product_id: int, review: ReviewIn):
    product = request.app.state.catalog.add_review(product_id, review)
    return {"message": "Review added", "product": product.to_record()}

# ---------- Cart ----------

@router.get("/api/cart")
def get_cart(request: Request):
    return [it.to_record() for it in request.app.state.cart.list()]

@router.post("/api/cart")
def cart_add(request: Request, req: CartAdd):
    cart = request.app.state.cart.add(req.product_id, req.size)
    return {"message": "Item added to cart", "cart": [it.to_record() for it in cart]}

@router.put("/api/cart/{product_id}/{size}")
def cart_adjust(request: Request, product_id: int, size: str, req: CartAdjust):
    cart = request.app.state.cart.adjust(product_id, size, req.change)
    return {"message": "Cart updated", "cart": [it.to_record() for it in cart]}

@router.delete("/api/cart/{product_id}/{size}")
def cart_remove(request: Request, product_id: int, size: str):
    cart = request.app.state.cart.remove(product_id, size)
    return {"message": "Item removed from cart", "cart": [it.to_record() for it in cart]}

# ---------- Orders ----------

@router.get("/api/orders")
def list_orders(request: Request):
    return [o.to_record() for o in request.app.state.orders.list()]

@router.post("/api/orders", status_code=201)
def place_order(request: Request, req: OrderIn):
    order = request.app.state.orders.place(req)
    return {"message": "Order placed successfully", "order": order.to_record()}

# ---------- Maintenance ----------

@router.post("/api/self-destruct")
def self_destruct(request: Request):
    request.app.state.store.wipe()
    removed = request.app.state.media.purge()
    logger.warning("Self-destruct: all collections cleared, %d uploads deleted", removed)
    return {"message": "All data has been deleted"}


# ---------- App ----------

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    store = JsonStore(settings.data_dir)
    media = MediaManager(settings.upload_dir, max_upload_bytes=settings.max_upload_bytes)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.bootstrap()
        media.bootstrap()
        logger.info("Storefront data in %s, uploads in %s", store.name, media.upload_dir)
        yield

    app = FastAPI(title="Storefront API", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.media = media
    app.state.catalog = ProductCatalog(store, media, max_media_files=settings.max_media_files)
    app.state.cart = CartLedger(store)
    app.state.orders = OrderProcessor(store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"message": describe_errors(exc.errors())})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})

    app.include_router(router)
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = app.state.settings
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
