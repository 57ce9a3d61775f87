import logging
import os
from typing import Any, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import database
from catalog import CatalogStore
from database import doc_to_dict
from errors import OrderServiceError
from orders import OrderEngine
from schemas import (
    NotificationRequest,
    OrderCreate,
    OrderStatusUpdate,
    ProductOut,
    RemoveLineItemRequest,
)

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Wahret Zmen Orders API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(OrderServiceError)
async def order_service_error_handler(request: Request, exc: OrderServiceError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ---------- Dependencies ----------

def get_database():
    try:
        return database.get_db()
    except RuntimeError:
        raise HTTPException(status_code=500, detail="Database not configured")


def get_catalog(db=Depends(get_database)) -> CatalogStore:
    return CatalogStore(db)


def get_engine(db=Depends(get_database)) -> OrderEngine:
    return OrderEngine(db)


# ---------- Basic Routes ----------

@app.get("/")
def read_root():
    return {"message": "Orders Backend Running"}


# ---------- Product Routes ----------

@app.get("/api/products", response_model=List[ProductOut])
def list_products(category: Optional[str] = None, catalog: CatalogStore = Depends(get_catalog)) -> Any:
    return [ProductOut(**doc_to_dict(d)) for d in catalog.list(category)]


@app.get("/api/products/{product_id}", response_model=ProductOut)
def get_product(product_id: str, catalog: CatalogStore = Depends(get_catalog)):
    doc = catalog.find_by_id(product_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Product not found")
    return ProductOut(**doc_to_dict(doc))


# ---------- Order Routes ----------

@app.post("/api/orders")
def create_order(order: OrderCreate, engine: OrderEngine = Depends(get_engine)):
    return engine.create_order(order)


@app.get("/api/orders")
def list_orders(engine: OrderEngine = Depends(get_engine)):
    return engine.list_all()


@app.get("/api/orders/email/{email}")
def list_orders_by_email(email: str, engine: OrderEngine = Depends(get_engine)):
    return engine.list_by_email(email)


@app.put("/api/orders/remove-product")
def remove_product_from_order(payload: RemoveLineItemRequest, engine: OrderEngine = Depends(get_engine)):
    return engine.remove_line_item(payload)


@app.post("/api/orders/send-notification")
def send_order_notification(payload: NotificationRequest, engine: OrderEngine = Depends(get_engine)):
    return engine.notify_progress(payload)


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, engine: OrderEngine = Depends(get_engine)):
    return engine.get_order(order_id)


@app.put("/api/orders/{order_id}")
def update_order(order_id: str, update: OrderStatusUpdate, engine: OrderEngine = Depends(get_engine)):
    return engine.update_status(order_id, update)


@app.delete("/api/orders/{order_id}")
def delete_order(order_id: str, engine: OrderEngine = Depends(get_engine)):
    deleted = engine.delete_order(order_id)
    return {"message": "Order deleted successfully", "deletedOrder": deleted}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
