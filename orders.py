"""
Order engine: placement, retrieval, status updates, line-item removal and
progress notifications over the "order" collection.

A line item is identified inside an order by its product and colour
(LineItemKey), so the same product ordered in two colours forms two items.
"""

import logging
import os
from typing import Dict, List, Optional, Tuple

import pydantic
from bson import ObjectId
from pydantic.networks import validate_email
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from catalog import SUMMARY_FIELDS, CatalogStore
from database import create_document, doc_to_dict, get_documents, now_utc, to_object_id
from errors import (
    ConcurrentModificationError,
    NoOrdersFoundError,
    NotificationDispatchError,
    OrderCreationError,
    OrderNotFoundError,
    ProductNotFoundError,
    ProductNotInOrderError,
    QuantityExceededError,
    StoreError,
    ValidationError,
)
from notifications import Notifier, SmtpNotifier, compose_progress_message
from schemas import (
    DEFAULT_COLOR_NAME,
    Color,
    LineItem,
    LineItemKey,
    LineItemRequest,
    NotificationRequest,
    Order,
    OrderCreate,
    OrderStatusUpdate,
    RemoveLineItemRequest,
)

logger = logging.getLogger(__name__)

ORDER_COLLECTION = "order"


def default_cover_image() -> str:
    return os.getenv("DEFAULT_COVER_IMAGE", "/assets/default-image.png")


# ---------- Line-item helpers ----------

def resolve_color(requested: Optional[dict], product: dict) -> Color:
    """Pick the colour stored on a new line item."""
    if requested and requested.get("colorName"):
        return Color.model_validate(requested)
    colors = product.get("colors") or []
    if colors:
        return Color.model_validate(colors[0])
    return Color(color_name=DEFAULT_COLOR_NAME, image=product.get("coverImage"))


def matches(item: dict, key: LineItemKey) -> bool:
    product_ref = item.get("productId")
    if isinstance(product_ref, dict):
        # expanded reference
        product_ref = product_ref.get("id") or product_ref.get("_id")
    color = item.get("color") or {}
    return product_ref is not None and str(product_ref) == key.product_id and color.get("colorName") == key.color_name


def remove_quantity(items: List[dict], key: LineItemKey, quantity: int) -> List[dict]:
    """
    Return `items` with `quantity` units taken off the item matching `key`.

    An item reduced to zero is dropped. Other items are returned untouched and in
    their original order. Raises ProductNotInOrderError when nothing matches and
    QuantityExceededError when the item holds fewer than `quantity` units; in
    both cases `items` is left as it was.
    """
    result = []
    found = False
    for item in items:
        if found or not matches(item, key):
            result.append(item)
            continue
        found = True
        if item["quantity"] < quantity:
            raise QuantityExceededError()
        remaining = item["quantity"] - quantity
        if remaining > 0:
            result.append({**item, "quantity": remaining})
    if not found:
        raise ProductNotInOrderError()
    return result


def compute_total(items: List[dict], products: Dict[str, dict]) -> float:
    """Sum newPrice * quantity; products that no longer exist count as 0."""
    total = 0
    for item in items:
        product = products.get(str(item["productId"])) or {}
        total += (product.get("newPrice") or 0) * item["quantity"]
    return total


def summarize_product(product: Optional[dict]) -> Optional[dict]:
    if product is None:
        return None
    return doc_to_dict({k: product.get(k) for k in ("_id", *SUMMARY_FIELDS)})


# ---------- Engine ----------

class OrderEngine:
    def __init__(self, database: Database, catalog: Optional[CatalogStore] = None,
                 notifier: Optional[Notifier] = None):
        self.database = database
        self.orders = database[ORDER_COLLECTION]
        self.catalog = catalog or CatalogStore(database)
        self.notifier = notifier or SmtpNotifier()

    # -- placement --

    def _resolve_line_item(self, requested: LineItemRequest) -> Tuple[LineItem, dict]:
        product = self.catalog.find_by_id(requested.product_id)
        if not product:
            raise ProductNotFoundError(f"Product not found: {requested.product_id}")
        color_in = requested.color.model_dump(by_alias=True) if requested.color else None
        item = LineItem(product_id=str(product["_id"]), quantity=requested.quantity,
                        color=resolve_color(color_in, product))
        return item, product

    def create_order(self, payload: OrderCreate) -> dict:
        try:
            resolved = [self._resolve_line_item(p) for p in payload.products]
            line_items = [item for item, _ in resolved]
            products = {str(product["_id"]): product for _, product in resolved}
            order = Order(
                name=payload.name,
                email=payload.email,
                phone=payload.phone,
                address=payload.address,
                products=line_items,
                total_price=compute_total([i.model_dump(by_alias=True) for i in line_items], products),
            )
            doc = order.model_dump(by_alias=True)
            for item in doc["products"]:
                item["productId"] = ObjectId(item["productId"])
            order_id = create_document(ORDER_COLLECTION, doc, database=self.database)
            saved = self.orders.find_one({"_id": ObjectId(order_id)})
        except ProductNotFoundError as e:
            logger.error(f"Error creating order: {e.message}")
            raise OrderCreationError(e.message)
        except pydantic.ValidationError:
            logger.exception("Error creating order: stored product data is invalid")
            raise OrderCreationError()
        except PyMongoError:
            logger.exception("Error creating order")
            raise OrderCreationError()
        logger.info(f"Order {order_id} created for {payload.email} with {len(line_items)} line item(s)")
        return doc_to_dict(saved)

    # -- retrieval --

    def _find(self, order_id) -> dict:
        oid = to_object_id(order_id)
        order = self.orders.find_one({"_id": oid}) if oid else None
        if not order:
            raise OrderNotFoundError()
        return order

    def _expand(self, orders: List[dict]) -> List[dict]:
        """Replace each line item's productId with a summary of the product (or None)."""
        ids = [item.get("productId") for order in orders for item in order.get("products", [])]
        products = self.catalog.find_by_ids(ids, SUMMARY_FIELDS)
        expanded = []
        for order in orders:
            out = doc_to_dict(order)
            for item, raw in zip(out.get("products", []), order.get("products", [])):
                item["productId"] = summarize_product(products.get(str(raw.get("productId"))))
            expanded.append(out)
        return expanded

    def list_by_email(self, email: str) -> List[dict]:
        # Orders store the address as EmailStr normalised it.
        try:
            _, email = validate_email(email)
        except ValueError:
            raise NoOrdersFoundError()
        try:
            orders = list(self.orders.find({"email": email}).sort("createdAt", -1))
            result = self._expand(orders)
        except PyMongoError:
            logger.exception("Error fetching orders")
            raise StoreError("Failed to fetch orders")
        if not result:
            raise NoOrdersFoundError()
        return result

    def get_order(self, order_id: str) -> dict:
        try:
            order = self._find(order_id)
            return self._expand([order])[0]
        except PyMongoError:
            logger.exception("Error fetching order by ID")
            raise StoreError("Failed to fetch order by ID")

    def list_all(self) -> List[dict]:
        try:
            orders = self._expand(get_documents(ORDER_COLLECTION, database=self.database))
        except PyMongoError:
            logger.exception("Error fetching orders")
            raise StoreError("Failed to fetch orders")
        fallback = default_cover_image()
        for order in orders:
            for item in order.get("products", []):
                item["coverImage"] = (item.get("productId") or {}).get("coverImage") or fallback
        return orders

    # -- mutation --

    def update_status(self, order_id: str, update: OrderStatusUpdate) -> dict:
        oid = to_object_id(order_id)
        if oid is None:
            raise OrderNotFoundError()
        changes = {
            "isPaid": update.is_paid,
            "isDelivered": update.is_delivered,
            "productProgress": update.product_progress or {},
            "updatedAt": now_utc(),
        }
        try:
            updated = self.orders.find_one_and_update(
                {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
            )
        except PyMongoError:
            logger.exception("Error updating order")
            raise StoreError("Failed to update order")
        if not updated:
            raise OrderNotFoundError()
        return doc_to_dict(updated)

    def delete_order(self, order_id: str) -> dict:
        oid = to_object_id(order_id)
        if oid is None:
            raise OrderNotFoundError()
        try:
            deleted = self.orders.find_one_and_delete({"_id": oid})
        except PyMongoError:
            logger.exception("Error deleting order")
            raise StoreError("Failed to delete order")
        if not deleted:
            raise OrderNotFoundError()
        logger.info(f"Order {order_id} deleted")
        return doc_to_dict(deleted)

    def remove_line_item(self, request: RemoveLineItemRequest) -> dict:
        key = request.key
        try:
            order = self._find(request.order_id)
            items = remove_quantity(order.get("products", []), key, request.quantity_to_remove)
            products = self.catalog.find_by_ids(item["productId"] for item in items)
            total = compute_total(items, products)

            # Only write if nobody changed the order since we read it.
            version = order.get("version")
            version_filter = version if version is not None else {"$exists": False}
            result = self.orders.update_one(
                {"_id": order["_id"], "version": version_filter},
                {
                    "$set": {"products": items, "totalPrice": total, "updatedAt": now_utc()},
                    "$inc": {"version": 1},
                },
            )
        except PyMongoError:
            logger.exception("Error updating order")
            raise StoreError("Failed to update order")
        if result.matched_count == 0:
            logger.warning(f"Order {request.order_id} changed while removing {key}")
            raise ConcurrentModificationError()
        logger.info(f"Removed {request.quantity_to_remove} x {key} from order {request.order_id}, total now {total}")
        return {"message": "Product updated successfully"}

    # -- notifications --

    def notify_progress(self, request: NotificationRequest) -> dict:
        logger.info(f"Incoming notification request for order {request.order_id}")
        if not request.email or not request.product_key or request.progress is None:
            raise ValidationError("Missing email, productKey, or progress value")
        if not 0 <= request.progress <= 100:
            raise ValidationError("Progress must be between 0 and 100")
        try:
            key = LineItemKey.parse(request.product_key)
        except ValueError as e:
            raise ValidationError(str(e))

        order = self.get_order(request.order_id)
        item = next((i for i in order.get("products", []) if matches(i, key)), None)
        if item is None:
            raise ProductNotInOrderError()

        message = compose_progress_message(
            customer_name=order.get("name"),
            product_title=item["productId"]["title"],
            color_name=item["color"]["colorName"],
            progress=request.progress,
        )
        try:
            self.notifier.send(request.email, message.subject, message.html)
        except Exception as e:
            logger.exception("Error sending notification")
            raise NotificationDispatchError(str(e))
        return {"message": "Notification sent successfully in French and Arabic."}
