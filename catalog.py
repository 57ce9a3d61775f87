"""Read-only access to the product collection."""

from typing import Dict, Iterable, List, Optional

from pymongo.database import Database

from database import to_object_id

PRODUCT_COLLECTION = "product"

# Fields an order line item exposes when its product reference is expanded.
SUMMARY_FIELDS = {"title": 1, "colors": 1, "coverImage": 1}


class CatalogStore:
    def __init__(self, database: Database):
        self.collection = database[PRODUCT_COLLECTION]

    def find_by_id(self, product_id) -> Optional[dict]:
        oid = to_object_id(product_id)
        if oid is None:
            return None
        return self.collection.find_one({"_id": oid})

    def find_by_ids(self, product_ids: Iterable, projection: Optional[dict] = None) -> Dict[str, dict]:
        """Return the products that resolve, keyed by their id string."""
        oids = list({oid for oid in (to_object_id(p) for p in product_ids) if oid is not None})
        if not oids:
            return {}
        docs = self.collection.find({"_id": {"$in": oids}}, projection)
        return {str(d["_id"]): d for d in docs}

    def list(self, category: Optional[str] = None, limit: int = 100) -> List[dict]:
        query = {"category": category} if category else {}
        return list(self.collection.find(query).limit(limit))
