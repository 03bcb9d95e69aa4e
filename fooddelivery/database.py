"""
MongoDB access for the food delivery app.

The client is created once per application and stored in ``app.extensions``;
handlers reach the database through :func:`get_db` and the small helpers
below, which keep collection names in one place.

Collections:
- Users      -> registered accounts
- Restaurant -> one restaurant profile per owner
- Menu       -> menu items, scoped by restaurantId
- Orders     -> one document per ordered menu item
- Sessions   -> server-side session records (mongo session backend only)
"""

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from flask import current_app
from pymongo import MongoClient

logger = logging.getLogger(__name__)

USERS = "Users"
RESTAURANTS = "Restaurant"
MENU = "Menu"
ORDERS = "Orders"
SESSIONS = "Sessions"


def init_app(app, client: Optional[MongoClient] = None):
    """Attach a MongoDB client and database handle to ``app``."""
    if client is None:
        client = MongoClient(
            app.config["MONGO_URI"],
            serverSelectionTimeoutMS=app.config["MONGO_SERVER_SELECTION_TIMEOUT_MS"],
            tz_aware=True,
        )
    db = client[app.config["MONGO_DB_NAME"]]
    app.extensions["mongo_client"] = client
    app.extensions["mongo_db"] = db
    logger.info("Using MongoDB database %s", app.config["MONGO_DB_NAME"])
    return db


def get_db():
    return current_app.extensions["mongo_db"]


def to_object_id(value) -> Optional[ObjectId]:
    """Parse ``value`` into an ObjectId, or None when it is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def create_document(collection: str, data: Dict[str, Any]) -> str:
    result = get_db()[collection].insert_one(data)
    return str(result.inserted_id)


def create_documents(collection: str, documents: List[Dict[str, Any]]) -> List[str]:
    result = get_db()[collection].insert_many(documents)
    return [str(_id) for _id in result.inserted_ids]


def get_document(collection: str, filter_dict: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return get_db()[collection].find_one(filter_dict)


def get_documents(collection: str, filter_dict: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    return list(get_db()[collection].find(filter_dict or {}))


def upsert_document(collection: str, key: Dict[str, Any], values: Dict[str, Any]) -> None:
    """Update the document matching ``key`` or insert it when none matches."""
    get_db()[collection].update_one(key, {"$set": {**key, **values}}, upsert=True)


def get_orders_with_details() -> List[Dict[str, Any]]:
    """
    Every order joined with its menu item and customer.

    ``$unwind`` drops orders whose menu item or customer no longer exists.
    """
    pipeline = [
        {
            "$lookup": {
                "from": MENU,
                "localField": "menuItemId",
                "foreignField": "_id",
                "as": "menuItem",
            }
        },
        {"$unwind": "$menuItem"},
        {
            "$lookup": {
                "from": USERS,
                "localField": "customerId",
                "foreignField": "_id",
                "as": "customer",
            }
        },
        {"$unwind": "$customer"},
    ]
    return list(get_db()[ORDERS].aggregate(pipeline))


def assign_delivery_person(order_id, driver_id) -> bool:
    """
    Assign an order to a delivery person.

    No route calls this yet; it is the write side of the driver home listing.
    Returns False when the order does not exist.
    """
    order_oid = to_object_id(order_id)
    driver_oid = to_object_id(driver_id)
    if order_oid is None or driver_oid is None:
        return False
    result = get_db()[ORDERS].update_one(
        {"_id": order_oid},
        {"$set": {"deliveryPersonId": driver_oid}},
    )
    return result.matched_count == 1
