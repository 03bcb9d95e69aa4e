import logging
import os

from pymongo import ASCENDING, MongoClient

from fooddelivery.config import config
from fooddelivery.database import MENU, ORDERS, RESTAURANTS, SESSIONS, USERS

logger = logging.getLogger(__name__)


def init_database(db):
    # create_index is a no-op for indexes that already exist
    db[USERS].create_index([('name', ASCENDING)], name='idx_users_name')
    db[USERS].create_index([('email', ASCENDING)], name='idx_users_email')

    # One restaurant per owner; /details upserts on this key
    db[RESTAURANTS].create_index([('ownerId', ASCENDING)], name='idx_restaurant_owner', unique=True)

    db[MENU].create_index([('restaurantId', ASCENDING)], name='idx_menu_restaurant')

    db[ORDERS].create_index([('customerId', ASCENDING)], name='idx_orders_customer')
    db[ORDERS].create_index([('restaurantId', ASCENDING)], name='idx_orders_restaurant')
    db[ORDERS].create_index([('deliveryPersonId', ASCENDING)], name='idx_orders_delivery_person')

    # Mongo removes expired sessions on its own
    db[SESSIONS].create_index([('expiresAt', ASCENDING)], name='idx_sessions_expiry', expireAfterSeconds=0)

    logger.info("Indexes ensured on database %s", db.name)


if __name__ == '__main__':
    cfg = config[os.environ.get('FLASK_CONFIG', 'default')]
    logging.basicConfig(level=cfg.LOG_LEVEL)
    client = MongoClient(cfg.MONGO_URI, serverSelectionTimeoutMS=cfg.MONGO_SERVER_SELECTION_TIMEOUT_MS)
    try:
        init_database(client[cfg.MONGO_DB_NAME])
    finally:
        client.close()
