from typing import Optional

from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase


class MongoConnection:

    def __init__(self) -> None:
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None


def connect_to_mongo(url: str, db_name: str) -> MongoConnection:
    conn = MongoConnection()
    # tz_aware keeps stored timestamps in UTC on the way back out
    conn.client = AsyncIOMotorClient(url, tz_aware=True)
    conn.db = conn.client[db_name]
    logger.info("Connected to MongoDB database {}", db_name)
    return conn


def close_mongo_connection(conn: MongoConnection) -> None:
    if conn.client is not None:
        conn.client.close()
        logger.info("Closed MongoDB connection")
    conn.client = None
    conn.db = None
