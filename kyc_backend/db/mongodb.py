from pymongo import MongoClient
from pymongo.database import Database

from kyc_backend.core.logging import get_logger

logger = get_logger("mongodb")


def create_mongo_client(settings) -> MongoClient:
    """
    Builds the process-wide MongoClient. pymongo connects lazily, so this does not
    fail when the server is down; the first query does.
    """
    logger.info(f"Creating MongoDB client for database '{settings.MONGODB_DB}'.")
    return MongoClient(settings.MONGODB_BASE, serverSelectionTimeoutMS=settings.MONGODB_TIMEOUT_MS)


def get_database(client: MongoClient, settings) -> Database:
    return client[settings.MONGODB_DB]
