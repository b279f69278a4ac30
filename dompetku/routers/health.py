"""
Health Check Router
Liveness and DynamoDB connectivity endpoints
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from dompetku.core.config import settings
from dompetku.core.errors import StoreError
from dompetku.db import dynamo

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
def health_check():
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/status")
def store_status():
    """
    Check that both DynamoDB tables answer a one-item scan.
    """
    tables = {}
    for label, table, name in (
        ("users", dynamo.users_table, settings.DYNAMO_USERS_TABLE),
        ("transactions", dynamo.transactions_table, settings.DYNAMO_TRANSACTIONS_TABLE),
    ):
        try:
            dynamo.ping_table(table)
            tables[label] = {"name": name, "status": "accessible"}
        except StoreError as e:
            logger.warning(f"Table {name} unreachable: {e.message}")
            tables[label] = {"name": name, "status": "error", "error": e.message}

    connected = all(table["status"] == "accessible" for table in tables.values())
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "dynamodb": {
                "connected": connected,
                "region": settings.DYNAMO_REGION,
                "tables": tables,
            }
        },
        "overall_status": "healthy" if connected else "degraded",
    }
