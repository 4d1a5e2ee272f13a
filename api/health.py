import logging
from datetime import datetime, timezone

from flask import Blueprint

from models import storage

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    """
    Health check (includes database connectivity)
    ---
    tags:
      - Health
    responses:
      200:
        description: API and database are up
        schema:
          type: object
          properties:
            status:
              type: string
              example: healthy
            database:
              type: string
              example: connected
      503:
        description: Database unreachable
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        storage.ping()
    except Exception:
        logging.exception("Health check: database unreachable")
        return {"status": "unhealthy", "timestamp": timestamp, "database": "disconnected"}, 503
    return {"status": "healthy", "timestamp": timestamp, "database": "connected", "version": "1.0.0"}, 200
