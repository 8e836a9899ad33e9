"""Audit logging service.

Writes audit log entries for state-changing operations. Route handlers call
``log_action`` with their request session so the entry is committed (or
discarded) together with the change it describes.
"""

import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.models.audit import AuditLog

logger = logging.getLogger("audit")


def log_action(
    action: str,
    entity_type: str,
    entity_id: Any = "",
    user_id: Optional[int] = None,
    old_values: Optional[dict[str, Any]] = None,
    new_values: Optional[dict[str, Any]] = None,
    ip_address: str = "",
    db: Optional[Session] = None,
) -> None:
    """Write an audit log entry.

    Args:
        action: The action performed (CREATE_SUPPLY, STOCK_MOVEMENT, ...)
        entity_type: Type of entity affected (supply, category, batch, ...)
        entity_id: ID of the affected entity
        user_id: ID of the user performing the action
        old_values: State before the change
        new_values: State after the change
        ip_address: Client IP address
        db: Optional existing DB session. If None, creates a new one.
    """
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else "",
        old_values=_jsonable(old_values),
        new_values=_jsonable(new_values),
        ip_address=ip_address or None,
    )

    if db is not None:
        # The caller's transaction owns the commit
        db.add(entry)
        return

    own = SessionLocal()
    try:
        own.add(entry)
        own.commit()
    except SQLAlchemyError:
        logger.exception(f"Failed to write audit log entry {action} {entity_type}:{entity_id}")
        own.rollback()
    finally:
        own.close()


def _jsonable(values: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """Coerce Decimal/datetime values so the JSON column can store them."""
    if values is None:
        return None
    result = {}
    for key, value in values.items():
        if hasattr(value, "isoformat"):
            result[key] = value.isoformat()
        elif value is not None and not isinstance(value, (str, int, float, bool, list, dict)):
            result[key] = str(value)
        else:
            result[key] = value
    return result
