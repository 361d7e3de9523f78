"""
Audit trail writer.

Audit logging must never break the action it records: every function here
catches its own errors, logs them and reports False.
"""

from typing import Any, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from eventhub.core.logging import get_logger
from eventhub.core.metrics import record_side_effect_failure
from eventhub.core.security import ROLE_ADMIN, ROLE_ATTENDEE
from eventhub.models.audit_log import AuditLog

logger = get_logger(__name__)


def build_details(actor_role: str, details: Any = None) -> dict:
    """Details always carry the actor role; non-dict payloads go under `value`."""
    if details is None:
        return {"actorRole": actor_role}
    if isinstance(details, dict):
        cleaned = {k: v for k, v in details.items() if v is not None}
        return {"actorRole": actor_role, **cleaned}
    return {"actorRole": actor_role, "value": details}


async def log_actor_action(
    session_factory: async_sessionmaker,
    actor_user_id: Optional[int],
    actor_role: str,
    action: str,
    entity_type: str,
    entity_id: Any = None,
    details: Any = None,
) -> bool:
    try:
        async with session_factory() as session:
            session.add(AuditLog(
                actor_user_id=actor_user_id,
                actor_role=actor_role,
                action=action,
                entity_type=entity_type,
                entity_id=None if entity_id is None else str(entity_id),
                details=build_details(actor_role, details),
            ))
            await session.commit()
        return True
    except Exception as e:
        record_side_effect_failure("audit")
        logger.error("audit_log_insert_failed", action=action, entity_id=entity_id, error=str(e))
        return False


async def log_admin_action(
    session_factory: async_sessionmaker,
    admin_user_id: int,
    action: str,
    entity_type: str,
    entity_id: Any = None,
    details: Any = None,
) -> bool:
    return await log_actor_action(
        session_factory, admin_user_id, ROLE_ADMIN, action, entity_type, entity_id, details
    )


async def log_user_action(
    session_factory: async_sessionmaker,
    user_id: int,
    action: str,
    entity_type: str,
    entity_id: Any = None,
    details: Any = None,
) -> bool:
    return await log_actor_action(
        session_factory, user_id, ROLE_ATTENDEE, action, entity_type, entity_id, details
    )
