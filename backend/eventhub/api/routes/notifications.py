"""
In-app notification endpoints for the signed-in user.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.core.security import Identity, get_current_identity
from eventhub.db.session import get_db
from eventhub.schemas.notification import MarkReadResult, NotificationResponse
from eventhub.services.notification_service import list_notifications, mark_all_read

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=list[NotificationResponse])
async def my_notifications(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await list_notifications(db, identity.user_id)


@router.post("/read", response_model=MarkReadResult)
async def read_all(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    updated = await mark_all_read(db, identity.user_id)
    return MarkReadResult(updated=updated)
