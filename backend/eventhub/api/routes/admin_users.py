"""
Admin user maintenance. Deleted users and their registrations are archived first.
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.api.deps import get_side_effects
from eventhub.core.security import Identity, require_admin
from eventhub.db.session import get_db
from eventhub.schemas.archive import DeleteResult, IdsRequest
from eventhub.services import archive_service
from eventhub.services.side_effects import SideEffects

router = APIRouter(prefix="/admin/users", tags=["Admin users"])


@router.delete("/bulk", response_model=DeleteResult)
async def bulk_delete_users(
    body: IdsRequest,
    background_tasks: BackgroundTasks,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    effects: SideEffects = Depends(get_side_effects),
):
    result = await archive_service.delete_users(db, body.ids, admin.user_id)
    effects.audit_admin(
        admin.user_id,
        "user.bulk_delete",
        "user",
        None,
        {"count": result["deleted"], "userIds": [str(i) for i in body.ids]},
    )
    effects.schedule(background_tasks)
    return DeleteResult(
        deleted=result["deleted"],
        skippedCount=len(set(body.ids)) - result["deleted"],
        registrationsArchived=result["registrationsArchived"],
    )
