import uuid

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lexlink.api.deps import get_current_user, get_db
from lexlink.common.exceptions import NotFoundError
from lexlink.common.pagination import PaginatedResponse, PaginationParams, paginate
from lexlink.db.models.notification import Notification
from lexlink.db.models.user import User

router = APIRouter(prefix="/notifications", tags=["Notifications"])


# ---------- Schemas ----------

class NotificationResponse(BaseModel):
    id: uuid.UUID
    category: str
    event: str
    title: str
    body: str
    entity_type: str | None
    entity_id: uuid.UUID | None
    is_read: bool
    created_at: str


class NotificationListResponse(PaginatedResponse[NotificationResponse]):
    unread_count: int


# ---------- Endpoints ----------

@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    params: PaginationParams = Depends(),
    unread_only: bool = False,
):
    query = select(Notification).where(
        Notification.user_id == current_user.id,
        Notification.is_deleted.is_(False),
    )
    if unread_only:
        query = query.where(Notification.is_read.is_(False))
    query = query.order_by(Notification.created_at.desc())

    items, total = await paginate(db, query, params)

    unread_count = (
        await db.execute(
            select(func.count()).where(
                Notification.user_id == current_user.id,
                Notification.is_read.is_(False),
                Notification.is_deleted.is_(False),
            )
        )
    ).scalar() or 0

    return NotificationListResponse(
        items=[_notification_response(n) for n in items],
        total=total,
        page=params.page,
        page_size=params.page_size,
        total_pages=params.total_pages(total),
        unread_count=unread_count,
    )


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == current_user.id,
            Notification.is_deleted.is_(False),
        )
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise NotFoundError("Notification", str(notification_id))
    notification.is_read = True
    await db.flush()
    return _notification_response(notification)


@router.post("/read-all")
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == current_user.id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    return {"updated": result.rowcount}


def _notification_response(n: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        category=n.category,
        event=n.event,
        title=n.title,
        body=n.body,
        entity_type=n.entity_type,
        entity_id=n.entity_id,
        is_read=n.is_read,
        created_at=n.created_at.isoformat(),
    )
