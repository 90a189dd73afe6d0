import asyncio

from lexlink.common.logging import get_logger
from lexlink.tasks.celery_app import app

logger = get_logger("tasks.bookings")


def _run_async(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@app.task(name="lexlink.tasks.booking_tasks.complete_elapsed_bookings")
def complete_elapsed_bookings():
    """Celery Beat task: close confirmed bookings whose time window has passed."""
    logger.info("Checking for elapsed bookings")

    async def _complete():
        from lexlink.core.engagement.service import EngagementService
        from lexlink.core.notifications.service import dispatch_side_effects
        from lexlink.db.session import async_session_factory

        async with async_session_factory() as db:
            try:
                results = await EngagementService().complete_elapsed_bookings(db)
                for result in results:
                    await dispatch_side_effects(db, result.side_effects)
                await db.commit()
                return [str(r.entity_id) for r in results]
            except Exception as e:
                await db.rollback()
                logger.error("Elapsed booking completion failed: %s", e)
                raise

    return _run_async(_complete())
