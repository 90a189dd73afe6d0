import asyncio

from lexlink.common.logging import get_logger
from lexlink.tasks.celery_app import app

logger = get_logger("tasks.notifications")


def _run_async(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@app.task(name="lexlink.tasks.notification_tasks.dispatch_side_effects")
def dispatch_side_effects(effects: list[dict]):
    """Persist notifications for side-effect intents returned by a transition."""
    logger.info("Dispatching %d side effects", len(effects))

    async def _dispatch():
        from lexlink.core.notifications.service import dispatch_side_effects as dispatch
        from lexlink.db.session import async_session_factory

        async with async_session_factory() as db:
            try:
                created = await dispatch(db, effects)
                await db.commit()
                return [str(n.id) for n in created]
            except Exception as e:
                await db.rollback()
                logger.error("Side effect dispatch failed: %s", e)
                raise

    return _run_async(_dispatch())
