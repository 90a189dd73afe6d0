from fastapi import APIRouter

from lexlink.api.v1.bookings import router as bookings_router
from lexlink.api.v1.jobs import router as jobs_router
from lexlink.api.v1.notifications import router as notifications_router
from lexlink.api.v1.pricing import router as pricing_router
from lexlink.api.v1.providers import router as providers_router
from lexlink.api.v1.reviews import router as reviews_router

v1_router = APIRouter()

v1_router.include_router(providers_router)
v1_router.include_router(pricing_router)
v1_router.include_router(bookings_router)
v1_router.include_router(reviews_router)
v1_router.include_router(jobs_router)
v1_router.include_router(notifications_router)
