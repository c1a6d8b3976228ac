# src/ugc_leaks/api/v1/router.py
from fastapi import APIRouter

from ugc_leaks.api.v1 import auth, items, scheduled, stock, users

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(items.router)
api_router.include_router(scheduled.router)
api_router.include_router(stock.router)
