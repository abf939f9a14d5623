# backend/app/api/v1/router.py
from fastapi import APIRouter
from backend.app.api.v1.endpoints import auth, users, vaults, media, notes, time_capsule, cron

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(vaults.router, prefix="/vaults", tags=["vaults"])
api_router.include_router(time_capsule.router, tags=["time-capsule"])
api_router.include_router(media.router, prefix="/media", tags=["media"])
api_router.include_router(notes.router, prefix="/notes", tags=["notes"])
api_router.include_router(cron.router, prefix="/cron", tags=["cron"])
