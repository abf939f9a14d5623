# backend/app/api/v1/endpoints/users.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import deps
from backend.app.db.base import get_db
from backend.app.models.user import User
from backend.app.schemas.user import PreferencesUpdate, UserResponse
from backend.app.services import users

router = APIRouter()


@router.put("/preferences", response_model=UserResponse)
async def update_preferences(
        prefs: PreferencesUpdate,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    return await users.update_preferences(db, current_user, prefs.dark_mode)
