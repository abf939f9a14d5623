# backend/app/api/v1/endpoints/notes.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import deps
from backend.app.db.base import get_db
from backend.app.models.user import User
from backend.app.services import content

router = APIRouter()


@router.delete("/{note_id}")
async def delete_note(
        note_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    await content.delete_note(db, note_id, current_user)
    return {"message": "Note deleted successfully"}
