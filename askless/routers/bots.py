"""
Bots API Router

Endpoints:
- GET /api/bots - The fixed bot roster with profile ids
- POST /api/bots/initialize - Create any missing bot profiles
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..bots import BOT_PERSONALITIES, bot_profile_id
from ..database import get_db
from ..models import BotInfo, BotInitResponse
from ..profile_service import ProfileService

router = APIRouter(prefix="/api/bots", tags=["bots"])


def _roster() -> List[BotInfo]:
    return [
        BotInfo(key=b.key, name=b.name, username=b.username, profile_id=bot_profile_id(b.key))
        for b in BOT_PERSONALITIES
    ]


@router.get("", response_model=List[BotInfo])
async def list_bots():
    return _roster()


@router.post("/initialize", response_model=BotInitResponse)
async def initialize_bots(db: Session = Depends(get_db)):
    """Idempotent: a second call reports created=0."""
    _, created = ProfileService(db).initialize_bots()
    return BotInitResponse(bots=_roster(), created=created)
