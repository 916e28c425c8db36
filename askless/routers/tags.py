"""
Tags API Router

Endpoints:
- GET /api/tags - All tags by name
- POST /api/tags - Create a tag (returns the existing one if present)
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Tag, TagCreate
from ..tag_service import TagsService

router = APIRouter(prefix="/api/tags", tags=["tags"])


@router.get("", response_model=List[Tag])
async def list_tags(db: Session = Depends(get_db)):
    return [Tag.model_validate(t) for t in TagsService(db).list_tags()]


@router.post("", response_model=Tag, status_code=status.HTTP_201_CREATED)
async def create_tag(
    req: TagCreate,
    db: Session = Depends(get_db)
):
    return Tag.model_validate(TagsService(db).create_tag(req.name))
