"""
Config API Router

Runtime view of the LLM setup, and the one place the API key can be
replaced without a restart.
"""

import logging
from typing import Optional

from fastapi import APIRouter

from ..config import settings
from ..dependencies import current_api_key, reload_llm_provider
from ..models import ConfigStatus, ConfigUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/config", tags=["config"])


def mask_key(key: Optional[str]) -> str:
    if not key:
        return ""
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:3]}...{key[-4:]}"


def _status() -> ConfigStatus:
    key = current_api_key()
    return ConfigStatus(
        api_key=mask_key(key),
        has_api_key=bool(key),
        provider=settings.llm_provider,
        models=settings.model_fallback_list,
    )


@router.get("", response_model=ConfigStatus)
async def get_config():
    """Current provider and a masked API key."""
    return _status()


@router.post("", response_model=ConfigStatus)
async def update_config(req: ConfigUpdate):
    """Swap the API key used for all later LLM calls."""
    reload_llm_provider(req.api_key)
    logger.info(f"API key updated ({mask_key(req.api_key)})")
    return _status()
