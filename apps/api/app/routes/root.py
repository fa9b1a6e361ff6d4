"""Unauthenticated service routes."""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.core.config import Settings, get_settings

router = APIRouter(tags=["Service"])


@router.get("/", response_model=str)
async def welcome(settings: Annotated[Settings, Depends(get_settings)]) -> str:
    return settings.welcome_message
