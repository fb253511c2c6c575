"""Talk rooms API: list conversation cards, get one, read its timeline."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi_pagination import Page, Params, create_page

from app.core.components import AppComponents
from app.routers.utils.dependencies import get_components, get_talk_room_by_id
from app.schemas.event import Event
from app.schemas.talk_room import TalkRoom

talk_rooms_router = APIRouter(prefix="/talk-rooms", tags=["TalkRoom"])


@talk_rooms_router.get("", response_model=Page[TalkRoom])
async def list_talk_rooms(
    params: Params = Depends(),
    components: AppComponents = Depends(get_components),
) -> Page[TalkRoom]:
    """List talk rooms, most recently active first."""
    store = components.conversations
    total = await store.count()
    items = await store.list_talk_rooms(
        offset=(params.page - 1) * params.size, limit=params.size
    )
    return create_page(items, total=total, params=params)


@talk_rooms_router.get("/{talk_room_id}", response_model=TalkRoom)
async def get_talk_room(
    talk_room: TalkRoom = Depends(get_talk_room_by_id),
) -> TalkRoom:
    """Get a talk room by ID."""
    return talk_room


@talk_rooms_router.get("/{talk_room_id}/events", response_model=list[Event])
async def list_talk_room_events(
    talk_room: TalkRoom = Depends(get_talk_room_by_id),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    components: AppComponents = Depends(get_components),
) -> list[Event]:
    """List a talk room's timeline, oldest first."""
    return await components.timeline.list_events(
        talk_room.id, offset=skip, limit=limit
    )
