from uuid import UUID

from fastapi import Depends, HTTPException, Request

from app.core.components import AppComponents
from app.schemas.talk_room import TalkRoom


def get_components(request: Request) -> AppComponents:
    """FastAPI dependency returning the wiring built at startup."""
    components = getattr(request.app.state, "components", None)
    if components is None:
        raise HTTPException(status_code=503, detail="Service is starting up")
    return components


async def get_talk_room_by_id(
    talk_room_id: UUID,
    components: AppComponents = Depends(get_components),
) -> TalkRoom:
    """FastAPI dependency to get a talk room by ID."""
    talk_room = await components.conversations.get(talk_room_id)
    if talk_room is None:
        raise HTTPException(status_code=404, detail="Talk room not found")
    return talk_room
