from fastapi import Request

from agenda.engine import BookingEngine
from agenda.logging_context import set_owner_id


def get_engine(request: Request) -> BookingEngine:
    return request.app.state.engine


async def bind_owner(owner_id: str) -> str:
    """Tag log records of this request with the schedule owner."""
    set_owner_id(owner_id)
    return owner_id
