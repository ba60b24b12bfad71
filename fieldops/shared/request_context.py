from typing import Optional

from fastapi import Header

from .. import config


async def get_actor(x_actor_id: Optional[str] = Header(None)) -> str:
    """Acting user recorded on transitions; authentication happens upstream"""
    return (x_actor_id or "").strip() or config.DEFAULT_ACTOR
