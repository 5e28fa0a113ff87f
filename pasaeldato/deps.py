from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from pasaeldato.services import CommunityRegion, ContentStore, SearchEngine


def get_db(request: Request) -> AsyncIOMotorDatabase:
    handle = getattr(request.app.state, "db", None)
    if handle is None or not handle.connected:
        raise HTTPException(status_code=500, detail="Database not connected")
    return handle.db


def get_communities(database: AsyncIOMotorDatabase = Depends(get_db)) -> CommunityRegion:
    return CommunityRegion(database)


def get_tips(database: AsyncIOMotorDatabase = Depends(get_db)) -> ContentStore:
    return ContentStore(database)


def get_search(
    tips: ContentStore = Depends(get_tips),
    communities: CommunityRegion = Depends(get_communities),
) -> SearchEngine:
    return SearchEngine(tips, communities)


async def current_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    """
    Caller identity. Sessions are issued by the auth service in front of this
    API, which forwards the authenticated user's id in X-User-Id.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="User not authenticated")
    return x_user_id
