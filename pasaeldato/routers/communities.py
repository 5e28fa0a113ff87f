from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from pasaeldato import geo
from pasaeldato.deps import current_user_id, get_communities
from pasaeldato.errors import ValidationError
from pasaeldato.models.community import CommunityCreate, CommunityUpdate
from pasaeldato.models.utils import serialize_doc
from pasaeldato.services import CommunityRegion

router = APIRouter()


def _membership_response(doc: dict) -> dict:
    return {
        "success": True,
        "community": {
            "id": str(doc["_id"]),
            "memberCount": len(doc.get("members") or []),
        },
    }


@router.get("/", summary="List communities, optionally those covering a point or area")
async def list_communities(
    longitude: Optional[float] = Query(None),
    latitude: Optional[float] = Query(None),
    radius: Optional[float] = Query(None, description="Area of interest in meters around the point"),
    communities: CommunityRegion = Depends(get_communities),
):
    point = geo.point_from_params(longitude, latitude)
    if point is None:
        if radius is not None:
            raise ValidationError("radius requires longitude and latitude")
        docs = await communities.list_all()
    elif radius:
        docs = await communities.find_intersecting_docs(geo.Circle(point, radius))
    else:
        docs = await communities.find_containing_docs(point)
    return [serialize_doc(d) for d in docs]


@router.post("/", status_code=201, summary="Create a community")
async def create_community(
    community: CommunityCreate = Body(...),
    communities: CommunityRegion = Depends(get_communities),
):
    return serialize_doc(await communities.create(community.model_dump()))


@router.get("/{community_id}", summary="Get a community")
async def get_community(community_id: str, communities: CommunityRegion = Depends(get_communities)):
    return serialize_doc(await communities.get(community_id))


@router.patch("/{community_id}", summary="Update community fields")
async def update_community(
    community_id: str,
    patch: CommunityUpdate = Body(...),
    communities: CommunityRegion = Depends(get_communities),
):
    return serialize_doc(await communities.update(community_id, patch.model_dump(exclude_unset=True)))


@router.delete("/{community_id}", summary="Delete a community")
async def delete_community(community_id: str, communities: CommunityRegion = Depends(get_communities)):
    await communities.delete(community_id)
    return {"success": True}


@router.post("/{community_id}/join", summary="Add the current user to the community")
async def join_community(
    community_id: str,
    user_id: str = Depends(current_user_id),
    communities: CommunityRegion = Depends(get_communities),
):
    return _membership_response(await communities.join(community_id, user_id))


@router.delete("/{community_id}/join", summary="Remove the current user from the community")
async def leave_community(
    community_id: str,
    user_id: str = Depends(current_user_id),
    communities: CommunityRegion = Depends(get_communities),
):
    return _membership_response(await communities.leave(community_id, user_id))
