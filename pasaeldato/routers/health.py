from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from pasaeldato.deps import get_db

router = APIRouter()


@router.get("/", summary="Liveness and database reachability")
async def health(database: AsyncIOMotorDatabase = Depends(get_db)):
    await database.command("ping")
    return {"status": "ok", "database": "ok"}
