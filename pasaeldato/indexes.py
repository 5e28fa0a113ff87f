from motor.motor_asyncio import AsyncIOMotorDatabase


async def ensure_indexes(db: AsyncIOMotorDatabase):
    """Create the indexes the region and search queries depend on. Idempotent."""
    # $geoNear needs the 2dsphere index on the community centers
    await db.communities.create_index([("location.point", "2dsphere")])
    await db.communities.create_index([("name", "text"), ("description", "text")])
    await db.communities.create_index([("tags", 1)])
    await db.communities.create_index([("createdAt", -1)])

    await db.tips.create_index([("location.point", "2dsphere")], sparse=True)
    await db.tips.create_index([("communityId", 1), ("updatedAt", -1)])
    await db.tips.create_index([("kind", 1), ("createdAt", -1)])
    await db.tips.create_index([("updatedAt", -1), ("_id", -1)])
    await db.tips.create_index([("authorId", 1)])
    await db.tips.create_index([("tags", 1)])
    await db.tips.create_index([("startDate", 1)], sparse=True)
