import asyncio, os
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv

from pasaeldato.indexes import ensure_indexes

load_dotenv()
MONGO_URI=os.getenv("MONGO_URI")
DB_NAME=os.getenv("DB_NAME","pasaeldato")

async def main():
    client=AsyncIOMotorClient(MONGO_URI)
    db=client[DB_NAME]
    await ensure_indexes(db)

    print("Indexes created")
    client.close()

asyncio.run(main())
