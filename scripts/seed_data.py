import asyncio, os
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
from bson import ObjectId

from pasaeldato.indexes import ensure_indexes
from pasaeldato.services import CommunityRegion, ContentStore

load_dotenv()

async def main():
    client = AsyncIOMotorClient(os.getenv("MONGO_URI"), tz_aware=True)
    db = client[os.getenv("DB_NAME","pasaeldato")]
    await ensure_indexes(db)
    communities = CommunityRegion(db)
    tips = ContentStore(db)
    author = str(ObjectId())

    providencia = await communities.create(
        {
            "name": "Providencia",
            "description": "Vecinos de Providencia y alrededores",
            "location": {"point": {"type": "Point", "coordinates": [-70.60, -33.42]}, "radius": 5000},
            "tags": ["barrio", "santiago"],
            "members": [author],
        }
    )
    nunoa = await communities.create(
        {
            "name": "Ñuñoa",
            "description": "Datos y panoramas en Ñuñoa",
            "location": {"point": {"type": "Point", "coordinates": [-70.597, -33.456]}, "radius": 2000},
            "tags": ["barrio"],
        }
    )

    pin = await tips.create(
        {
            "kind": "pin",
            "authorId": author,
            "communityId": str(providencia["_id"]),
            "title": "Farmacia Ahumada 24 Horas",
            "description": "Abierta toda la noche, con estacionamiento.",
            "tags": ["farmacia", "24h"],
            "location": {"point": {"type": "Point", "coordinates": [-70.61, -33.425]}, "radius": 50},
            "address": "Av. Providencia 2124",
            "subtype": "business",
        }
    )
    text = await tips.create(
        {
            "kind": "text",
            "authorId": author,
            "communityId": str(nunoa["_id"]),
            "title": "Feria libre los sábados",
            "description": "La feria de Irarrázaval tiene la mejor fruta del sector.",
            "tags": ["feria"],
        }
    )

    print("✅ Seeded demo data successfully!")
    print(f"   - Communities: {providencia['_id']}, {nunoa['_id']}")
    print(f"   - Tips: {pin['_id']} (pin), {text['_id']} (text)")
    client.close()

asyncio.run(main())
