import asyncio
import logging
import os
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

import certifi
from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import AutoReconnect, NetworkTimeout, PyMongoError

from pasaeldato.errors import InternalError

# Get the project root directory (where .env should be)
project_root = Path(__file__).parent.parent
env_path = project_root / ".env"

# Load .env file from project root
load_dotenv(dotenv_path=env_path)

MONGO_URI = os.getenv("MONGO_URI")
DB_NAME = os.getenv("DB_NAME", "pasaeldato")
READ_RETRY_ATTEMPTS = int(os.getenv("READ_RETRY_ATTEMPTS", "3"))
READ_RETRY_BACKOFF_S = float(os.getenv("READ_RETRY_BACKOFF_S", "0.2"))

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Database:
    """
    Process-wide MongoDB handle.

    Built once at startup and handed to the services; ``connect`` may be awaited
    by any number of concurrent callers and only the first one opens the client.
    """

    def __init__(self, uri: Optional[str] = None, name: str = DB_NAME):
        self.uri = uri or MONGO_URI
        self.name = name
        self._client: Optional[AsyncIOMotorClient] = None
        self._db: Optional[AsyncIOMotorDatabase] = None
        self._lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._db is not None

    async def connect(self) -> AsyncIOMotorDatabase:
        if self._db is not None:
            return self._db
        async with self._lock:
            if self._db is not None:
                return self._db
            if not self.uri:
                raise ValueError(
                    f"MONGO_URI is not set. Add it to the environment or to {env_path}"
                )
            client = AsyncIOMotorClient(self.uri, tlsCAFile=certifi.where(), tz_aware=True)
            db = client[self.name]
            try:
                await db.command("ping")
            except PyMongoError as e:
                client.close()
                print(f"❌ MongoDB connection failed: {e}", flush=True)
                raise InternalError("Failed to connect to MongoDB") from e
            self._client = client
            self._db = db
            print(f"✅ Connected to MongoDB ({self.name})", flush=True)
            return db

    async def close(self):
        if self._client is not None:
            self._client.close()
            self._client = None
            self._db = None
            print("🛑 MongoDB connection closed", flush=True)

    @property
    def db(self) -> AsyncIOMotorDatabase:
        if self._db is None:
            raise InternalError("Database not connected")
        return self._db


async def retry_read(
    operation: Callable[[], Awaitable[T]],
    attempts: int = READ_RETRY_ATTEMPTS,
    backoff: float = READ_RETRY_BACKOFF_S,
) -> T:
    """
    Run an idempotent read, retrying transient connection failures with
    exponential backoff. Never wrap writes in this.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except (AutoReconnect, NetworkTimeout) as e:
            if attempt >= attempts:
                logger.error(f"Read failed after {attempt} attempts: {e}", exc_info=True)
                raise InternalError("Database temporarily unavailable") from e
            delay = backoff * (2 ** (attempt - 1))
            logger.warning(f"Transient read failure ({e}); retrying in {delay:.2f}s")
            await asyncio.sleep(delay)
