import copy
from types import SimpleNamespace

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

from pasaeldato import geo
from pasaeldato.services import CommunityRegion, ContentStore, SearchEngine


def _get(doc, path):
    value = doc
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


def _in_box(point, box):
    if not point:
        return False
    lng, lat = point["coordinates"]
    (min_lng, min_lat), (max_lng, max_lat) = box
    return min_lng <= lng <= max_lng and min_lat <= lat <= max_lat


def _matches(doc, query):
    for key, cond in query.items():
        if key == "$or":
            if not any(_matches(doc, sub) for sub in cond):
                return False
            continue
        value = _get(doc, key)
        if isinstance(cond, dict) and any(k.startswith("$") for k in cond):
            for op, arg in cond.items():
                if op == "$in" and value not in arg:
                    return False
                if op == "$gte" and (value is None or value < arg):
                    return False
                if op == "$geoWithin" and not _in_box(value, arg["$box"]):
                    return False
        elif value != cond:
            return False
    return True


class FakeCursor:
    """Just enough of motor's cursor: sort, limit, to_list."""

    def __init__(self, docs):
        self.docs = docs
        self._limit = 0

    def sort(self, keys):
        for key, direction in reversed(keys):
            self.docs.sort(key=lambda d: _get(d, key), reverse=direction == -1)
        return self

    def limit(self, n):
        self._limit = n
        return self

    async def to_list(self, length=None):
        docs = self.docs[: self._limit] if self._limit else self.docs
        if length:
            docs = docs[:length]
        return [copy.deepcopy(d) for d in docs]


class FakeCollection:
    """
    In-memory stand-in for a motor collection. Implements the update operators
    the services issue ($set, $unset, $addToSet, $pull) so atomic set semantics can be
    checked end to end, plus the two aggregation stages the region queries use.
    """

    def __init__(self):
        self.docs = []

    async def insert_one(self, doc):
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    async def find_one(self, query, projection=None):
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def find(self, query):
        return FakeCursor([d for d in self.docs if _matches(d, query)])

    async def find_one_and_update(self, query, update, return_document=None):
        for doc in self.docs:
            if _matches(doc, query):
                self._apply(doc, update)
                return copy.deepcopy(doc)
        return None

    async def delete_one(self, query):
        for i, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def create_index(self, *args, **kwargs):
        return None

    def aggregate(self, pipeline):
        docs = [copy.deepcopy(d) for d in self.docs]
        for stage in pipeline:
            if "$geoNear" in stage:
                near_stage = stage["$geoNear"]
                near = geo.GeoPoint(*near_stage["near"]["coordinates"])
                found = []
                for d in docs:
                    center = geo.GeoPoint(*_get(d, near_stage["key"])["coordinates"])
                    dist = geo.distance(near, center)
                    if dist <= near_stage["maxDistance"]:
                        d[near_stage["distanceField"]] = dist
                        found.append(d)
                docs = sorted(found, key=lambda d: d[near_stage["distanceField"]])
            elif "$group" in stage:
                field = stage["$group"]["maxRadius"]["$max"].lstrip("$")
                values = [_get(d, field) for d in docs if _get(d, field) is not None]
                docs = [{"_id": None, "maxRadius": max(values)}] if values else []
            else:
                raise NotImplementedError(stage)
        return FakeCursor(docs)

    @staticmethod
    def _apply(doc, update):
        for op, fields in update.items():
            for key, value in fields.items():
                if op == "$set":
                    doc[key] = value
                elif op == "$unset":
                    doc.pop(key, None)
                elif op == "$addToSet":
                    items = value["$each"] if isinstance(value, dict) and "$each" in value else [value]
                    current = doc.setdefault(key, [])
                    for item in items:
                        if item not in current:
                            current.append(item)
                elif op == "$pull":
                    doc[key] = [v for v in doc.get(key, []) if v != value]
                else:
                    raise NotImplementedError(op)


class FakeDatabase:
    def __init__(self):
        self.communities = FakeCollection()
        self.tips = FakeCollection()

    async def command(self, name):
        return {"ok": 1}


class FakeHandle:
    connected = True

    def __init__(self, db):
        self.db = db


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def communities(fake_db):
    return CommunityRegion(fake_db)


@pytest.fixture
def tips(fake_db):
    return ContentStore(fake_db)


@pytest.fixture
def engine(tips, communities):
    return SearchEngine(tips, communities)


@pytest.fixture
def user_id():
    return str(ObjectId())


@pytest_asyncio.fixture
async def api_client(fake_db):
    from pasaeldato.main import app

    original = getattr(app.state, "db", None)
    app.state.db = FakeHandle(fake_db)
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        app.state.db = original
