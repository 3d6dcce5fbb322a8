import hashlib
import math
import re

import pytest

from tarana.models.activity import EMBEDDING_DIMENSION, Activity
from tarana.rag.errors import EmbeddingProviderError, MalformedInputError


def _token_vector(text: str):
    """Bag-of-words vector: every token lands in a hashed bucket"""
    vector = [0.0] * EMBEDDING_DIMENSION
    for token in re.findall(r"\w+", text.lower()):
        bucket = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % EMBEDDING_DIMENSION
        vector[bucket] += 1.0
    norm = math.sqrt(sum(v * v for v in vector))
    if norm == 0:
        vector[0] = 1.0
        return vector
    return [v / norm for v in vector]


def cosine(a, b):
    dot = sum(x * y for x, y in zip(a, b))
    na = math.sqrt(sum(x * x for x in a))
    nb = math.sqrt(sum(y * y for y in b))
    if na == 0 or nb == 0:
        return 0.0
    return dot / (na * nb)


class FakeEmbeddingModel:
    """Deterministic stand-in for the Gemini embedding model"""

    INPUT_TYPE = "retrieval_document"
    QUERY_INPUT_TYPE = "retrieval_query"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.call_count = 0
        self.calls = []

    async def embed_text(self, text, input_type=INPUT_TYPE):
        self.call_count += 1
        if not isinstance(text, str) or not text.strip():
            raise MalformedInputError("Cannot embed empty text")
        self.calls.append((text, input_type))
        if self.fail:
            raise EmbeddingProviderError("Embedding generation failed: quota exceeded")
        return _token_vector(text)


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeTableQuery:
    def __init__(self, client, table_name):
        self.client = client
        self.table_name = table_name
        self._action = None
        self._row = None
        self._filters = []

    def upsert(self, row, on_conflict=None):
        self._action = "upsert"
        self._row = row
        self.client.last_on_conflict = on_conflict
        return self

    def select(self, columns="*"):
        self._action = "select"
        return self

    def eq(self, column, value):
        self._filters.append((column, value))
        return self

    def execute(self):
        if self.client.fail:
            raise RuntimeError("connection refused")
        if self._action == "upsert":
            stored = dict(self._row)
            self.client.rows[stored["activity_id"]] = stored
            return FakeResponse([stored])
        rows = [
            row for row in self.client.rows.values()
            if all(row.get(column) == value for column, value in self._filters)
        ]
        return FakeResponse(rows)


class FakeRpc:
    def __init__(self, client, name, params):
        self.client = client
        self.name = name
        self.params = params

    def execute(self):
        self.client.rpc_calls.append((self.name, self.params))
        if self.client.fail:
            raise RuntimeError("connection refused")
        query_embedding = self.params["query_embedding"]
        matches = [
            {
                "activity_id": row["activity_id"],
                "similarity": cosine(row["embedding"], query_embedding),
                "metadata": row["metadata"],
            }
            for row in self.client.rows.values()
        ]
        matches.sort(key=lambda m: m["similarity"], reverse=True)
        return FakeResponse(matches[:self.params["match_count"]])


class FakeSupabaseClient:
    """In-memory table + cosine match RPC with the supabase-py call shape"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.rows = {}
        self.rpc_calls = []
        self.last_on_conflict = None

    def table(self, name):
        return FakeTableQuery(self, name)

    def rpc(self, name, params):
        return FakeRpc(self, name, params)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def fake_model():
    return FakeEmbeddingModel()


@pytest.fixture
def fake_client():
    return FakeSupabaseClient()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog():
    return [
        Activity(
            title="Burnham Park",
            desc="Quiet place to relax by the lake with boating and bike rentals",
            tags=["Outdoor-Friendly", "Nature & Scenery", "Family-friendly"],
            time="6:00 AM - 8:00 PM",
            peak_hours="10 am - 11 am / 4 pm - 6 pm",
            type="Nature",
        ),
        Activity(
            title="Baguio Cathedral",
            desc="Historic church on a hill, a quiet place to pray and relax",
            tags=["Indoor-Friendly", "Culture & Arts"],
            time="6:00 AM - 7:00 PM",
            type="Culture",
        ),
        Activity(
            title="Night Market",
            desc="Busy street market with cheap food stalls and ukay-ukay shopping",
            tags=["Outdoor-Friendly", "Food & Culinary", "Shopping & Local Finds"],
            time="9:00 PM - 2:00 AM",
            peak_hours="9 pm - 11 pm",
            type="Food",
        ),
    ]
