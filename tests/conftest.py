"""
Shared fixtures: in-memory test doubles for every external collaborator.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from pkd_classifier.api.app import create_app
from pkd_classifier.handlers import ClassificationHandler
from pkd_classifier.models import CandidateRecord, ClassificationPayload, Decision
from pkd_classifier.services import ClassificationService

DESCRIPTION = "sprzedaż pieczywa"


def make_candidates() -> list[CandidateRecord]:
    return [
        CandidateRecord(
            id="0b0c7f3e-1d2a-4c1e-9f0a-5d6b7c8d9e01",
            version=12,
            score=0.81,
            payload=ClassificationPayload(
                code="47.24.Z",
                group_name="Sprzedaż detaliczna pieczywa, ciast, wyrobów ciastkarskich i cukierniczych",
                description="Podklasa ta obejmuje sprzedaż detaliczną pieczywa w wyspecjalizowanych sklepach.",
            ),
        ),
        CandidateRecord(
            id="7c1a2b3d-4e5f-4a6b-8c7d-9e0f1a2b3c4d",
            version=3,
            score=0.74,
            payload=ClassificationPayload(
                code="10.71.Z",
                group_name="Produkcja pieczywa; produkcja świeżych wyrobów ciastkarskich i ciastek",
            ),
        ),
    ]


def make_decision() -> Decision:
    best = make_candidates()[0]
    return Decision(id=best.id, version=best.version, score=0.93, payload=best.payload)


class FakeCacheStore:
    """Dict-backed CacheStore with call logs and failure injection."""

    def __init__(self) -> None:
        self.vector: dict[str, list[CandidateRecord]] = {}
        self.ai: dict[str, Decision] = {}
        self.vector_writes: list[tuple[str, list[CandidateRecord]]] = []
        self.ai_writes: list[tuple[str, Decision]] = []
        self.vector_read_error: Exception | None = None
        self.ai_read_error: Exception | None = None
        self.healthy = True
        self.initialized = False
        self.closed = False

    async def initialize(self) -> None:
        self.initialized = True

    async def get_vector_results(self, key: str) -> list[CandidateRecord] | None:
        if self.vector_read_error is not None:
            error, self.vector_read_error = self.vector_read_error, None
            raise error
        return self.vector.get(key)

    async def put_vector_results(self, key: str, records: list[CandidateRecord]) -> None:
        self.vector_writes.append((key, records))
        self.vector[key] = records

    async def get_ai_suggestion(self, key: str) -> Decision | None:
        if self.ai_read_error is not None:
            error, self.ai_read_error = self.ai_read_error, None
            raise error
        return self.ai.get(key)

    async def put_ai_suggestion(self, key: str, decision: Decision) -> None:
        self.ai_writes.append((key, decision))
        self.ai[key] = decision

    async def health_check(self) -> bool:
        return self.healthy

    async def close(self) -> None:
        self.closed = True


class FakeEmbeddingProvider:
    def __init__(self, dimension: int = 8) -> None:
        self._dimension = dimension
        self.calls: list[str] = []
        self.error: Exception | None = None
        self.delay = 0.0

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return "fake-embed"

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return [0.5] * self._dimension

    async def close(self) -> None:
        pass


class FakeSearchProvider:
    def __init__(self, results: list[CandidateRecord] | None = None) -> None:
        self.results = results if results is not None else make_candidates()
        self.calls: list[tuple[list[float], str, int]] = []
        self.sample_calls: list[int] = []
        self.error: Exception | None = None

    async def search(self, vector: list[float], collection: str, top_k: int) -> list[CandidateRecord]:
        self.calls.append((vector, collection, top_k))
        if self.error is not None:
            raise self.error
        return list(self.results)

    async def sample_search(self, top_k: int) -> list[CandidateRecord]:
        self.sample_calls.append(top_k)
        if self.error is not None:
            raise self.error
        return list(self.results[:top_k])

    async def close(self) -> None:
        pass


class FakeChatProvider:
    def __init__(self, decision: Decision | None = None) -> None:
        self.decision = decision or make_decision()
        self.calls: list[tuple[str, list[CandidateRecord]]] = []
        self.error: Exception | None = None
        self.delay = 0.0

    @property
    def model_name(self) -> str:
        return "fake-chat"

    async def suggest(self, description: str, candidates: list[CandidateRecord]) -> Decision:
        self.calls.append((description, candidates))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.decision

    async def close(self) -> None:
        pass


@pytest.fixture
def store():
    return FakeCacheStore()


@pytest.fixture
def embedder():
    return FakeEmbeddingProvider()


@pytest.fixture
def search():
    return FakeSearchProvider()


@pytest.fixture
def chat():
    return FakeChatProvider()


@pytest.fixture
def service(store, embedder, search, chat):
    """Service wired to the fakes, with single-flight on."""
    return ClassificationService(
        store=store,
        embedding_provider=embedder,
        search_provider=search,
        chat_provider=chat,
        collection="pkdCode",
        top_k=5,
        single_flight=True,
    )


@pytest.fixture
def handler(service):
    return ClassificationHandler(
        classification_service=service,
        samples_default_limit=10,
        samples_max_limit=50,
    )


@pytest.fixture
def client(service, handler):
    """Create a test client without running the real lifespan."""
    app = create_app(use_lifespan=False)
    app.state.classification_service = service
    app.state.classification_handler = handler
    return TestClient(app)
