"""Shared fixtures: a seeded in-memory roadmap API and clients wired to it."""

import asyncio
import copy

import httpx
import pytest
import pytest_asyncio
from fake_api import create_fake_api
from fastapi import FastAPI

from roadmap_admin.schemas.roadmap import Roadmap
from roadmap_admin.services.api_client import RoadmapApiClient
from roadmap_admin.services.roadmap_store import RoadmapStore

BASE_URL = "http://testserver"

SEED_ROADMAPS: list[dict] = [
    {
        "id": "rm-python",
        "title": "Python Foundations",
        "description": "From syntax to async",
        "icon": "🐍",
        "visibility": "public",
        "status": "published",
        "levels": [
            {
                "id": "lv-syntax",
                "title": "Syntax Basics",
                "order": 1,
                "unlockRequirements": "",
                "milestones": [
                    {
                        "id": "ms-variables",
                        "title": "Variables and Types",
                        "description": "Names, values, builtin types",
                        "order": 1,
                        "challenges": [
                            {
                                "id": "ch-types-quiz",
                                "title": "Types Quiz",
                                "description": "Ten questions",
                                "type": "quiz",
                                "order": 1,
                            },
                            {
                                "id": "ch-pep8",
                                "title": "Read PEP 8",
                                "description": "Style guide",
                                "type": "reading",
                                "order": 2,
                                "resources": ["https://peps.python.org/pep-0008/"],
                            },
                        ],
                    },
                    {
                        "id": "ms-control",
                        "title": "Control Flow",
                        "description": "if, for, while",
                        "order": 2,
                        "challenges": [
                            {
                                "id": "ch-fizzbuzz",
                                "title": "FizzBuzz Project",
                                "description": "Classic",
                                "type": "project",
                                "order": 1,
                            }
                        ],
                    },
                ],
            },
            {
                "id": "lv-functions",
                "title": "Functions",
                "order": 2,
                "milestones": [
                    {
                        "id": "ms-closures",
                        "title": "Closures",
                        "description": "Captured state",
                        "order": 1,
                        "challenges": [
                            {
                                "id": "ch-decorator",
                                "title": "Write a Decorator",
                                "description": "Timing decorator",
                                "type": "project",
                                "order": 1,
                            }
                        ],
                    }
                ],
            },
            {"id": "lv-async", "title": "Async IO", "order": 3, "milestones": []},
        ],
    },
    {
        "id": "rm-data",
        "title": "Data Engineering",
        "description": "Pipelines and warehouses",
        "visibility": "private",
        "status": "draft",
        "levels": [
            {
                "id": "lv-sql",
                "title": "SQL Fundamentals",
                "order": 1,
                "milestones": [
                    {
                        "id": "ms-joins",
                        "title": "Joins",
                        "description": "Inner, outer, cross",
                        "order": 1,
                        "challenges": [
                            {
                                "id": "ch-window",
                                "title": "Window Functions Kata",
                                "description": "Running totals",
                                "type": "quiz",
                                "order": 1,
                            }
                        ],
                    }
                ],
            }
        ],
    },
    {
        "id": "rm-web",
        "title": "Web Services",
        "description": "HTTP APIs",
        "visibility": "public",
        "status": "archived",
        "levels": [],
    },
]


@pytest.fixture
def seed_roadmaps() -> list[Roadmap]:
    """The seed documents parsed into models."""
    return [Roadmap.model_validate(item) for item in copy.deepcopy(SEED_ROADMAPS)]


@pytest.fixture
def fake_api() -> FastAPI:
    """A fresh in-memory API seeded with three roadmaps."""
    return create_fake_api(copy.deepcopy(SEED_ROADMAPS))


@pytest_asyncio.fixture
async def api(fake_api: FastAPI):
    """API client talking to ``fake_api`` in-process."""
    client = RoadmapApiClient(BASE_URL, transport=httpx.ASGITransport(app=fake_api))
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def store(api: RoadmapApiClient) -> RoadmapStore:
    """A store with the seed roadmaps already loaded."""
    roadmap_store = RoadmapStore(api)
    await roadmap_store.load()
    return roadmap_store


class HeldTransport(httpx.AsyncBaseTransport):
    """Forwards to the in-memory API, holding chosen requests until released."""

    def __init__(self, app: FastAPI):
        self.inner = httpx.ASGITransport(app=app)
        self.gates: dict[tuple[str, str], asyncio.Event] = {}
        self.waiting: set[tuple[str, str]] = set()

    def hold(self, method: str, path: str) -> asyncio.Event:
        gate = self.gates[(method, path)] = asyncio.Event()
        return gate

    async def wait_until_held(self, method: str, path: str) -> None:
        while (method, path) not in self.waiting:
            await asyncio.sleep(0)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        key = (request.method, request.url.path)
        gate = self.gates.get(key)
        if gate is not None:
            self.waiting.add(key)
            await gate.wait()
            self.waiting.discard(key)
        return await self.inner.handle_async_request(request)


@pytest.fixture
def held_transport(fake_api: FastAPI) -> HeldTransport:
    return HeldTransport(fake_api)


@pytest_asyncio.fixture
async def held_store(held_transport: HeldTransport):
    """A loaded store whose requests can be held with ``held_transport.hold``."""
    client = RoadmapApiClient(BASE_URL, transport=held_transport)
    roadmap_store = RoadmapStore(client)
    await roadmap_store.load()
    yield roadmap_store
    await client.aclose()
