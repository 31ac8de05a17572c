"""Integration test fixtures using Docker.

Provides containerized Redis and PostgreSQL; every test here is skipped when
no Docker daemon is reachable.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterator

import docker
import pytest
import pytest_asyncio
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from panpal.cache import RedisStore, create_redis_client
from panpal.persistence.tables import Base
from tests.integration.docker_utils import ContainerHandle, started


@pytest.fixture(scope="session")
def docker_client() -> Iterator[docker.DockerClient]:
    """Create a Docker client or skip if Docker is unavailable."""
    try:
        client = docker.from_env()
        client.ping()
    except docker.errors.DockerException as exc:
        pytest.skip(f"Docker not available: {exc}")
    yield client
    client.close()


@pytest.fixture(scope="session")
def redis_container(docker_client: docker.DockerClient) -> Iterator[ContainerHandle]:
    with started(docker_client, "redis:7-alpine", ports={"6379/tcp": None}) as handle:
        yield handle


@pytest.fixture(scope="session")
def postgres_container(docker_client: docker.DockerClient) -> Iterator[ContainerHandle]:
    env = {"POSTGRES_USER": "panpal", "POSTGRES_PASSWORD": "panpal", "POSTGRES_DB": "panpal"}
    with started(
        docker_client, "postgres:16-alpine", ports={"5432/tcp": None}, env=env
    ) as handle:
        yield handle


@pytest.fixture(scope="session")
def redis_url(redis_container: ContainerHandle) -> str:
    return f"redis://{redis_container.host}:{redis_container.port(6379)}/0"


@pytest.fixture(scope="session")
def database_url(postgres_container: ContainerHandle) -> str:
    host, port = postgres_container.host, postgres_container.port(5432)
    return f"postgresql+asyncpg://panpal:panpal@{host}:{port}/panpal"


@pytest_asyncio.fixture
async def redis_store(redis_url: str) -> AsyncIterator[RedisStore]:
    """A RedisStore on a flushed database."""
    store = RedisStore(create_redis_client(redis_url), scan_count=10)
    for _ in range(50):
        try:
            await store.ping()
            break
        except (RedisError, OSError):
            await asyncio.sleep(0.2)
    await store.client.flushdb()
    yield store
    await store.client.flushdb()
    await store.close()


@pytest_asyncio.fixture
async def db_engine(database_url: str) -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(database_url)
    for _ in range(50):
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            break
        except (OSError, DBAPIError):
            await asyncio.sleep(0.2)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
