"""Shared fixtures for API tests."""

from typing import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from proma.api.app import create_app
from proma.channels.encryption import generate_encryption_key
from proma.config import PromaConfig


@pytest.fixture
def api_config() -> PromaConfig:
    return PromaConfig(
        database_url="sqlite+aiosqlite:///:memory:",
        credential_key=generate_encryption_key().decode(),
        json_logs=False,
    )


@pytest.fixture
def app(api_config: PromaConfig) -> FastAPI:
    return create_app(api_config)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """TestClient with the lifespan (runtime startup and shutdown) running."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def channel_id(client: TestClient) -> str:
    response = client.post(
        "/api/v1/channels",
        json={
            "name": "OpenAI",
            "provider": "openai",
            "base_url": "https://api.example.com/v1",
            "api_key": "sk-api-test",
            "models": [{"id": "gpt-4o", "name": "GPT-4o"}],
        },
    )
    assert response.status_code == 201
    return response.json()["id"]


@pytest.fixture
def conversation_id(client: TestClient) -> str:
    response = client.post("/api/v1/conversations", json={"title": "Test"})
    assert response.status_code == 201
    return response.json()["id"]
