"""Tests for application-level wiring."""
import pytest

from bulklink.config import Settings


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


def test_database_url_is_normalized_to_async_driver():
    settings = Settings(DATABASE_URL="postgresql://u:p@db:5432/bulk?sslmode=require")
    assert settings.DATABASE_URL == "postgresql+asyncpg://u:p@db:5432/bulk?ssl=require"

    settings = Settings(DATABASE_URL="sqlite:///./bulk.db")
    assert settings.DATABASE_URL == "sqlite+aiosqlite:///./bulk.db"


def test_cors_origins():
    production = Settings(ENVIRONMENT="production", DEBUG=False, CORS_ORIGINS="https://a.example, https://b.example")
    assert production.cors_origin_list == ["https://a.example", "https://b.example"]

    development = Settings(ENVIRONMENT="development")
    assert development.cors_origin_list == ["*"]
