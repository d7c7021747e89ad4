"""Shared test fixtures and configuration for backend tests."""
from typing import List, Optional, Tuple

import pytest

from app.providers import get_media_provider, set_media_provider
from app.providers.base import MediaProvider, ProviderUpload


class FakeMediaProvider(MediaProvider):
    """In-memory provider that records every upload call."""

    name = "fake"

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.calls: List[Tuple[bytes, str, str]] = []

    async def upload(self, content: bytes, file_name: str, folder: str) -> ProviderUpload:
        self.calls.append((content, file_name, folder))
        if self.error is not None:
            raise self.error
        return ProviderUpload(
            url=f"https://cdn.example.com{folder}/{file_name}",
            thumbnail_url=f"https://cdn.example.com/tr:thumb{folder}/{file_name}",
            file_id=f"file-{len(self.calls)}",
        )


@pytest.fixture(autouse=True)
def reset_provider():
    """Ensure a clean provider singleton for each test."""
    original = get_media_provider()
    yield
    set_media_provider(original)


@pytest.fixture
def fake_provider() -> FakeMediaProvider:
    provider = FakeMediaProvider()
    set_media_provider(provider)
    return provider


