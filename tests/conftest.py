"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
    from ._helpers import Harness, build_harness
except Exception:  # pragma: no cover - fallback for rootless collection
    import _bootstrap  # type: ignore # noqa: F401
    from _helpers import Harness, build_harness  # type: ignore

from pathlib import Path

import pytest

from ledgerlink.core.config import QuickBooksSettings


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def qbo_settings() -> QuickBooksSettings:
    return QuickBooksSettings(
        QBO_CLIENT_ID="test-client-id",
        QBO_CLIENT_SECRET="test-client-secret",
        QBO_REDIRECT_URI="https://app.example.com/oauth/callback",
    )


@pytest.fixture
def harness(tmp_path: Path, qbo_settings: QuickBooksSettings) -> Harness:
    return build_harness(str(tmp_path / "records.db"), qbo_settings)
