from __future__ import annotations

import os
from collections.abc import Iterator

import pytest

# Keep tests independent of a local Redis and of any built UI bundle
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("UI_BUILD_DIR", "")

from fastapi.testclient import TestClient  # noqa: E402

from gigamarket.api.main import create_app  # noqa: E402


@pytest.fixture()
def client() -> Iterator[TestClient]:
    app = create_app()
    with TestClient(app) as c:
        yield c
