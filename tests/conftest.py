from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

os.environ.setdefault("DATABASE_URI", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STOREMIGRATE_EXTRACTOR_URL", "https://extractor.invalid/scrape")

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def isolated_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Keep databases and HTTP caches out of the user's data directory."""

    data_dir = tmp_path / "storemigrate-data"
    monkeypatch.setenv("STOREMIGRATE_DATA_DIR", str(data_dir))
    return data_dir
