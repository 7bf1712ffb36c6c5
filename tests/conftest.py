from __future__ import annotations

import shutil
from collections.abc import Generator
from pathlib import Path
from uuid import uuid4

import pytest

from edtriage.config import Settings
from edtriage.infrastructure.db.engine import get_engine
from edtriage.infrastructure.db.models_sqlalchemy import Base
from edtriage.infrastructure.db.session import SessionFactory, make_session_factory


@pytest.fixture
def tmp_path() -> Generator[Path, None, None]:
    base = Path("pytest_artifacts")
    base.mkdir(parents=True, exist_ok=True)
    path = base / uuid4().hex
    path.mkdir(parents=True, exist_ok=True)
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def session_factory(tmp_path: Path) -> Generator[SessionFactory, None, None]:
    db_path = tmp_path / "triage.db"
    engine = get_engine(Settings(database_url=f"sqlite:///{db_path.as_posix()}", echo_sql=False))
    Base.metadata.create_all(engine)
    try:
        yield make_session_factory(engine)
    finally:
        engine.dispose()
