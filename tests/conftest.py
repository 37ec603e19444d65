from __future__ import annotations

from pathlib import Path
import sys
from typing import Dict, Optional

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from recipebox.controller import ViewController
from recipebox.persistence import RecipePersistence
from recipebox.repository import RecipeRepository
from recipebox.storage import MemoryKeyValueStore


class FlakyStore(MemoryKeyValueStore):
    """Memory store whose reads and writes can be switched to fail."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        super().__init__(initial)
        self.fail_reads = False
        self.fail_writes = False
        self.writes = 0

    def get(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise OSError("disk unreadable")
        return super().get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        self.writes += 1
        super().set(key, value)

    def remove(self, key: str) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        super().remove(key)


class StepClock:
    """Millisecond clock that can be frozen to force identical timestamps."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def persistence(store: FlakyStore) -> RecipePersistence:
    return RecipePersistence(store)


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def repository(persistence: RecipePersistence, clock: StepClock) -> RecipeRepository:
    repo = RecipeRepository(persistence, clock=clock)
    repo.initialize()
    return repo


@pytest.fixture
def controller(repository: RecipeRepository) -> ViewController:
    return ViewController(repository)
