from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import date
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class SelectedDatesStore(Protocol):
    def load(self) -> list[date]: ...

    def save(self, dates: list[date]) -> None: ...


class InMemorySelectedDatesStore:
    def __init__(self, dates: Iterable[date] = ()) -> None:
        self._dates = list(dates)

    def load(self) -> list[date]:
        return list(self._dates)

    def save(self, dates: list[date]) -> None:
        self._dates = list(dates)


class JsonFileSelectedDatesStore:
    """Stores displayed dates as a JSON list of ISO strings."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def load(self) -> list[date]:
        if not self._path.exists():
            return []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable selected dates file %s", self._path)
            return []
        loaded: list[date] = []
        for item in raw if isinstance(raw, list) else []:
            try:
                loaded.append(date.fromisoformat(str(item)))
            except ValueError:
                logger.warning("Skipping invalid stored date %r", item)
        return loaded

    def save(self, dates: list[date]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps([item.isoformat() for item in dates]), encoding="utf-8")


class SelectedDates:
    def __init__(self, store: SelectedDatesStore, today: date | None = None) -> None:
        self._store = store
        self._today = today or date.today()

    def load(self) -> list[date]:
        """Stored dates from today onward, sorted and deduplicated."""
        return sorted({item for item in self._store.load() if item >= self._today})

    def save(self, dates: Iterable[date]) -> list[date]:
        cleaned = sorted(set(dates))
        self._store.save(cleaned)
        return cleaned

    def add(self, target: date) -> list[date]:
        return self.save([*self.load(), target])

    def remove(self, target: date) -> list[date]:
        return self.save([item for item in self.load() if item != target])
