"""Persistence of accepted items."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from core import TriviaItem
from utils.exceptions import StorageError


logger = logging.getLogger(__name__)


@dataclass
class PersistResult:
    stored: bool
    already_present: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ItemSink:
    """
    Store accepted items with their embeddings.

    Re-submitting an item that is already stored is a no-op. Storage failures
    are reported in the result, never raised, so the run can go on.
    """

    def __init__(self, store) -> None:
        self.store = store

    def persist(self, item: TriviaItem) -> PersistResult:
        try:
            inserted = self.store.insert(item)
        except StorageError as exc:
            logger.warning(f"Persist failed for {item.id}: {exc}")
            return PersistResult(stored=False, error=f"Persist failed: {exc}")
        if not inserted:
            return PersistResult(stored=False, already_present=True)
        return PersistResult(stored=True)
