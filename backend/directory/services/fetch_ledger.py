"""Fetch ledger keys: lowercase category, ``normalize_city`` slug and two-letter state."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import as_utc, dialect_insert, utcnow
from ..errors import RepositoryError
from ..models import CategoryLocationFetch
from .slug_service import normalize_city
from .states import state_abbreviation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerKey:
    category: str
    city: str
    state: str


def ledger_key(category: str, city: str, state: str) -> LedgerKey:
    state_abbr = state_abbreviation(state)
    if state_abbr is None:
        raise ValueError(f"Unknown state for fetch ledger: {state!r}")
    city_key = normalize_city(city)
    if not city_key:
        raise ValueError("Fetch ledger city must not be empty")
    return LedgerKey(
        category=" ".join(category.lower().split()),
        city=city_key,
        state=state_abbr,
    )


class FetchLedger:
    def __init__(
        self,
        db: Session,
        ttl_days: int | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.ttl = timedelta(days=ttl_days) if ttl_days else None
        self.clock = clock

    def last_fetched_at(self, category: str, city: str, state: str) -> datetime | None:
        key = ledger_key(category, city, state)
        stmt = select(CategoryLocationFetch.fetched_at).where(
            CategoryLocationFetch.category == key.category,
            CategoryLocationFetch.city == key.city,
            CategoryLocationFetch.state == key.state,
        )
        try:
            return self.db.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise RepositoryError("Failed to read fetch ledger") from exc

    def has_fetched(self, category: str, city: str, state: str) -> bool:
        fetched_at = self.last_fetched_at(category, city, state)
        if fetched_at is None:
            return False
        if self.ttl is None:
            return True
        return self.clock() - as_utc(fetched_at) <= self.ttl

    def mark_fetched(self, category: str, city: str, state: str) -> None:
        key = ledger_key(category, city, state)
        fetched_at = self.clock()
        insert_stmt = dialect_insert(self.db, CategoryLocationFetch).values(
            category=key.category,
            city=key.city,
            state=key.state,
            fetched_at=fetched_at,
        )
        stmt = insert_stmt.on_conflict_do_update(
            index_elements=["category", "city", "state"],
            set_={"fetched_at": insert_stmt.excluded.fetched_at},
        )
        try:
            self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise RepositoryError("Failed to record fetch ledger entry") from exc
        logger.info("Marked fetched: category=%s city=%s state=%s", key.category, key.city, key.state)
