# src/padel_analyzer/data/memory_store.py

from dataclasses import replace
from typing import Dict, List, Optional, Tuple
import datetime
import threading
import uuid

from .db_manager import MATCH_EDITABLE_COLUMNS
from .models import Category1, Category2, Match, MatchStatus, Position, RecordedPoint, Team
from ..errors import EmptyLedger, MatchNotFound


class MemoryStore:
    """
    Speicher im Arbeitsspeicher mit derselben Schnittstelle wie DBManager.
    Für Tests und Sitzungen ohne Datenbank.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._matches: Dict[str, Match] = {}
        self._points: Dict[str, Tuple[RecordedPoint, ...]] = {}
        self._last_sequence_ids: Dict[str, int] = {}

    def setup_database(self):
        """Nichts anzulegen."""

    def _require(self, match_id: str):
        if match_id not in self._matches:
            raise MatchNotFound(match_id)

    # --- MATCHES ---

    def insert_match(self, match: Match) -> Match:
        with self._lock:
            if match.match_id is None:
                match.match_id = uuid.uuid4().hex
            # Match ist veränderlich: nur Kopien rein und raus, wie bei der Datenbank
            self._matches[match.match_id] = replace(match)
            self._points[match.match_id] = ()
            self._last_sequence_ids[match.match_id] = 0
        return match

    def get_match(self, match_id: str) -> Match:
        with self._lock:
            self._require(match_id)
            return replace(self._matches[match_id])

    def list_matches(self) -> List[Match]:
        with self._lock:
            matches = [replace(m) for m in self._matches.values()]
        return sorted(matches, key=lambda m: m.created_at, reverse=True)

    def update_match(self, match_id: str, changes: Dict[str, str]) -> Match:
        unknown = set(changes) - set(MATCH_EDITABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Nicht änderbare Felder: {sorted(unknown)}")
        with self._lock:
            self._require(match_id)
            self._matches[match_id] = replace(self._matches[match_id], **changes)
            return replace(self._matches[match_id])

    def update_match_status(self, match_id: str, status: MatchStatus):
        with self._lock:
            self._require(match_id)
            self._matches[match_id] = replace(self._matches[match_id], status=MatchStatus.parse(status))

    def delete_match(self, match_id: str):
        with self._lock:
            self._require(match_id)
            del self._matches[match_id]
            del self._points[match_id]
            del self._last_sequence_ids[match_id]

    # --- PUNKTE ---

    def append_point(self, match_id: str, action_id: str, sub_tag_id: Optional[str],
                     sub_sub_tag_id: Optional[str], position: Optional[Position], team: Team,
                     category1: Category1, category2: Category2,
                     timestamp: datetime.datetime) -> RecordedPoint:
        with self._lock:
            self._require(match_id)
            sequence_id = self._last_sequence_ids[match_id] + 1
            point = RecordedPoint(
                sequence_id=sequence_id,
                match_id=match_id,
                action_id=action_id,
                sub_tag_id=sub_tag_id,
                sub_sub_tag_id=sub_sub_tag_id,
                position=position,
                team=team,
                category1=category1,
                category2=category2,
                timestamp=timestamp,
            )
            # Tupel neu zuweisen: Leser sehen entweder den alten oder den neuen Stand
            self._points[match_id] = self._points[match_id] + (point,)
            self._last_sequence_ids[match_id] = sequence_id
        return point

    def delete_last_point(self, match_id: str) -> RecordedPoint:
        with self._lock:
            self._require(match_id)
            points = self._points[match_id]
            if not points:
                raise EmptyLedger(match_id)
            self._points[match_id] = points[:-1]
            return points[-1]

    def fetch_points(self, match_id: str) -> List[RecordedPoint]:
        with self._lock:
            self._require(match_id)
            return list(self._points[match_id])

    def count_points(self, match_id: str) -> Tuple[int, int]:
        with self._lock:
            self._require(match_id)
            return len(self._points[match_id]), self._last_sequence_ids[match_id]
