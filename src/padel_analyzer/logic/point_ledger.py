# src/padel_analyzer/logic/point_ledger.py

from contextlib import contextmanager
from typing import Callable, Dict, List, Optional
import datetime
import logging
import threading

from ..config import LEDGER_LOCK_TIMEOUT
from ..data.models import Position, RecordedPoint, Team
from ..errors import ConcurrentMutationConflict, InvalidPosition
from .action_catalog import ActionCatalog, DEFAULT_CATALOG
from .classifier import classify_action

logger = logging.getLogger(__name__)


class PointLedger:
    """
    Geordnetes Punkte-Log pro Match mit Anhängen und Rückgängig (nur letzter Punkt).

    Mutationen am selben Match laufen nacheinander über ein Lock pro match_id,
    verschiedene Matches blockieren sich nicht. Der eigentliche Zustand liegt
    ausschließlich im Store; der Ledger hält nichts zwischen zwei Aufrufen.
    """

    def __init__(self, store, catalog: ActionCatalog = DEFAULT_CATALOG,
                 lock_timeout: Optional[float] = LEDGER_LOCK_TIMEOUT,
                 clock: Callable[[], datetime.datetime] = datetime.datetime.now):
        self.store = store
        self.catalog = catalog
        self.lock_timeout = lock_timeout
        self._clock = clock
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # --- HILFSMETHODEN ---

    def _match_lock(self, match_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(match_id)
            if lock is None:
                lock = self._locks[match_id] = threading.Lock()
            return lock

    @contextmanager
    def _serialized(self, match_id: str):
        lock = self._match_lock(match_id)
        timeout = -1 if self.lock_timeout is None else self.lock_timeout
        if not lock.acquire(timeout=timeout):
            logger.warning("Match %s: Sperre nach %ss nicht erhalten", match_id, self.lock_timeout)
            raise ConcurrentMutationConflict(match_id, "Sperre nicht erhalten")
        try:
            yield
        finally:
            lock.release()

    def forget(self, match_id: str):
        """Entfernt das Lock eines gelöschten Matches."""
        with self._locks_guard:
            self._locks.pop(match_id, None)

    # --- MUTATIONEN ---

    def append(self, match_id: str, action_id: str, sub_tag_id: Optional[str] = None,
               sub_sub_tag_id: Optional[str] = None, position: Optional[Position] = None,
               team: Team = Team.TEAM1) -> RecordedPoint:
        """
        Klassifiziert die Aktion, vergibt die nächste Sequenz-ID und speichert den Punkt.
        Schlägt die Validierung fehl, wird nichts verändert.
        """
        action = self.catalog.get_action(action_id)
        category1, category2 = classify_action(action, sub_tag_id, sub_sub_tag_id)

        if position is not None:
            position = Position.parse(position)
        elif action.requires_player:
            raise InvalidPosition(f"Aktion '{action_id}' erfordert eine Spielerposition")
        team = Team.parse(team)

        with self._serialized(match_id):
            point = self.store.append_point(
                match_id=match_id,
                action_id=action.id,
                sub_tag_id=sub_tag_id,
                sub_sub_tag_id=sub_sub_tag_id,
                position=position,
                team=team,
                category1=category1,
                category2=category2,
                timestamp=self._clock(),
            )

        logger.info("Match %s: Punkt #%d %s (%s/%s)", match_id, point.sequence_id, action.id,
                    category1.value, category2.value)
        return point

    def undo_last(self, match_id: str) -> RecordedPoint:
        """Entfernt den Punkt mit der höchsten Sequenz-ID (EmptyLedger, wenn leer)."""
        with self._serialized(match_id):
            point = self.store.delete_last_point(match_id)

        logger.info("Match %s: Punkt #%d (%s) rückgängig gemacht", match_id, point.sequence_id, point.action_id)
        return point

    # --- LESEN ---

    def list(self, match_id: str) -> List[RecordedPoint]:
        """Kanonische Zeitlinie des Matches, aufsteigend nach Sequenz-ID."""
        return sorted(self.store.fetch_points(match_id), key=lambda p: p.sequence_id)
