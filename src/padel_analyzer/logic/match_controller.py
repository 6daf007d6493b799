# src/padel_analyzer/logic/match_controller.py

from typing import List, Optional, Tuple
import logging

from ..config import DEFAULT_OPPONENT_NAMES, LEDGER_LOCK_TIMEOUT
from ..data.models import (
    ActionDefinition, Match, MatchStatus, Position, RecordedPoint, Side, SideMapping, StatsSnapshot, Team,
)
from ..errors import InvalidMatchData, InvalidPosition
from .action_catalog import ActionCatalog, DEFAULT_CATALOG
from .point_ledger import PointLedger
from .statistic_calculator import StatisticCalculator

logger = logging.getLogger(__name__)


class MatchController:
    """
    Einstiegspunkt für die Sitzungs-/UI-Schicht: verwaltet Match-Analysen
    und leitet Punkte an den Ledger bzw. Statistik-Anfragen an den Calculator weiter.
    """

    def __init__(self, store, catalog: ActionCatalog = DEFAULT_CATALOG,
                 side_mapping: Optional[SideMapping] = None,
                 lock_timeout: Optional[float] = LEDGER_LOCK_TIMEOUT):
        self.store = store
        self.catalog = catalog
        self.side_mapping = side_mapping
        self.ledger = PointLedger(store, catalog=catalog, lock_timeout=lock_timeout)
        self.stats_calculator = StatisticCalculator(self.ledger)

    # --- MATCH-VERWALTUNG ---

    @staticmethod
    def _required_text(field_name: str, value) -> str:
        value = (value or '').strip()
        if not value:
            raise InvalidMatchData(field_name)
        return value

    def start_match(self, name: str, player_right: str, player_left: str,
                    opponent_right: Optional[str] = None, opponent_left: Optional[str] = None) -> Match:
        """Legt eine neue Match-Analyse mit leerem Ledger an."""
        match = Match(
            name=self._required_text('name', name),
            player_right=self._required_text('player_right', player_right),
            player_left=self._required_text('player_left', player_left),
            opponent_right=(opponent_right or '').strip() or DEFAULT_OPPONENT_NAMES[0],
            opponent_left=(opponent_left or '').strip() or DEFAULT_OPPONENT_NAMES[1],
        )
        match = self.store.insert_match(match)
        logger.info("Neue Analyse '%s' gestartet (ID %s)", name, match.match_id)
        return match

    def get_match(self, match_id: str) -> Match:
        return self.store.get_match(match_id)

    def list_matches(self) -> List[Match]:
        return self.store.list_matches()

    def update_match(self, match_id: str, name: Optional[str] = None, player_right: Optional[str] = None,
                     player_left: Optional[str] = None, opponent_right: Optional[str] = None,
                     opponent_left: Optional[str] = None) -> Match:
        """
        Bearbeitet Name und Spieler einer bestehenden Analyse. Nur übergebene
        Felder werden geändert; Werte werden getrimmt und dürfen nicht leer sein.
        Der Ledger bleibt unberührt.
        """
        requested = {
            'name': name,
            'player_right': player_right,
            'player_left': player_left,
            'opponent_right': opponent_right,
            'opponent_left': opponent_left,
        }
        changes = {key: self._required_text(key, value) for key, value in requested.items() if value is not None}

        match = self.store.update_match(match_id, changes)
        logger.info("Analyse %s bearbeitet (%s)", match_id, ", ".join(changes) or "keine Änderung")
        return match

    def complete_match(self, match_id: str):
        self.store.update_match_status(match_id, MatchStatus.COMPLETED)
        logger.info("Analyse %s abgeschlossen", match_id)

    def delete_match(self, match_id: str):
        """Löscht die Analyse und damit ihren Ledger."""
        self.store.delete_match(match_id)
        self.ledger.forget(match_id)
        logger.info("Analyse %s gelöscht", match_id)

    # --- AKTIONEN UND PUNKTE ---

    def list_actions(self) -> Tuple[ActionDefinition, ...]:
        return self.catalog.list_actions()

    def resolve_side(self, side) -> Position:
        """Übersetzt eine Platzhälfte in die Ledger-Position (nur mit expliziter Zuordnung)."""
        if self.side_mapping is None:
            raise InvalidPosition("Keine Seiten-Zuordnung konfiguriert; bitte Position direkt angeben")
        return self.side_mapping.resolve(side)

    def record_point(self, match_id: str, action_id: str, sub_tag_id: Optional[str] = None,
                     sub_sub_tag_id: Optional[str] = None, position: Optional[Position] = None,
                     team: Team = Team.TEAM1, side: Optional[Side] = None) -> RecordedPoint:
        """
        Erfasst einen Punkt. Entweder 'position' (player1/player2) oder 'side'
        (right/left, über die Seiten-Zuordnung) angeben, nicht beides.
        """
        if side is not None:
            if position is not None:
                raise InvalidPosition("Entweder position oder side angeben, nicht beides")
            position = self.resolve_side(side)

        return self.ledger.append(match_id, action_id, sub_tag_id, sub_sub_tag_id, position, team)

    def undo_last_point(self, match_id: str) -> RecordedPoint:
        return self.ledger.undo_last(match_id)

    def list_points(self, match_id: str) -> List[RecordedPoint]:
        return self.ledger.list(match_id)

    def get_stats(self, match_id: str) -> StatsSnapshot:
        return self.stats_calculator.compute_stats(match_id)
