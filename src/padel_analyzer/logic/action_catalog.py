# src/padel_analyzer/logic/action_catalog.py

from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Tuple
import logging

from ..config import POINT_ACTIONS
from ..data.models import ActionDefinition, ExtendedActionDefinition, OutcomeColor, SubTag
from ..errors import UnknownAction

logger = logging.getLogger(__name__)


def _build_tags(raw_tags: Iterable[Dict[str, Any]]) -> Tuple[SubTag, ...]:
    tags = tuple(SubTag(id=t['id'], label=t['label'], icon=t.get('icon')) for t in raw_tags)
    ids = [tag.id for tag in tags]
    if len(ids) != len(set(ids)):
        raise ValueError(f"Doppelte Tag-IDs: {ids}")
    return tags


def build_action(raw: Dict[str, Any]) -> ActionDefinition:
    """Baut aus einem Konfigurationseintrag die passende Variante (mit/ohne SubSubTags)."""
    common = dict(
        id=raw['id'],
        label=raw['label'],
        description=raw.get('description', ''),
        icon=raw.get('icon', ''),
        outcome_color=OutcomeColor(raw['color']),
        requires_player=bool(raw.get('requires_player', False)),
        sub_tags=_build_tags(raw.get('sub_tags', [])),
    )
    if raw.get('sub_sub_tags'):
        return ExtendedActionDefinition(sub_sub_tags=_build_tags(raw['sub_sub_tags']), **common)
    return ActionDefinition(**common)


class ActionCatalog:
    """
    Unveränderlicher, geordneter Katalog aller erfassbaren Aktionen.
    Die Reihenfolge entspricht der Deklarationsreihenfolge und bleibt stabil.
    """

    def __init__(self, actions: Iterable[ActionDefinition]):
        ordered = tuple(actions)
        by_id = {}
        for action in ordered:
            if action.id in by_id:
                raise ValueError(f"Aktions-ID '{action.id}' ist nicht eindeutig")
            by_id[action.id] = action
        self._actions = ordered
        self._by_id = MappingProxyType(by_id)

    @classmethod
    def from_config(cls, raw_actions: List[Dict[str, Any]] = POINT_ACTIONS) -> 'ActionCatalog':
        catalog = cls(build_action(raw) for raw in raw_actions)
        logger.debug("Aktionskatalog mit %d Einträgen geladen", len(catalog))
        return catalog

    def get_action(self, action_id: str) -> ActionDefinition:
        try:
            return self._by_id[action_id]
        except KeyError:
            raise UnknownAction(action_id) from None

    def list_actions(self) -> Tuple[ActionDefinition, ...]:
        return self._actions

    def actions_by_color(self, color) -> Tuple[ActionDefinition, ...]:
        """Gefiltert nach Ergebnisfarbe, in Katalogreihenfolge (für die Button-Leisten)."""
        color = OutcomeColor(color)
        return tuple(a for a in self._actions if a.outcome_color == color)

    def __contains__(self, action_id) -> bool:
        return action_id in self._by_id

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self):
        return iter(self._actions)


# Einmal beim Import geladen, danach nur noch gelesen
DEFAULT_CATALOG = ActionCatalog.from_config()


def get_action(action_id: str) -> ActionDefinition:
    return DEFAULT_CATALOG.get_action(action_id)


def list_actions() -> Tuple[ActionDefinition, ...]:
    return DEFAULT_CATALOG.list_actions()
