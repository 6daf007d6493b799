# src/padel_analyzer/logic/classifier.py

from typing import NamedTuple, Optional

from ..config import CATEGORY2_MAPPING
from ..data.models import ActionDefinition, Category1, Category2, OutcomeColor
from ..errors import InvalidTagForAction
from .action_catalog import ActionCatalog, DEFAULT_CATALOG


class Classification(NamedTuple):
    category1: Category1
    category2: Category2


def validate_tags(action: ActionDefinition, sub_tag_id: Optional[str] = None,
                  sub_sub_tag_id: Optional[str] = None) -> None:
    """Prüft beide Tag-Dimensionen gegen die Aktionsdefinition."""
    if sub_tag_id is not None and sub_tag_id not in action.sub_tag_ids:
        raise InvalidTagForAction(action.id, sub_tag_id, 'sub_tag')

    if sub_sub_tag_id is not None:
        # Nur die erweiterte Variante kennt die zweite Dimension
        if not action.has_sub_sub_tags or sub_sub_tag_id not in action.sub_sub_tag_ids:
            raise InvalidTagForAction(action.id, sub_sub_tag_id, 'sub_sub_tag')


def classify_action(action: ActionDefinition, sub_tag_id: Optional[str] = None,
                    sub_sub_tag_id: Optional[str] = None) -> Classification:
    """
    Leitet (category1, category2) für eine Aktion ab.

    category1 hängt nur an der Farbe der Aktion, category2 nur an der
    Aktions-ID. Die Tags werden ausschließlich validiert.
    """
    validate_tags(action, sub_tag_id, sub_sub_tag_id)

    category1 = Category1.WON if action.outcome_color == OutcomeColor.GREEN else Category1.LOST
    category2 = Category2(CATEGORY2_MAPPING.get(action.id, Category2.NONE.value))
    return Classification(category1, category2)


def classify(action_id: str, sub_tag_id: Optional[str] = None, sub_sub_tag_id: Optional[str] = None,
             catalog: ActionCatalog = DEFAULT_CATALOG) -> Classification:
    """Wie classify_action, aber per ID (wirft UnknownAction für unbekannte IDs)."""
    return classify_action(catalog.get_action(action_id), sub_tag_id, sub_sub_tag_id)
