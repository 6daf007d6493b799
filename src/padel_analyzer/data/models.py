# src/padel_analyzer/data/models.py

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Tuple, Dict, Any
import datetime

from ..errors import InvalidPosition


class _ValueEnum(str, Enum):
    """String-Enum, das auch aus Rohwerten (z.B. aus der DB) gebaut werden kann."""

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ', '.join(member.value for member in cls)
            raise cls._error_type()(f"Ungültiger Wert für {cls.__name__}: {value!r} (erlaubt: {allowed})") from None

    @classmethod
    def _error_type(cls):
        return ValueError

    def __str__(self):
        return self.value


class _SideEnum(_ValueEnum):
    """Zweiwertige Kodierungen von Spieler/Seite/Team."""

    @classmethod
    def _error_type(cls):
        return InvalidPosition


class OutcomeColor(_ValueEnum):
    GREEN = 'green'
    RED = 'red'


class Category1(_ValueEnum):
    WON = 'won'
    LOST = 'lost'


class Category2(_ValueEnum):
    WINNER = 'winner'
    UNFORCED_ERROR = 'unforced_error'
    FORCED_ERROR = 'forced_error'
    OPPONENT_FAULT = 'opponent_fault'
    NONE = 'none'


class Position(_SideEnum):
    """Ledger-seitige Kodierung des Spielers im eigenen Team."""
    PLAYER1 = 'player1'
    PLAYER2 = 'player2'


class Side(_SideEnum):
    """UI-seitige Kodierung (Platzhälfte)."""
    RIGHT = 'right'
    LEFT = 'left'


class Team(_SideEnum):
    TEAM1 = 'team1'
    TEAM2 = 'team2'


class MatchStatus(_ValueEnum):
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'


@dataclass(frozen=True)
class SubTag:
    """Eine Verfeinerung einer Aktion (z.B. Schlagrichtung oder Fehlerort)."""
    id: str
    label: str
    icon: Optional[str] = None


@dataclass(frozen=True)
class ActionDefinition:
    """
    Katalogeintrag ohne zweite Tag-Dimension.
    Die Farbe ist fest pro Aktion und wird nie aus Tags abgeleitet.
    """
    id: str
    label: str
    description: str
    icon: str
    outcome_color: OutcomeColor
    requires_player: bool
    sub_tags: Tuple[SubTag, ...] = ()

    @property
    def sub_tag_ids(self) -> Tuple[str, ...]:
        return tuple(tag.id for tag in self.sub_tags)

    @property
    def has_sub_sub_tags(self) -> bool:
        return False


@dataclass(frozen=True)
class ExtendedActionDefinition(ActionDefinition):
    """Katalogeintrag mit zweiter, unabhängiger Tag-Dimension (nur Unforced Error)."""
    sub_sub_tags: Tuple[SubTag, ...] = ()

    @property
    def sub_sub_tag_ids(self) -> Tuple[str, ...]:
        return tuple(tag.id for tag in self.sub_sub_tags)

    @property
    def has_sub_sub_tags(self) -> bool:
        return True


@dataclass(frozen=True)
class SideMapping:
    """
    Explizite, totale Zuordnung Platzhälfte -> Ledger-Position.
    Es gibt keine Standard-Zuordnung; beide Seiten müssen angegeben werden.
    """
    right: Position
    left: Position

    def __post_init__(self):
        right = Position.parse(self.right)
        left = Position.parse(self.left)
        if right == left:
            raise InvalidPosition("Rechts und links müssen auf verschiedene Positionen zeigen")
        # frozen: direkt über object setzen
        object.__setattr__(self, 'right', right)
        object.__setattr__(self, 'left', left)

    def resolve(self, side) -> Position:
        side = Side.parse(side)
        return self.right if side == Side.RIGHT else self.left


@dataclass
class Match:
    """Eine Match-Analyse (Besitzer genau eines Ledgers)."""
    name: str
    player_right: str
    player_left: str
    opponent_right: str
    opponent_left: str
    status: MatchStatus = MatchStatus.IN_PROGRESS
    created_at: datetime.datetime = field(default_factory=datetime.datetime.now)
    match_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['status'] = self.status.value
        data['created_at'] = self.created_at.isoformat()
        return data


@dataclass(frozen=True)
class RecordedPoint:
    """
    Ein Ledger-Eintrag. category1/category2 werden beim Anhängen
    einmalig berechnet und danach nie verändert.
    """
    sequence_id: int
    match_id: str
    action_id: str
    sub_tag_id: Optional[str]
    sub_sub_tag_id: Optional[str]
    position: Optional[Position]
    team: Team
    category1: Category1
    category2: Category2
    timestamp: datetime.datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sequence_id': self.sequence_id,
            'match_id': self.match_id,
            'action_id': self.action_id,
            'sub_tag_id': self.sub_tag_id,
            'sub_sub_tag_id': self.sub_sub_tag_id,
            'position': self.position.value if self.position else None,
            'team': self.team.value,
            'category1': self.category1.value,
            'category2': self.category2.value,
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class StatsSnapshot:
    total_points: int = 0
    points_won: int = 0
    points_lost: int = 0
    winning_shots: int = 0
    total_faults: int = 0
    fault_to_winner_ratio: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
