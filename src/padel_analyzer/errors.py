# src/padel_analyzer/errors.py

"""Fehlerklassen der Analyse-Engine. Alle Fehler sind für den Aufrufer sichtbar."""


class PadelAnalyzerError(Exception):
    """Basisklasse aller Engine-Fehler."""


class UnknownAction(PadelAnalyzerError, KeyError):
    """Die Aktions-ID existiert nicht im Katalog."""

    def __init__(self, action_id: str):
        self.action_id = action_id
        super().__init__(f"Unbekannte Aktion: '{action_id}'")

    def __str__(self):
        # KeyError würde die Nachricht sonst in Anführungszeichen setzen
        return self.args[0]


class InvalidTagForAction(PadelAnalyzerError, ValueError):
    """Tag ist für die Aktion nicht deklariert (oder SubSubTag ohne zweite Dimension)."""

    def __init__(self, action_id: str, tag_id: str, dimension: str = 'sub_tag'):
        self.action_id = action_id
        self.tag_id = tag_id
        self.dimension = dimension
        super().__init__(f"{dimension} '{tag_id}' ist für Aktion '{action_id}' nicht erlaubt")


class InvalidPosition(PadelAnalyzerError, ValueError):
    """Position, Seite oder Team liegt außerhalb der zweiwertigen Kodierung."""


class EmptyLedger(PadelAnalyzerError):
    """Undo auf einem Match ohne Punkte."""

    def __init__(self, match_id: str):
        self.match_id = match_id
        super().__init__(f"Match '{match_id}' hat keine Punkte zum Rückgängigmachen")


class ConcurrentMutationConflict(PadelAnalyzerError):
    """Zwei Mutationen am selben Match haben sich überholt."""

    def __init__(self, match_id: str, detail: str = ''):
        self.match_id = match_id
        message = f"Konkurrierende Änderung an Match '{match_id}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MatchNotFound(PadelAnalyzerError, LookupError):
    """Match-ID ist im Speicher nicht bekannt (vom Speicher durchgereicht)."""

    def __init__(self, match_id: str):
        self.match_id = match_id
        super().__init__(f"Match '{match_id}' nicht gefunden")


class InvalidMatchData(PadelAnalyzerError, ValueError):
    """Name oder Spielername eines Matches ist leer."""

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"'{field_name}' darf nicht leer sein")


class StorageError(PadelAnalyzerError):
    """Fehler der Datenbankschicht."""
