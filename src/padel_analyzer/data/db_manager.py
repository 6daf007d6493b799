# src/padel_analyzer/data/db_manager.py

from contextlib import contextmanager
from typing import Dict, List, Optional, Tuple
import datetime
import logging
import os
import sqlite3
import uuid

from .models import Category1, Category2, Match, MatchStatus, Position, RecordedPoint, Team
from ..config import DB_BUSY_TIMEOUT, DB_PATH
from ..errors import ConcurrentMutationConflict, EmptyLedger, MatchNotFound, StorageError

logger = logging.getLogger(__name__)

_POINT_COLUMNS = (
    "sequence_id, match_id, action_id, sub_tag_id, sub_sub_tag_id, "
    "position, team, category1, category2, timestamp"
)

# Per update_match änderbare Spalten
MATCH_EDITABLE_COLUMNS = ('name', 'player_right', 'player_left', 'opponent_right', 'opponent_left')

_BUSY_MESSAGES = ('database is locked', 'database is busy')


def _mutation_error(match_id: str, error: sqlite3.Error, action: str) -> Exception:
    """
    Übersetzt SQLite-Fehler einer Mutation. Doppelte Sequenz-IDs und eine
    von einem anderen Schreiber gehaltene Sperre sind Konflikte, alles andere Speicherfehler.
    """
    busy = isinstance(error, sqlite3.OperationalError) and str(error).lower() in _BUSY_MESSAGES
    if busy or isinstance(error, sqlite3.IntegrityError):
        logger.warning("Konflikt beim %s (Match %s): %s", action, match_id, error)
        return ConcurrentMutationConflict(match_id, str(error))
    logger.error("Fehler beim %s (Match %s): %s", action, match_id, error)
    return StorageError(str(error))


def _row_to_point(row: sqlite3.Row) -> RecordedPoint:
    return RecordedPoint(
        sequence_id=row['sequence_id'],
        match_id=row['match_id'],
        action_id=row['action_id'],
        sub_tag_id=row['sub_tag_id'],
        sub_sub_tag_id=row['sub_sub_tag_id'],
        position=Position(row['position']) if row['position'] else None,
        team=Team(row['team']),
        category1=Category1(row['category1']),
        category2=Category2(row['category2']),
        timestamp=datetime.datetime.fromisoformat(row['timestamp']),
    )


def _row_to_match(row: sqlite3.Row) -> Match:
    return Match(
        match_id=row['match_id'],
        name=row['name'],
        player_right=row['player_right'],
        player_left=row['player_left'],
        opponent_right=row['opponent_right'],
        opponent_left=row['opponent_left'],
        status=MatchStatus(row['status']),
        created_at=datetime.datetime.fromisoformat(row['created_at']),
    )


class DBManager:
    """
    Verwaltet die Verbindung zur SQLite-Datenbank und speichert Matches
    und deren Punkte. Punkte werden unverändert (inkl. Kategorien) abgelegt,
    ein Ledger lässt sich jederzeit über fetch_points rekonstruieren.
    """

    def __init__(self, db_path: str = DB_PATH, busy_timeout: float = DB_BUSY_TIMEOUT):
        """
        Initialisiert den DBManager. Jede Operation öffnet ihre eigene Verbindung,
        damit mehrere Threads dieselbe Instanz nutzen können.
        """
        self.db_path = db_path
        self.busy_timeout = busy_timeout

        # Stelle sicher, dass der Ordner existiert
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        """Stellt eine neue Verbindung zur Datenbank her."""
        try:
            # isolation_level=None: Transaktionen werden explizit gesteuert
            connection = sqlite3.connect(self.db_path, isolation_level=None, timeout=self.busy_timeout)
            connection.row_factory = sqlite3.Row
            connection.execute("PRAGMA foreign_keys = ON")
            return connection
        except sqlite3.Error as e:
            logger.error("Datenbankverbindungsfehler (%s): %s", self.db_path, e)
            raise StorageError(f"Verbindung zu {self.db_path} fehlgeschlagen: {e}") from e

    @contextmanager
    def _transaction(self):
        """
        Schreibtransaktion mit sofortiger Sperre. Entweder alles wird
        committet oder nichts (auch bei Abbruch des Aufrufers).
        """
        connection = self.connect()
        try:
            cursor = connection.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            yield cursor
            connection.commit()
        except BaseException:
            connection.rollback()
            raise
        finally:
            connection.close()

    def execute_query(self, query: str, params: tuple = (), fetch_id: bool = False):
        """
        Führt einen beliebigen schreibenden SQL-Query aus.
        Gibt bei fetch_id=True die ID des zuletzt eingefügten Datensatzes zurück.
        """
        try:
            with self._transaction() as cursor:
                cursor.execute(query, params)
                return cursor.lastrowid if fetch_id else True
        except sqlite3.Error as e:
            logger.error("SQL-Fehler bei Query '%s' mit Params %s: %s", query, params, e)
            raise StorageError(str(e)) from e

    def execute_query_fetch_all(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        """Führt einen Query aus und holt alle Ergebnisse."""
        connection = self.connect()
        try:
            return connection.execute(query, params).fetchall()
        except sqlite3.Error as e:
            logger.error("SQL-Fehler beim Fetchen: %s", e)
            raise StorageError(str(e)) from e
        finally:
            connection.close()

    def setup_database(self):
        """Erstellt alle notwendigen Tabellen."""
        logger.info("Erstelle Datenbanktabellen in %s", self.db_path)

        queries = [
            """
            CREATE TABLE IF NOT EXISTS matches (
                match_id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                player_right TEXT NOT NULL,
                player_left TEXT NOT NULL,
                opponent_right TEXT NOT NULL,
                opponent_left TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'in_progress',
                created_at TEXT NOT NULL,
                last_sequence_id INTEGER NOT NULL DEFAULT 0
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS points (
                point_id INTEGER PRIMARY KEY,
                match_id TEXT NOT NULL,
                sequence_id INTEGER NOT NULL,
                action_id TEXT NOT NULL,
                sub_tag_id TEXT,
                sub_sub_tag_id TEXT,
                position TEXT,
                team TEXT NOT NULL,
                category1 TEXT NOT NULL,
                category2 TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                FOREIGN KEY (match_id) REFERENCES matches (match_id) ON DELETE CASCADE,
                UNIQUE (match_id, sequence_id)
            );
            """,
        ]

        for query in queries:
            self.execute_query(query)

    # --- MATCHES ---

    def insert_match(self, match: Match) -> Match:
        """Legt ein Match an und gibt es mit vergebener ID zurück."""
        if match.match_id is None:
            match.match_id = uuid.uuid4().hex
        query = """
        INSERT INTO matches (match_id, name, player_right, player_left,
                             opponent_right, opponent_left, status, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """
        params = (
            match.match_id,
            match.name,
            match.player_right,
            match.player_left,
            match.opponent_right,
            match.opponent_left,
            match.status.value,
            match.created_at.isoformat(),
        )
        self.execute_query(query, params)
        return match

    def get_match(self, match_id: str) -> Match:
        rows = self.execute_query_fetch_all("SELECT * FROM matches WHERE match_id = ?", (match_id,))
        if not rows:
            raise MatchNotFound(match_id)
        return _row_to_match(rows[0])

    def list_matches(self) -> List[Match]:
        """Alle Matches, neueste zuerst."""
        rows = self.execute_query_fetch_all("SELECT * FROM matches ORDER BY created_at DESC")
        return [_row_to_match(row) for row in rows]

    def update_match(self, match_id: str, changes: Dict[str, str]) -> Match:
        """Ändert Name/Spieler eines Matches und gibt den neuen Stand zurück."""
        unknown = set(changes) - set(MATCH_EDITABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Nicht änderbare Felder: {sorted(unknown)}")
        if not changes:
            return self.get_match(match_id)

        columns = [c for c in MATCH_EDITABLE_COLUMNS if c in changes]
        assignments = ", ".join(f"{c} = ?" for c in columns)
        try:
            with self._transaction() as cursor:
                cursor.execute(f"UPDATE matches SET {assignments} WHERE match_id = ?",
                               tuple(changes[c] for c in columns) + (match_id,))
                if cursor.rowcount == 0:
                    raise MatchNotFound(match_id)
        except sqlite3.Error as e:
            raise _mutation_error(match_id, e, "Ändern des Matches") from e
        return self.get_match(match_id)

    def update_match_status(self, match_id: str, status: MatchStatus):
        try:
            with self._transaction() as cursor:
                cursor.execute("UPDATE matches SET status = ? WHERE match_id = ?",
                               (MatchStatus.parse(status).value, match_id))
                if cursor.rowcount == 0:
                    raise MatchNotFound(match_id)
        except sqlite3.Error as e:
            raise _mutation_error(match_id, e, "Statuswechsel") from e

    def delete_match(self, match_id: str):
        """Löscht ein Match inklusive seines Ledgers."""
        try:
            with self._transaction() as cursor:
                cursor.execute("DELETE FROM points WHERE match_id = ?", (match_id,))
                cursor.execute("DELETE FROM matches WHERE match_id = ?", (match_id,))
                if cursor.rowcount == 0:
                    raise MatchNotFound(match_id)
        except sqlite3.Error as e:
            raise _mutation_error(match_id, e, "Löschen des Matches") from e

    # --- PUNKTE ---

    def _last_sequence_id(self, cursor: sqlite3.Cursor, match_id: str) -> int:
        cursor.execute("SELECT last_sequence_id FROM matches WHERE match_id = ?", (match_id,))
        row = cursor.fetchone()
        if row is None:
            raise MatchNotFound(match_id)
        return row['last_sequence_id']

    def append_point(self, match_id: str, action_id: str, sub_tag_id: Optional[str],
                     sub_sub_tag_id: Optional[str], position: Optional[Position], team: Team,
                     category1: Category1, category2: Category2,
                     timestamp: datetime.datetime) -> RecordedPoint:
        """
        Vergibt die nächste Sequenz-ID und speichert den Punkt in einer Transaktion.
        Der Zähler in 'matches' sorgt dafür, dass IDs nach einem Undo nicht erneut vergeben werden.
        """
        try:
            with self._transaction() as cursor:
                sequence_id = self._last_sequence_id(cursor, match_id) + 1
                cursor.execute(
                    f"INSERT INTO points ({_POINT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        sequence_id,
                        match_id,
                        action_id,
                        sub_tag_id,
                        sub_sub_tag_id,
                        position.value if position else None,
                        team.value,
                        category1.value,
                        category2.value,
                        timestamp.isoformat(),
                    ),
                )
                cursor.execute("UPDATE matches SET last_sequence_id = ? WHERE match_id = ?",
                               (sequence_id, match_id))
        except sqlite3.Error as e:
            raise _mutation_error(match_id, e, "Speichern des Punktes") from e

        return RecordedPoint(
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

    def delete_last_point(self, match_id: str) -> RecordedPoint:
        """Entfernt den Punkt mit der höchsten Sequenz-ID und gibt ihn zurück."""
        try:
            with self._transaction() as cursor:
                self._last_sequence_id(cursor, match_id)
                cursor.execute(
                    f"SELECT {_POINT_COLUMNS} FROM points WHERE match_id = ? "
                    "ORDER BY sequence_id DESC LIMIT 1",
                    (match_id,),
                )
                row = cursor.fetchone()
                if row is None:
                    raise EmptyLedger(match_id)
                point = _row_to_point(row)
                cursor.execute("DELETE FROM points WHERE match_id = ? AND sequence_id = ?",
                               (match_id, point.sequence_id))
                if cursor.rowcount != 1:
                    raise ConcurrentMutationConflict(match_id, f"Punkt {point.sequence_id} bereits entfernt")
        except sqlite3.Error as e:
            raise _mutation_error(match_id, e, "Entfernen des Punktes") from e
        return point

    def fetch_points(self, match_id: str) -> List[RecordedPoint]:
        """Alle Punkte eines Matches, aufsteigend nach Sequenz-ID."""
        connection = self.connect()
        try:
            cursor = connection.cursor()
            self._last_sequence_id(cursor, match_id)
            cursor.execute(
                f"SELECT {_POINT_COLUMNS} FROM points WHERE match_id = ? ORDER BY sequence_id ASC",
                (match_id,),
            )
            return [_row_to_point(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            logger.error("Fehler beim Laden der Punkte (Match %s): %s", match_id, e)
            raise StorageError(str(e)) from e
        finally:
            connection.close()

    def count_points(self, match_id: str) -> Tuple[int, int]:
        """(Anzahl Punkte, letzte vergebene Sequenz-ID) eines Matches."""
        rows = self.execute_query_fetch_all(
            "SELECT COUNT(p.point_id) AS n, m.last_sequence_id AS last_id FROM matches m "
            "LEFT JOIN points p ON p.match_id = m.match_id WHERE m.match_id = ? GROUP BY m.match_id",
            (match_id,),
        )
        if not rows:
            raise MatchNotFound(match_id)
        return rows[0]['n'], rows[0]['last_id']
