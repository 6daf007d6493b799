# src/padel_analyzer/config.py

import os
import sys

# Pfad zur SQLite-Datenbank
if getattr(sys, 'frozen', False):
    # App läuft als PyInstaller-Exe
    BASE_DIR = sys._MEIPASS
else:
    BASE_DIR = os.path.abspath(os.path.dirname(__file__))

# Datenbank im 'resources/db' Ordner neben dem Projekt, per Umgebungsvariable überschreibbar
DB_FOLDER = os.path.join(os.path.dirname(os.path.dirname(BASE_DIR)), 'resources', 'db')
DB_PATH = os.getenv('PADEL_ANALYZER_DB_PATH', os.path.join(DB_FOLDER, 'analysis.db'))

LOG_LEVEL = os.getenv('PADEL_ANALYZER_LOG_LEVEL', 'INFO')

# Sekunden, die eine Mutation auf das Match-Lock wartet
LEDGER_LOCK_TIMEOUT = float(os.getenv('PADEL_ANALYZER_LOCK_TIMEOUT', '5.0'))

# Sekunden, die SQLite auf die Schreibsperre eines anderen Schreibers wartet
DB_BUSY_TIMEOUT = float(os.getenv('PADEL_ANALYZER_DB_TIMEOUT', '30.0'))

# --- Aktionskatalog ---

_LOCATION_TAGS = [
    {'id': 'right', 'label': 'Right'},
    {'id': 'center', 'label': 'Center'},
    {'id': 'left', 'label': 'Left'},
]

# Reihenfolge = Anzeige-Reihenfolge, nicht umsortieren
POINT_ACTIONS = [
    # Gewonnene Punkte
    {
        'id': 'passing_winner',
        'label': 'Passing',
        'description': 'Winning passing shot',
        'icon': '🏃',
        'color': 'green',
        'requires_player': True,
        'sub_tags': _LOCATION_TAGS,
    },
    {
        'id': 'volley_winner',
        'label': 'Volley',
        'description': 'Winning volley',
        'icon': '✋',
        'color': 'green',
        'requires_player': True,
        'sub_tags': _LOCATION_TAGS,
    },
    {
        'id': 'smash_winner',
        'label': 'Smash',
        'description': 'Winning smash',
        'icon': '💥',
        'color': 'green',
        'requires_player': True,
        'sub_tags': [
            {'id': '3rd', 'label': 'Out by 3'},
            {'id': '4th', 'label': 'Out by 4'},
            {'id': 'lob-smash', 'label': 'Lob/Smash'},
        ],
    },
    {
        'id': 'lob_winner',
        'label': 'Lob',
        'description': 'Winning lob',
        'icon': '🏸',
        'color': 'green',
        'requires_player': True,
        'sub_tags': _LOCATION_TAGS,
    },
    {
        'id': 'vibora_bandeja_winner',
        'label': 'Vibora/Bandeja',
        'description': 'Winning vibora or bandeja',
        'icon': '🎯',
        'color': 'green',
        'requires_player': True,
        'sub_tags': _LOCATION_TAGS,
    },
    {
        'id': 'bajada_winner',
        'label': 'Bajada',
        'description': 'Winning bajada',
        'icon': '⬇️',
        'color': 'green',
        'requires_player': True,
        'sub_tags': _LOCATION_TAGS,
    },
    {
        'id': 'opponent_direct_fault',
        'label': 'Opponent direct fault',
        'description': 'Point won on an opponent error',
        'icon': '❌',
        'color': 'green',
        'requires_player': True,
        'sub_tags': [],
    },

    # Verlorene Punkte
    {
        'id': 'forced_error',
        'label': 'Forced Error',
        'description': 'Error forced by the opponent',
        'icon': '🔥',
        'color': 'red',
        'requires_player': True,
        'sub_tags': [
            {'id': 'counter_smash', 'label': 'Counter-smash'},
            {'id': 'short_lob', 'label': 'Short lob'},
            {'id': 'zone_error', 'label': 'Zone error'},
        ],
    },
    {
        'id': 'winner_on_error',
        'label': 'Winner on error',
        'description': 'Opponent winner on our error',
        'icon': '🎯',
        'color': 'red',
        'requires_player': True,
        'sub_tags': [],
    },
    {
        'id': 'unforced_error',
        'label': 'Unforced Error',
        'description': 'Unforced direct fault',
        'icon': '🚫',
        'color': 'red',
        'requires_player': True,
        'sub_tags': [
            {'id': 'passing', 'label': 'Passing', 'icon': '🏃'},
            {'id': 'volley', 'label': 'Volley', 'icon': '✋'},
            {'id': 'smash', 'label': 'Smash', 'icon': '💥'},
            {'id': 'lob', 'label': 'Lob', 'icon': '🏸'},
            {'id': 'vibora_bandeja', 'label': 'Vibora/Bandeja', 'icon': '🎯'},
            {'id': 'bajada', 'label': 'Bajada', 'icon': '⬇️'},
        ],
        # Einzige Aktion mit zweiter Tag-Dimension (Fehlerort)
        'sub_sub_tags': [
            {'id': 'net', 'label': 'Net', 'icon': '🚫'},
            {'id': 'glass', 'label': 'Glass', 'icon': '🪟'},
            {'id': 'grid', 'label': 'Fence/Grid', 'icon': '🔲'},
        ],
    },
]

# --- Zuordnung Aktion -> Kategorie 2 (nach Aktions-ID, nicht nach Tag) ---
CATEGORY2_MAPPING = {
    'passing_winner': 'winner',
    'volley_winner': 'winner',
    'smash_winner': 'winner',
    'lob_winner': 'winner',
    'vibora_bandeja_winner': 'winner',
    'bajada_winner': 'winner',
    # Fehler des Gegners, zählt aber wie ein Gewinnschlag
    'opponent_direct_fault': 'winner',

    'unforced_error': 'unforced_error',
    'forced_error': 'forced_error',
    'winner_on_error': 'opponent_fault',
}

# Kategorien, die in "total_faults" eingehen (opponent_fault bewusst nicht)
FAULT_CATEGORIES = ('unforced_error', 'forced_error')

DEFAULT_OPPONENT_NAMES = ('Opponent 1', 'Opponent 2')
