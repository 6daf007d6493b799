# src/padel_analyzer/main.py

import argparse
import json
import logging
import sys

from .config import DB_PATH, LOG_LEVEL
from .data.db_manager import DBManager
from .data.models import OutcomeColor, Position, SideMapping
from .errors import PadelAnalyzerError
from .logic.match_controller import MatchController

logger = logging.getLogger(__name__)


def _side_mapping(right_is):
    if right_is is None:
        return None
    right = Position.parse(right_is)
    left = Position.PLAYER2 if right == Position.PLAYER1 else Position.PLAYER1
    return SideMapping(right=right, left=left)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="padel-analyzer", description="Punkt-für-Punkt Padel-Analyse")
    parser.add_argument("--db", default=DB_PATH, help="Pfad zur SQLite-Datenbank")
    parser.add_argument("--log-level", default=LOG_LEVEL)
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Tabellen anlegen")
    sub.add_parser("actions", help="Aktionskatalog anzeigen")
    sub.add_parser("matches", help="Alle Analysen auflisten")

    p = sub.add_parser("start", help="Neue Analyse starten")
    p.add_argument("name")
    p.add_argument("--right", required=True, help="Spieler rechts")
    p.add_argument("--left", required=True, help="Spieler links")
    p.add_argument("--opponent-right")
    p.add_argument("--opponent-left")

    p = sub.add_parser("edit", help="Name oder Spieler einer Analyse ändern")
    p.add_argument("match_id")
    p.add_argument("--name")
    p.add_argument("--right", help="Spieler rechts")
    p.add_argument("--left", help="Spieler links")
    p.add_argument("--opponent-right")
    p.add_argument("--opponent-left")

    p = sub.add_parser("record", help="Punkt erfassen")
    p.add_argument("match_id")
    p.add_argument("action_id")
    p.add_argument("--sub-tag")
    p.add_argument("--sub-sub-tag")
    p.add_argument("--position", choices=[pos.value for pos in Position])
    p.add_argument("--side", choices=["right", "left"])
    p.add_argument("--right-is", choices=[pos.value for pos in Position],
                   help="Position des rechten Spielers (Pflicht bei --side)")
    p.add_argument("--team", default="team1", choices=["team1", "team2"])

    for name, help_text in [("undo", "Letzten Punkt entfernen"), ("points", "Punkte auflisten"),
                            ("complete", "Analyse abschließen"), ("delete", "Analyse löschen")]:
        p = sub.add_parser(name, help=help_text)
        p.add_argument("match_id")

    p = sub.add_parser("stats", help="Statistiken anzeigen")
    p.add_argument("match_id")
    p.add_argument("--breakdown", action="store_true", help="Auswertung pro Position und Aktion")

    p = sub.add_parser("export", help="Statistiken exportieren")
    p.add_argument("match_id")
    p.add_argument("path")
    p.add_argument("--format", default="pdf", choices=["pdf", "csv"])

    return parser


def run(args, controller: MatchController) -> int:
    command = args.command

    if command == "init-db":
        controller.store.setup_database()
        print(f"Datenbank bereit: {args.db}")
    elif command == "actions":
        # Wie die Button-Leisten: erst gewonnene, dann verlorene Punkte
        for color in OutcomeColor:
            print(f"[{color.value}]")
            for action in controller.catalog.actions_by_color(color):
                tags = ", ".join(action.sub_tag_ids) or "-"
                line = f"  {action.icon} {action.id:<24} [{tags}]"
                if action.has_sub_sub_tags:
                    line += f" x [{', '.join(action.sub_sub_tag_ids)}]"
                print(line)
    elif command == "matches":
        for match in controller.list_matches():
            count, _ = controller.store.count_points(match.match_id)
            print(f"{match.match_id}  {match.created_at:%Y-%m-%d %H:%M}  {match.name} "
                  f"({match.player_right}/{match.player_left})  {match.status.value}  {count} Punkte")
    elif command == "start":
        match = controller.start_match(args.name, args.right, args.left, args.opponent_right, args.opponent_left)
        print(match.match_id)
    elif command == "edit":
        match = controller.update_match(args.match_id, args.name, args.right, args.left,
                                        args.opponent_right, args.opponent_left)
        print(json.dumps(match.to_dict()))
    elif command == "record":
        controller.side_mapping = _side_mapping(args.right_is)
        point = controller.record_point(args.match_id, args.action_id, args.sub_tag, args.sub_sub_tag,
                                        position=args.position, team=args.team, side=args.side)
        print(json.dumps(point.to_dict()))
    elif command == "undo":
        point = controller.undo_last_point(args.match_id)
        print(json.dumps(point.to_dict()))
    elif command == "points":
        for point in controller.list_points(args.match_id):
            print(json.dumps(point.to_dict()))
    elif command == "stats":
        print(json.dumps(controller.get_stats(args.match_id).to_dict(), indent=2))
        if args.breakdown:
            calculator = controller.stats_calculator
            win_rate = calculator.calculate_win_rate(args.match_id)
            print("Quote gewonnen: " + ("-" if win_rate is None else f"{win_rate:.1%}"))
            print(calculator.calculate_position_breakdown(args.match_id).to_string(index=False))
            print(calculator.calculate_team_breakdown(args.match_id).to_string(index=False))
            for outcome in ("won", "lost"):
                breakdown = calculator.calculate_action_breakdown(args.match_id, outcome)
                if not breakdown.empty:
                    print(breakdown.to_string(index=False))
    elif command == "export":
        calculator = controller.stats_calculator
        if args.format == "csv":
            ok = calculator.export_to_csv(args.match_id, args.path)
        else:
            ok = calculator.export_to_pdf(args.match_id, args.path)
        if not ok:
            return 1
        print(args.path)
    elif command == "complete":
        controller.complete_match(args.match_id)
    elif command == "delete":
        controller.delete_match(args.match_id)
    return 0


def main(argv=None) -> int:
    """Der Hauptprozess der Kommandozeile."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    db_manager = DBManager(db_path=args.db)
    controller = MatchController(db_manager)
    try:
        # CREATE TABLE IF NOT EXISTS: bei jedem Start unkritisch
        db_manager.setup_database()
        return run(args, controller)
    except PadelAnalyzerError as e:
        logger.debug("Befehl '%s' fehlgeschlagen", args.command, exc_info=True)
        print(f"Fehler: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
