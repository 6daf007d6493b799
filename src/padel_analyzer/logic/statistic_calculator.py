# src/padel_analyzer/logic/statistic_calculator.py

from typing import List, Optional
import logging

import numpy as np
import pandas as pd

# PDF-Export Importe
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..config import FAULT_CATEGORIES
from ..data.models import Category1, Category2, Position, StatsSnapshot, Team
from .point_ledger import PointLedger

logger = logging.getLogger(__name__)

POINT_FIELDS = [
    'sequence_id', 'match_id', 'action_id', 'sub_tag_id', 'sub_sub_tag_id',
    'position', 'team', 'category1', 'category2', 'timestamp',
]

POSITIONS = [p.value for p in Position]
TEAMS = [t.value for t in Team]

ACTION_BREAKDOWN_COLUMNS = ['action_id', 'action_label', 'sub_tag_id', 'sub_tag_label'] + POSITIONS + ['total']


class StatisticCalculator:
    """
    Berechnet Statistiken immer komplett neu aus dem aktuellen Ledger.
    Keine inkrementellen Zähler, dadurch bleibt alles nach Undo korrekt.
    """

    def __init__(self, ledger: PointLedger):
        self.ledger = ledger
        self.catalog = ledger.catalog

    def points_dataframe(self, match_id: str) -> pd.DataFrame:
        points = self.ledger.list(match_id)
        return pd.DataFrame([p.to_dict() for p in points], columns=POINT_FIELDS)

    def compute_stats(self, match_id: str) -> StatsSnapshot:
        df = self.points_dataframe(match_id)

        winning_shots = int((df['category2'] == Category2.WINNER.value).sum())
        total_faults = int(df['category2'].isin(FAULT_CATEGORIES).sum())

        # Keine Division durch 0: ohne Gewinnschläge gibt es kein Verhältnis
        ratio = total_faults / winning_shots if winning_shots > 0 else None

        return StatsSnapshot(
            total_points=len(df),
            points_won=int((df['category1'] == Category1.WON.value).sum()),
            points_lost=int((df['category1'] == Category1.LOST.value).sum()),
            winning_shots=winning_shots,
            total_faults=total_faults,
            fault_to_winner_ratio=ratio,
        )

    def calculate_position_breakdown(self, match_id: str) -> pd.DataFrame:
        """Gewonnene/verlorene Punkte pro Spielerposition."""
        df = self.points_dataframe(match_id)

        rows = []
        for position in POSITIONS:
            subset = df[df['position'] == position]
            rows.append({
                'position': position,
                'won': int((subset['category1'] == Category1.WON.value).sum()),
                'lost': int((subset['category1'] == Category1.LOST.value).sum()),
            })
        stats = pd.DataFrame(rows)
        stats['total'] = stats['won'] + stats['lost']
        stats['win_rate'] = np.where(stats['total'] > 0, stats['won'] / stats['total'].replace(0, 1), 0).round(3)
        return stats

    def calculate_win_rate(self, match_id: str) -> Optional[float]:
        """Anteil gewonnener Punkte an allen Punkten, None ohne Punkte."""
        df = self.points_dataframe(match_id)
        if df.empty:
            return None
        return float((df['category1'] == Category1.WON.value).mean())

    def calculate_team_breakdown(self, match_id: str) -> pd.DataFrame:
        """Punkte pro Team mit Anteil an allen Punkten des Matches."""
        df = self.points_dataframe(match_id)

        rows = []
        for team in TEAMS:
            subset = df[df['team'] == team]
            rows.append({
                'team': team,
                'won': int((subset['category1'] == Category1.WON.value).sum()),
                'lost': int((subset['category1'] == Category1.LOST.value).sum()),
            })
        stats = pd.DataFrame(rows)
        stats['total'] = stats['won'] + stats['lost']
        stats['share'] = (stats['total'] / len(df)).round(3) if len(df) else 0.0
        return stats

    def calculate_action_breakdown(self, match_id: str, outcome: str = Category1.WON.value) -> pd.DataFrame:
        """
        Punkte eines Ergebnisses (won/lost) pro Aktion und SubTag, aufgeteilt nach Position.
        Sortiert in Katalogreihenfolge.
        """
        outcome = Category1.parse(outcome).value
        df = self.points_dataframe(match_id)
        subset = df[df['category1'] == outcome].copy()
        if subset.empty:
            return pd.DataFrame(columns=ACTION_BREAKDOWN_COLUMNS)

        subset['sub_tag_id'] = subset['sub_tag_id'].fillna('')
        subset['position'] = subset['position'].fillna('')
        counts = subset.groupby(['action_id', 'sub_tag_id', 'position']).size().unstack(fill_value=0)
        counts = counts.reindex(columns=POSITIONS, fill_value=0)
        counts['total'] = subset.groupby(['action_id', 'sub_tag_id']).size()
        counts = counts.reset_index()

        order = {a.id: i for i, a in enumerate(self.catalog.list_actions())}

        def tag_order(row):
            action = self.catalog.get_action(row['action_id'])
            ids = action.sub_tag_ids
            return ids.index(row['sub_tag_id']) if row['sub_tag_id'] in ids else -1

        def tag_label(row):
            action = self.catalog.get_action(row['action_id'])
            for tag in action.sub_tags:
                if tag.id == row['sub_tag_id']:
                    return tag.label
            return ''

        counts['action_label'] = counts['action_id'].map(lambda a: self.catalog.get_action(a).label)
        counts['sub_tag_label'] = counts.apply(tag_label, axis=1)
        counts['_order'] = counts['action_id'].map(order)
        counts['_tag_order'] = counts.apply(tag_order, axis=1)
        counts = counts.sort_values(['_order', '_tag_order']).reset_index(drop=True)
        counts['sub_tag_id'] = counts['sub_tag_id'].map(lambda tag: tag or None)
        return counts[ACTION_BREAKDOWN_COLUMNS]

    def calculate_fault_locations(self, match_id: str, action_id: str = 'unforced_error') -> pd.DataFrame:
        """Matrix Schlagart x Fehlerort für die Aktion mit zweiter Tag-Dimension."""
        action = self.catalog.get_action(action_id)
        if not action.has_sub_sub_tags:
            raise ValueError(f"Aktion '{action_id}' hat keine zweite Tag-Dimension")

        df = self.points_dataframe(match_id)
        subset = df[df['action_id'] == action.id]

        data = {}
        for location in action.sub_sub_tags:
            at_location = subset[subset['sub_sub_tag_id'] == location.id]
            data[location.id] = [int((at_location['sub_tag_id'] == shot.id).sum()) for shot in action.sub_tags]

        result = pd.DataFrame(data, index=pd.Index(list(action.sub_tag_ids), name='shot'))
        result['total'] = result.sum(axis=1)
        return result

    # --- EXPORT ---

    def export_to_csv(self, match_id: str, file_path: str) -> bool:
        """Schreibt die Punkt-Zeitlinie als CSV."""
        try:
            self.points_dataframe(match_id).to_csv(file_path, index=False)
            return True
        except OSError as e:
            logger.error("CSV-Export fehlgeschlagen (%s): %s", file_path, e)
            return False

    def export_to_pdf(self, match_id: str, file_path: str, title: Optional[str] = None) -> bool:
        """Erstellt ein PDF mit Übersicht, Positions- und Aktionsauswertung."""
        try:
            doc = SimpleDocTemplate(file_path, pagesize=A4, rightMargin=1.5*cm, leftMargin=1.5*cm, topMargin=1.5*cm, bottomMargin=1.5*cm)
            elements = []
            styles = getSampleStyleSheet()

            title_style = ParagraphStyle('TitleStyle', parent=styles['Title'], fontSize=22, spaceAfter=20, textColor=colors.toColor("#2C3E50"))
            elements.append(Paragraph(title or f"Padel Match Analyse - ID {match_id}", title_style))

            # 1. ÜBERSICHT
            elements.append(Paragraph("1. Übersicht", styles['Heading1']))
            stats = self.compute_stats(match_id)
            ratio = "-" if stats.fault_to_winner_ratio is None else f"{stats.fault_to_winner_ratio:.2f}"
            win_rate = self.calculate_win_rate(match_id)
            win_rate = "-" if win_rate is None else f"{win_rate*100:.1f}%"
            summary = Table([
                ["Punkte", "Gewonnen", "Verloren", "Quote", "Winner", "Fehler", "Fehler/Winner"],
                [str(stats.total_points), str(stats.points_won), str(stats.points_lost), win_rate,
                 str(stats.winning_shots), str(stats.total_faults), ratio],
            ], colWidths=[2.5*cm]*7)
            summary.setStyle(TableStyle([
                ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
                ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
                ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
                ('BACKGROUND', (1, 1), (1, 1), colors.toColor("#EBF5FB")),  # Gewonnen
                ('BACKGROUND', (2, 1), (2, 1), colors.toColor("#FDEDEC")),  # Verloren
            ]))
            elements.append(summary)
            elements.append(Spacer(1, 15))

            # 2. POSITIONEN
            elements.append(Paragraph("2. Punkte pro Position und Team", styles['Heading1']))
            pos_df = self.calculate_position_breakdown(match_id)
            data = [["Position", "Gewonnen", "Verloren", "Gesamt", "Quote"]]
            for _, r in pos_df.iterrows():
                data.append([r['position'], int(r['won']), int(r['lost']), int(r['total']), f"{r['win_rate']*100:.1f}%"])
            elements.append(self._styled_table(data, "#16A085"))
            elements.append(Spacer(1, 10))

            team_df = self.calculate_team_breakdown(match_id)
            data = [["Team", "Gewonnen", "Verloren", "Gesamt", "Anteil"]]
            for _, r in team_df.iterrows():
                data.append([r["team"], int(r["won"]), int(r["lost"]), int(r["total"]), f"{r['share']*100:.1f}%"])
            elements.append(self._styled_table(data, "#2980B9"))
            elements.append(Spacer(1, 15))

            # 3./4. AKTIONEN
            for number, (outcome, heading, color) in enumerate([
                (Category1.WON.value, "Gewonnene Punkte", "#27AE60"),
                (Category1.LOST.value, "Verlorene Punkte", "#C0392B"),
            ], start=3):
                elements.append(Paragraph(f"{number}. {heading}", styles['Heading1']))
                breakdown = self.calculate_action_breakdown(match_id, outcome)
                if breakdown.empty:
                    elements.append(Paragraph("Keine Punkte", styles['Normal']))
                else:
                    data = [["Aktion", "Detail"] + POSITIONS + ["Gesamt"]]
                    for _, r in breakdown.iterrows():
                        data.append([r['action_label'], r['sub_tag_label']] + [int(r[p]) for p in POSITIONS] + [int(r['total'])])
                    elements.append(self._styled_table(data, color))
                elements.append(Spacer(1, 15))

            # 5. FEHLERORTE
            elements.append(Paragraph("5. Unforced Errors nach Ort", styles['Heading1']))
            loc_df = self.calculate_fault_locations(match_id)
            data = [["Schlag"] + list(loc_df.columns)]
            for shot, r in loc_df.iterrows():
                data.append([shot] + [int(v) for v in r.values])
            elements.append(self._styled_table(data, "#8E44AD"))

            doc.build(elements)
            return True
        except OSError as e:
            logger.error("PDF-Export fehlgeschlagen (%s): %s", file_path, e)
            return False

    @staticmethod
    def _styled_table(data: List[list], header_color: str) -> Table:
        t = Table(data)
        t.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.toColor(header_color)),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ]))
        return t
