#!/usr/bin/env python3
"""
Calcule hors ligne les moyennes et le classement d'une classe à partir d'un export JSON,
sans base de données ni serveur.

Format attendu (config/class_export.json par défaut) :
{
  "term_id": 2,
  "terms": [{"id": 1, "ordinal": 1, "academic_year_id": 1}, ...],
  "subjects": [{"id": 1, "name": "Mathématiques"}],
  "coefficients": [{"class_id": 1, "subject_id": 1, "coefficient": 5}],
  "roster": [{"student_id": 1, "first_name": "Awa", "last_name": "Traoré", "class_id": 1}],
  "evaluations": [{"id": 10, "subject_id": 1, "term_id": 2, "label": "Devoir 3", "category": "homework"}],
  "scores": [{"student_id": 1, "evaluation_id": 10, "value": 14.5}],
  "absence_hours": {"1": 2.0},
  "missing": "exclude"
}
"""

import argparse
import json
from pathlib import Path

from reports.services.aggregation import (
    RosterEntry,
    ScoreRecord,
    SubjectRef,
    TermRef,
    build_report_cards,
    coefficient_for,
)
from reports.services.classification import EvaluationRecord, classify_evaluations


def load_config(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def compute(cfg: dict):
    terms = [
        TermRef(id=t["id"], ordinal=int(t["ordinal"]), academic_year_id=t["academic_year_id"]) for t in cfg["terms"]
    ]
    term = next(t for t in terms if t.id == cfg["term_id"])
    terms_by_id = {t.id: t for t in terms}
    roster = [
        RosterEntry(
            student_id=r["student_id"],
            first_name=r.get("first_name", ""),
            last_name=r.get("last_name", ""),
            class_id=r.get("class_id"),
        )
        for r in cfg["roster"]
    ]
    class_id = roster[0].class_id if roster else None
    table = {(c["class_id"], c["subject_id"]): c["coefficient"] for c in cfg.get("coefficients", [])}
    subjects = [
        SubjectRef(id=s["id"], name=s["name"], coefficient=float(coefficient_for(table, class_id, s["id"])))
        for s in cfg["subjects"]
    ]

    evaluations = [
        EvaluationRecord(
            id=e["id"],
            subject_id=e["subject_id"],
            term_id=e["term_id"],
            term_ordinal=terms_by_id[e["term_id"]].ordinal,
            label=e.get("label", ""),
            category=e.get("category"),
        )
        for e in cfg["evaluations"]
        if e["term_id"] in terms_by_id
    ]
    classification = classify_evaluations(evaluations)
    eval_by_id = {e.id: e for e in evaluations}
    scores = [
        ScoreRecord(
            student_id=s["student_id"],
            subject_id=eval_by_id[s["evaluation_id"]].subject_id,
            term_id=eval_by_id[s["evaluation_id"]].term_id,
            kind=classification.kind_of(s["evaluation_id"]),
            value=float(s["value"]),
            label=eval_by_id[s["evaluation_id"]].label,
        )
        for s in cfg["scores"]
        if s["evaluation_id"] in eval_by_id
    ]
    absence_hours = {int(k): v for k, v in cfg.get("absence_hours", {}).items()}
    return build_report_cards(
        term,
        terms,
        roster,
        subjects,
        scores,
        absence_hours=absence_hours,
        missing=cfg.get("missing", "exclude"),
    )


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--config", default="config/class_export.json")
    parser.add_argument("--details", action="store_true", help="Afficher les moyennes par matière")
    args = parser.parse_args()

    cards = compute(load_config(Path(args.config)))
    for card in cards:
        mention = card.mention.label if card.mention else "-"
        print(f"{card.rank or '-':>6}  {card.student.full_name:<30} {card.general_average:6.2f}  {mention}")
        if args.details:
            for result in card.subjects:
                avg = f"{result.average:.2f}" if result.average is not None else "-"
                print(f"        {result.subject_name:<28} x{result.coefficient:<5g} {avg}")


if __name__ == "__main__":
    main()
