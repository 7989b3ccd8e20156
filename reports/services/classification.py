import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from reports.services.aggregation import EvaluationKind

logger = logging.getLogger(__name__)

HOMEWORK = "homework"
COMPOSITION = "composition"


@dataclass(frozen=True)
class EvaluationRecord:
    id: int
    subject_id: int
    term_id: int
    term_ordinal: int
    label: str = ""
    category: Optional[str] = None


@dataclass
class Classification:
    kinds: Dict[int, EvaluationKind] = field(default_factory=dict)
    fallback_ids: Set[int] = field(default_factory=set)

    def kind_of(self, evaluation_id) -> EvaluationKind:
        return self.kinds.get(evaluation_id, EvaluationKind.UNCLASSIFIED)


def canonical_labels(ordinal: int) -> Dict[EvaluationKind, str]:
    """Trimestre n : Devoir 2n-1, Devoir 2n, Composition n."""
    return {
        EvaluationKind.HOMEWORK_1: f"Devoir {2 * ordinal - 1}",
        EvaluationKind.HOMEWORK_2: f"Devoir {2 * ordinal}",
        EvaluationKind.COMPOSITION: f"Composition {ordinal}",
    }


def normalize_label(label: str) -> str:
    cleaned = re.sub(r"[()]", " ", label or "")
    return " ".join(cleaned.split()).casefold()


def category_of(evaluation: EvaluationRecord) -> Optional[str]:
    if evaluation.category in (HOMEWORK, COMPOSITION):
        return evaluation.category
    text = (evaluation.label or "").casefold()
    if "devoir" in text:
        return HOMEWORK
    if "compo" in text:
        return COMPOSITION
    return None


def classify_evaluations(evaluations: Iterable[EvaluationRecord]) -> Classification:
    """
    Resolve the kind of every evaluation once, at load time.

    Evaluations are grouped per (subject, term) in the order they were given. Exact
    canonical labels are matched first; free slots are then filled positionally (first
    two homework-type evaluations, first composition-type evaluation). Positional
    assignments are flagged in ``fallback_ids``.
    """
    groups: Dict[tuple, List[EvaluationRecord]] = {}
    for evaluation in evaluations:
        groups.setdefault((evaluation.subject_id, evaluation.term_id), []).append(evaluation)

    result = Classification()
    for (subject_id, term_id), items in groups.items():
        labels = {normalize_label(text): kind for kind, text in canonical_labels(items[0].term_ordinal).items()}
        filled: Dict[EvaluationKind, int] = {}
        leftovers = []
        for evaluation in items:
            kind = labels.get(normalize_label(evaluation.label))
            if kind is not None and kind not in filled:
                filled[kind] = evaluation.id
                result.kinds[evaluation.id] = kind
            else:
                leftovers.append(evaluation)

        homework_slots = [k for k in (EvaluationKind.HOMEWORK_1, EvaluationKind.HOMEWORK_2) if k not in filled]
        for evaluation in leftovers:
            category = category_of(evaluation)
            kind = None
            if category == HOMEWORK and homework_slots:
                kind = homework_slots.pop(0)
            elif category == COMPOSITION and EvaluationKind.COMPOSITION not in filled:
                kind = EvaluationKind.COMPOSITION
            if kind is None:
                result.kinds[evaluation.id] = EvaluationKind.UNCLASSIFIED
                continue
            filled[kind] = evaluation.id
            result.kinds[evaluation.id] = kind
            result.fallback_ids.add(evaluation.id)
            logger.warning(
                "Evaluation kind resolved by position",
                extra={
                    "evaluation_id": evaluation.id,
                    "subject_id": subject_id,
                    "term_id": term_id,
                    "label": evaluation.label,
                    "kind": kind.value,
                },
            )
    return result
