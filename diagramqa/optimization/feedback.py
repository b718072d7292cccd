from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from diagramqa.memory.bank import MemoryBank
from diagramqa.quality.scoring import composite_objective
from diagramqa.utils.types import AuditResult, DiagramQualityMetrics, SuccessfulLayout

logger = logging.getLogger(__name__)


def identify_issues(metrics: DiagramQualityMetrics) -> List[str]:
    """Issues worth fixing next, most severe first."""
    issues: List[str] = []
    if metrics.grade == "F":
        issues.append(f"CRITICAL: Grade F (weighted score {metrics.weighted_score:.1f})")
    if metrics.parent_child_containment:
        issues.append(
            f"CRITICAL: {len(metrics.parent_child_containment)} child node(s) outside their parent bounds"
        )
    if metrics.overlapping_nodes:
        issues.append(f"HIGH: {len(metrics.overlapping_nodes)} overlapping node pair(s)")
    if metrics.edge_crossings > 20:
        issues.append(f"MEDIUM: {metrics.edge_crossings} edge crossings")
    if len(metrics.spacing_violations) > 5:
        issues.append(f"MEDIUM: {len(metrics.spacing_violations)} spacing violations")
    if metrics.edge_label_overlaps:
        issues.append(f"LOW: {metrics.edge_label_overlaps} edge label overlap(s)")
    if metrics.clipped_node_labels:
        issues.append(f"LOW: {metrics.clipped_node_labels} clipped node label(s)")
    return issues


@dataclass
class OptimizationIteration:
    iteration: int
    timestamp: str
    prompt: str
    score: float
    objective: float
    grade: str
    issues: List[str] = field(default_factory=list)
    score_delta: Optional[float] = None
    promoted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class FeedbackLoop:
    """Bookkeeping for an external generate/audit loop.

    Each ``record`` call logs one iteration and promotes layouts that score at
    or above ``promote_threshold`` into the memory bank.
    """

    def __init__(
        self,
        memory_bank: MemoryBank,
        log_path: Optional[Path] = None,
        promote_threshold: float = 0.95,
    ) -> None:
        self.memory_bank = memory_bank
        self.log_path = Path(log_path) if log_path is not None else None
        self.promote_threshold = promote_threshold
        self._iterations: List[OptimizationIteration] = []

    def record(
        self,
        prompt: str,
        diagram: Dict[str, Any],
        audit_result: AuditResult,
        category: Optional[str] = None,
    ) -> OptimizationIteration:
        previous = self._iterations[-1] if self._iterations else None
        metrics = audit_result.metrics

        promoted = False
        if audit_result.score >= self.promote_threshold:
            promoted = self.memory_bank.add_layout(
                SuccessfulLayout(prompt=prompt, json=diagram, score=audit_result.score, category=category)
            )

        iteration = OptimizationIteration(
            iteration=len(self._iterations) + 1,
            timestamp=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            prompt=prompt,
            score=audit_result.score,
            objective=composite_objective(metrics),
            grade=metrics.grade,
            issues=identify_issues(metrics),
            score_delta=None if previous is None else audit_result.score - previous.score,
            promoted=promoted,
        )
        self._iterations.append(iteration)
        logger.info(
            "Iteration %d: score=%.3f objective=%.1f promoted=%s",
            iteration.iteration,
            iteration.score,
            iteration.objective,
            promoted,
        )

        if self.log_path is not None:
            self._write_log(self.log_path)
        return iteration

    def _write_log(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "updated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "iterations": [item.to_dict() for item in self._iterations],
        }
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def best(self) -> Optional[OptimizationIteration]:
        if not self._iterations:
            return None
        return max(self._iterations, key=lambda item: item.objective)

    def history(self) -> List[OptimizationIteration]:
        return list(self._iterations)
