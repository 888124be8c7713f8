"""
FO Run Reporter
===============
Batch-scoped accumulator for qualification runs: counts per firewall and
classification branch, final dispositions, cost and quality metrics.

One reporter per run. Every ``record_*`` call is serialised by a lock so a
worker pool can share it; nothing is ever removed or re-derived, each event
updates its counters exactly once.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.schemas import (
    ClassificationResult,
    ClassificationDistribution,
    ClassificationSource,
    CostAnalysis,
    EntityError,
    EntitySummary,
    EntityType,
    FirewallDecision,
    FirewallVerdict,
    FOStatus,
    HeuristicAnalysis,
    QualificationResults,
    QualityMetrics,
    RunReport,
    RunSummary,
)
from ..config.settings import REPORT_LIMITS

logger = logging.getLogger(__name__)


class RunStats(BaseModel):
    """Monotonic counters and running sums for one run"""
    total_discovered: int = 0
    heuristics_rejected_as_wealth: int = 0
    heuristics_rejected_as_fund: int = 0
    heuristics_passed: int = 0
    heuristics_uncertain: int = 0
    classified: Dict[str, int] = Field(
        default_factory=lambda: {entity_type.value: 0 for entity_type in EntityType}
    )
    classified_by_llm: int = 0
    approved_count: int = 0
    review_count: int = 0
    rejected_count: int = 0
    total_cost_usd: float = 0.0
    confidence_sum: float = 0.0
    confidence_count: int = 0
    match_score_sum: float = 0.0
    match_score_count: int = 0
    error_count: int = 0
    failed_count: int = 0

    @property
    def attempted_count(self) -> int:
        """Entities that reached the pipeline, including ones that crashed"""
        return self.total_discovered + self.failed_count

    @property
    def final_count(self) -> int:
        return self.approved_count + self.review_count + self.rejected_count

    @property
    def avg_confidence(self) -> float:
        return self.confidence_sum / self.confidence_count if self.confidence_count else 0.0

    @property
    def avg_match_score(self) -> float:
        return self.match_score_sum / self.match_score_count if self.match_score_count else 0.0


class RunDetails(BaseModel):
    """Per-entity history for one run"""
    approved: List[EntitySummary] = Field(default_factory=list)
    review: List[EntitySummary] = Field(default_factory=list)
    rejected: List[EntitySummary] = Field(default_factory=list)
    errors: List[EntityError] = Field(default_factory=list)


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


class RunReporter:
    """
    Accumulate per-entity pipeline events and render an end-of-run report.
    """

    def __init__(self, clock=time.monotonic):
        self.stats = RunStats()
        self.details = RunDetails()
        self._clock = clock
        self._start = clock()
        self._lock = threading.Lock()

    # =========================================================================
    # Recording
    # =========================================================================

    def record_heuristic_check(self, decision: FirewallDecision) -> None:
        """Count one entity against the firewall branch it took"""
        with self._lock:
            self.stats.total_discovered += 1
            if decision.decision == FirewallVerdict.REJECT:
                if decision.entity_type == EntityType.INVESTMENT_FUND:
                    self.stats.heuristics_rejected_as_fund += 1
                else:
                    self.stats.heuristics_rejected_as_wealth += 1
            elif decision.decision == FirewallVerdict.PASS:
                self.stats.heuristics_passed += 1
            else:
                self.stats.heuristics_uncertain += 1

    def record_entity_classification(self, company_name: str, classification: ClassificationResult) -> None:
        """Count one classification in the type distribution"""
        with self._lock:
            self.stats.classified[classification.entity_type.value] += 1
            if classification.source == ClassificationSource.LLM_CLASSIFICATION:
                self.stats.classified_by_llm += 1

    def record_final_status(
        self,
        company_name: str,
        fo_status: FOStatus,
        score: Optional[float] = None,
        confidence: Optional[float] = None,
    ) -> None:
        """Record an entity's final disposition"""
        summary = EntitySummary(company_name=company_name, score=score, confidence=confidence)
        with self._lock:
            if fo_status == FOStatus.APPROVED:
                self.stats.approved_count += 1
                self.details.approved.append(summary)
            elif fo_status == FOStatus.REVIEW:
                self.stats.review_count += 1
                self.details.review.append(summary)
            else:
                self.stats.rejected_count += 1
                self.details.rejected.append(summary)

            if score is not None:
                self.stats.match_score_sum += score
                self.stats.match_score_count += 1
            if confidence is not None:
                self.stats.confidence_sum += confidence
                self.stats.confidence_count += 1

    def record_error(self, company: str, error: str) -> None:
        with self._lock:
            self.stats.error_count += 1
            self.details.errors.append(EntityError(company=company, error=str(error)))
        logger.info("Recorded error for %s: %s", company, error)

    def record_processing_failure(self, company: str, error: str) -> None:
        """Record an entity whose pipeline run raised before any stage result"""
        with self._lock:
            self.stats.failed_count += 1
            self.stats.error_count += 1
            self.details.errors.append(EntityError(company=company, error=str(error)))
        logger.info("Recorded processing failure for %s: %s", company, error)

    def record_cost(self, usd: float) -> None:
        """Add spend to the running total"""
        if usd < 0:
            raise ValueError(f"Cost must be non-negative, got {usd}")
        with self._lock:
            self.stats.total_cost_usd += usd

    # =========================================================================
    # Snapshots
    # =========================================================================

    def finalize(self) -> RunReport:
        """Produce an immutable snapshot of the run so far"""
        with self._lock:
            stats = self.stats.model_copy(deep=True)
            details = self.details.model_copy(deep=True)
            duration = self._clock() - self._start

        total = stats.total_discovered
        final = stats.final_count
        firewall_rejected = stats.heuristics_rejected_as_wealth + stats.heuristics_rejected_as_fund

        top_approved = sorted(
            details.approved,
            key=lambda s: (s.score if s.score is not None else -1.0,
                           s.confidence if s.confidence is not None else -1.0),
            reverse=True,
        )

        summary = RunSummary(
            total_discovered=total,
            heuristic_analysis=HeuristicAnalysis(
                rejected_wealth_managers=stats.heuristics_rejected_as_wealth,
                rejected_investment_funds=stats.heuristics_rejected_as_fund,
                passed_firewall=stats.heuristics_passed,
                uncertain_requiring_llm=stats.heuristics_uncertain,
                firewall_efficiency=_ratio(firewall_rejected, total),
            ),
            classification=ClassificationDistribution(
                classified_by_llm=stats.classified_by_llm,
                counts=dict(stats.classified),
            ),
            qualification_results=QualificationResults(
                approved=stats.approved_count,
                review=stats.review_count,
                rejected=stats.rejected_count,
                approval_rate=_ratio(stats.approved_count, final),
            ),
            quality_metrics=QualityMetrics(
                avg_confidence=stats.avg_confidence,
                avg_match_score=stats.avg_match_score,
                scored_entities=stats.match_score_count,
                total_errors=stats.error_count,
                failed_entities=stats.failed_count,
                error_rate=_ratio(stats.error_count, stats.attempted_count),
            ),
            cost_analysis=CostAnalysis(
                total_cost_usd=stats.total_cost_usd,
                cost_per_discovery=_ratio(stats.total_cost_usd, total),
                cost_per_approved=(
                    stats.total_cost_usd / stats.approved_count if stats.approved_count else None
                ),
            ),
        )

        return RunReport(
            timestamp=datetime.now(timezone.utc),
            duration_seconds=duration,
            summary=summary,
            top_approved=top_approved[: REPORT_LIMITS["top_approved"]],
            top_review=details.review[: REPORT_LIMITS["top_review"]],
            errors=details.errors[: REPORT_LIMITS["errors"]],
        )

    def to_dict(self) -> Dict[str, Any]:
        """Raw stats and details for archiving"""
        with self._lock:
            return {
                "stats": self.stats.model_dump(),
                "details": self.details.model_dump(),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }

    def to_markdown(self) -> str:
        """Render ``finalize()`` as a human-readable report"""
        return render_markdown(self.finalize())


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


def _num(value: Optional[float], fmt: str = ".2f") -> str:
    return "n/a" if value is None else format(value, fmt)


def render_markdown(report: RunReport) -> str:
    """Format a RunReport; no state beyond the snapshot is consulted"""
    s = report.summary
    heuristics = s.heuristic_analysis
    results = s.qualification_results
    quality = s.quality_metrics
    cost = s.cost_analysis
    counts = s.classification.counts

    lines = [
        "# Family Office Run Report",
        f"**Generated:** {report.timestamp.isoformat()}",
        f"**Duration:** {report.duration_seconds:.1f}s",
        "",
        "## Summary",
        f"- **Total Discovered:** {s.total_discovered}",
        f"- **Approved:** {results.approved} ({_pct(results.approval_rate)})",
        f"- **Under Review:** {results.review}",
        f"- **Rejected:** {results.rejected}",
        "",
        "## Firewall Efficiency",
        f"- **Rejected Before LLM:** {_pct(heuristics.firewall_efficiency)}",
        f"  - Wealth Managers: {heuristics.rejected_wealth_managers}",
        f"  - Investment Funds: {heuristics.rejected_investment_funds}",
        f"- **Passed Firewall:** {heuristics.passed_firewall}",
        f"- **Uncertain (LLM required):** {heuristics.uncertain_requiring_llm}",
        "",
        "## Classification",
        f"- **Classified by LLM:** {s.classification.classified_by_llm}",
        f"- **Family Offices:** {counts.get(EntityType.FAMILY_OFFICE.value, 0)}",
        f"- **Wealth Managers:** {counts.get(EntityType.WEALTH_MANAGER.value, 0)}",
        f"- **Investment Funds:** {counts.get(EntityType.INVESTMENT_FUND.value, 0)}",
        f"- **Operators:** {counts.get(EntityType.OPERATOR.value, 0)}",
        f"- **REITs:** {counts.get(EntityType.REIT.value, 0)}",
        f"- **Service Providers:** {counts.get(EntityType.SERVICE_PROVIDER.value, 0)}",
        f"- **Unknown:** {counts.get(EntityType.UNKNOWN.value, 0)}",
        "",
        "## Quality Metrics",
        f"- **Avg Confidence:** {quality.avg_confidence:.2f}",
        f"- **Avg Match Score:** {quality.avg_match_score:.2f}/10",
        f"- **Error Rate:** {_pct(quality.error_rate)}",
        f"- **Failed Entities:** {quality.failed_entities}",
        "",
        "## Cost Analysis",
        f"- **Total Cost:** ${cost.total_cost_usd:.2f}",
        f"- **Cost/Discovery:** ${cost.cost_per_discovery:.4f}",
        "- **Cost/Approved FO:** " + (f"${cost.cost_per_approved:.4f}" if cost.cost_per_approved is not None else "N/A"),
        "",
    ]

    if report.top_approved:
        lines.append("## Top Approved Family Offices")
        for i, fo in enumerate(report.top_approved, 1):
            lines.append(
                f"{i}. {fo.company_name} (Confidence: {_num(fo.confidence)}, Score: {_num(fo.score, '.1f')})"
            )
        lines.append("")

    if report.top_review:
        lines.append("## Under Review")
        for i, fo in enumerate(report.top_review, 1):
            lines.append(
                f"{i}. {fo.company_name} (Confidence: {_num(fo.confidence)}, Score: {_num(fo.score, '.1f')})"
            )
        lines.append("")

    if report.errors:
        lines.append("## Recent Errors")
        for i, err in enumerate(report.errors, 1):
            lines.append(f"{i}. {err.company}: {err.error}")
        lines.append("")

    return "\n".join(lines)
