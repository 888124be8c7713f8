"""
FO Qualification Engine - Main Orchestrator
===========================================
Sequences the pipeline for one entity:
  Stage 1: Heuristic Firewall → Stage 2: Entity Classification →
  (gate) → Stage 3: FO Match Scoring

Key optimizations:
- The free firewall decides obvious cases without any model call
- Non-FO and low-confidence entities exit before the scoring call
- Batch processing with a worker pool and a shared, locked run reporter
"""

import logging
import threading
import time
from typing import Optional, List, Dict, Any, Iterable
from concurrent.futures import ThreadPoolExecutor

from .models.schemas import (
    BatchRunResult,
    ClassificationResult,
    ClassificationSource,
    CompanyInput,
    CostTag,
    EntitySubtype,
    EntityType,
    FOStatus,
    NON_FO_ENTITY_TYPES,
    PipelineOutcome,
    ScoreResult,
    status_from_score,
)
from .models.fo_config import FOPipelineConfig, create_default_fo_config
from .llm.backends import CompletionBackend, create_backend
from .llm.rate_limit import MinIntervalRateLimiter, RateLimitedBackend
from .reporting.run_reporter import RunReporter
from .stages.stage1_firewall import HeuristicFirewall
from .stages.stage2_classifier import EntityClassifier
from .stages.stage3_scorer import MatchScorer

logger = logging.getLogger(__name__)


class FOQualificationEngine:
    """
    Main engine that orchestrates classification, gating and scoring.
    """

    def __init__(
        self,
        classification_backend: Optional[CompletionBackend] = None,
        scoring_backend: Optional[CompletionBackend] = None,
        config: Optional[FOPipelineConfig] = None,
        firewall: Optional[HeuristicFirewall] = None,
    ):
        """
        Initialize the engine.

        Args:
            classification_backend: Capability used for UNCERTAIN entities
            scoring_backend: Capability used for match scoring
                (defaults to the classification backend)
            config: Pipeline configuration (uses defaults if not provided)
            firewall: Heuristic firewall (default pattern library if omitted)
        """
        self.config = config or create_default_fo_config()

        scoring_backend = scoring_backend or classification_backend
        interval = self.config.call_policy.min_interval_seconds
        if interval > 0:
            # One limiter shared by both stages: the policy spaces all model calls
            limiter = MinIntervalRateLimiter(interval)
            if classification_backend is not None:
                classification_backend = RateLimitedBackend(classification_backend, limiter)
            if scoring_backend is not None:
                scoring_backend = RateLimitedBackend(scoring_backend, limiter)

        self.firewall = firewall or HeuristicFirewall()
        self.classifier = EntityClassifier(
            backend=classification_backend,
            firewall=self.firewall,
            profile_char_limit=self.config.gate.profile_char_limit,
        )
        self.scorer = MatchScorer(
            backend=scoring_backend,
            target_profile=self.config.target_profile,
            profile_char_limit=self.config.gate.profile_char_limit,
        )

        self._stats_lock = threading.Lock()
        self.stats = self._empty_stats()

    def classify_and_score_fo(
        self,
        company_name: str,
        company_profile: str = "",
        domain: str = "",
        geography: str = "",
    ) -> PipelineOutcome:
        """
        Run the two-stage qualification for one entity.

        Args:
            company_name: Company name (required)
            company_profile: Scraped profile text
            domain: Company website domain
            geography: Known location of the entity

        Returns:
            PipelineOutcome

        Raises:
            ValueError: If company_name is missing
        """
        if not company_name or not isinstance(company_name, str):
            raise ValueError("company_name is required")

        # =====================================================================
        # STAGE 1 + 2: Firewall and Entity Classification (hard gate)
        # =====================================================================
        classification = self.classifier.classify(company_name, company_profile, domain)
        self._count("total_processed")
        if classification.source == ClassificationSource.FIREWALL_HEURISTIC:
            self._count("firewall_decided")
        elif classification.cost == CostTag.LLM_CALL:
            self._count("model_calls")

        if classification.entity_type in NON_FO_ENTITY_TYPES:
            return self._rejected(
                company_name,
                classification,
                reason=f"Not a family office: {classification.entity_type.value}",
            )

        if (
            classification.entity_type == EntityType.UNKNOWN
            and classification.confidence < self.config.gate.unknown_min_confidence
        ):
            return self._rejected(
                company_name,
                classification,
                reason=f"Insufficient confidence for FO classification: {classification.confidence}",
            )

        # =====================================================================
        # STAGE 3: FO Match Scoring (soft gate)
        # =====================================================================
        is_sfo = classification.entity_subtype in (EntitySubtype.SFO, EntitySubtype.UNKNOWN)
        score = self.scorer.score(company_name, company_profile, geography, is_sfo)
        if score.cost == CostTag.LLM_CALL:
            self._count("model_calls")

        fo_status = self._derive_status(score)

        return PipelineOutcome(
            company_name=company_name,
            classification=classification,
            score=score,
            recommendation=score.recommendation,
            fo_status=fo_status,
            total_cost=f"{classification.cost.value} + {score.cost.value}",
            combined_confidence=(classification.confidence + score.confidence) / 2,
        )

    def run_batch(
        self,
        companies: Iterable[CompanyInput],
        max_workers: int = 4,
        reporter: Optional[RunReporter] = None,
    ) -> BatchRunResult:
        """
        Qualify many entities and report on the run.

        Args:
            companies: Entities to qualify
            max_workers: Number of parallel workers
            reporter: Reporter to record into (a new one per run if omitted)

        Returns:
            BatchRunResult with outcomes in input order and the run report
        """
        companies = list(companies)
        reporter = reporter or RunReporter()
        start_time = time.time()

        def qualify(company: CompanyInput) -> Optional[PipelineOutcome]:
            try:
                outcome = self.classify_and_score_fo(
                    company.company_name,
                    company.company_text,
                    company.domain,
                    company.geography,
                )
            except Exception as e:
                logger.exception("Pipeline failed for %r", company.company_name)
                reporter.record_processing_failure(company.company_name, f"Processing error: {e}")
                return None

            self.record_outcome(reporter, outcome)
            return outcome

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            results = list(executor.map(qualify, companies))

        outcomes = [r for r in results if r is not None]
        logger.info(
            "Batch complete: %d entities, %d outcomes in %.0fms",
            len(companies),
            len(outcomes),
            (time.time() - start_time) * 1000,
        )
        return BatchRunResult(outcomes=outcomes, report=reporter.finalize())

    def record_outcome(self, reporter: RunReporter, outcome: PipelineOutcome) -> None:
        """Feed one outcome into a run reporter"""
        name = outcome.company_name
        classification = outcome.classification

        if classification.firewall is not None:
            reporter.record_heuristic_check(classification.firewall)
        reporter.record_entity_classification(name, classification)

        if classification.is_error:
            reporter.record_error(name, classification.reason)
        if outcome.score is not None and outcome.score.is_error:
            reporter.record_error(name, f"Scoring failed: {outcome.score.error}")

        calls = outcome.paid_calls
        if calls:
            reporter.record_cost(calls * self.config.call_policy.cost_per_call_usd)

        reporter.record_final_status(
            name,
            outcome.fo_status,
            score=outcome.score.match_score if outcome.score is not None else None,
            confidence=outcome.combined_confidence,
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get engine statistics"""
        stats = self.stats.copy()
        if stats["total_processed"] > 0:
            stats["firewall_decision_rate"] = round(
                stats["firewall_decided"] / stats["total_processed"] * 100, 1
            )
        return stats

    def reset_stats(self):
        """Reset engine statistics"""
        self.stats = self._empty_stats()

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {
            "total_processed": 0,
            "firewall_decided": 0,
            "model_calls": 0,
        }

    def _count(self, key: str) -> None:
        # dict item increments are not atomic across worker threads
        with self._stats_lock:
            self.stats[key] += 1

    def _derive_status(self, score: ScoreResult) -> FOStatus:
        """Model recommendation first, numeric thresholds as fallback"""
        if score.recommendation is not None:
            return score.recommendation
        thresholds = self.config.thresholds
        return status_from_score(
            score.match_score,
            approved_min=thresholds.approved_min,
            review_min=thresholds.review_min,
        )

    @staticmethod
    def _rejected(
        company_name: str,
        classification: ClassificationResult,
        reason: str,
    ) -> PipelineOutcome:
        """Create an outcome for an entity stopped at the gate"""
        return PipelineOutcome(
            company_name=company_name,
            classification=classification,
            score=None,
            recommendation=FOStatus.REJECTED,
            fo_status=FOStatus.REJECTED,
            total_cost=classification.cost.value,
            combined_confidence=classification.confidence,
            reason=reason,
        )


# =============================================================================
# Convenience Functions
# =============================================================================

def create_engine(
    provider: Optional[str] = None,
    api_key: Optional[str] = None,
    scoring_provider: Optional[str] = None,
    target_geographies: Optional[List[str]] = None,
    min_interval_seconds: Optional[float] = None,
) -> FOQualificationEngine:
    """
    Factory function to create an engine backed by configured providers.

    Args:
        provider: Classification provider ("openrouter", "openai", "anthropic")
        api_key: API key for the classification provider
        scoring_provider: Separate provider for scoring (defaults to provider)
        target_geographies: Preferred geographies for the target profile
        min_interval_seconds: Minimum spacing between model calls

    Returns:
        Configured FOQualificationEngine instance
    """
    config = create_default_fo_config(
        target_geographies=target_geographies,
        min_interval_seconds=min_interval_seconds,
    )
    classification_backend = create_backend(provider=provider, api_key=api_key)
    scoring_backend = (
        create_backend(provider=scoring_provider) if scoring_provider else classification_backend
    )
    return FOQualificationEngine(
        classification_backend=classification_backend,
        scoring_backend=scoring_backend,
        config=config,
    )


def classify_and_score_fo(
    company_name: str,
    company_profile: str = "",
    domain: str = "",
    geography: str = "",
    backend: Optional[CompletionBackend] = None,
) -> PipelineOutcome:
    """
    Quick qualification of a single entity with default configuration.
    """
    engine = FOQualificationEngine(classification_backend=backend)
    return engine.classify_and_score_fo(company_name, company_profile, domain, geography)
