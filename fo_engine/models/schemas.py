"""
Pydantic schemas for FO Qualification Engine
"""

from enum import Enum
from typing import List, Dict, Optional, Any, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime

from ..config.settings import DEFAULT_SCORE_THRESHOLDS

# =============================================================================
# ENUMS
# =============================================================================

class FirewallVerdict(str, Enum):
    """Heuristic firewall decision"""
    REJECT = "REJECT"
    PASS = "PASS"
    UNCERTAIN = "UNCERTAIN"


class EntityType(str, Enum):
    """Classification of a prospective entity"""
    FAMILY_OFFICE = "FAMILY_OFFICE"
    WEALTH_MANAGER = "WEALTH_MANAGER"
    INVESTMENT_FUND = "INVESTMENT_FUND"
    OPERATOR = "OPERATOR"
    REIT = "REIT"
    SERVICE_PROVIDER = "SERVICE_PROVIDER"
    UNKNOWN = "UNKNOWN"


class EntitySubtype(str, Enum):
    """Finer-grained entity classification"""
    SFO = "SFO"
    MFO = "MFO"
    FAMILY_CAPITAL = "FAMILY_CAPITAL"
    RIA = "RIA"
    PRIVATE_EQUITY = "PRIVATE_EQUITY"
    PENSION = "PENSION"
    SOVEREIGN = "SOVEREIGN"
    UNKNOWN = "UNKNOWN"


class ClassificationSource(str, Enum):
    """Which stage produced a result"""
    FIREWALL_HEURISTIC = "firewall_heuristic"
    LLM_CLASSIFICATION = "llm_classification"
    FO_MATCH_SCORER = "fo_match_scorer"
    ERROR = "error"


class CostTag(str, Enum):
    """What a stage cost to produce"""
    FREE = "free"
    LLM_REQUIRED = "llm_required"
    LLM_CALL = "gemini_call"
    ERROR = "error"


class FOStatus(str, Enum):
    """Final disposition (also used for a score's recommendation)"""
    APPROVED = "APPROVED"
    REVIEW = "REVIEW"
    REJECTED = "REJECTED"


# Concrete types the gate rejects without scoring
NON_FO_ENTITY_TYPES = frozenset({
    EntityType.WEALTH_MANAGER,
    EntityType.INVESTMENT_FUND,
    EntityType.OPERATOR,
    EntityType.REIT,
    EntityType.SERVICE_PROVIDER,
})


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _as_number(value: Any) -> float:
    """Coerce a model-supplied number; anything unparseable (or NaN) is 0.0"""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if number != number else number


# =============================================================================
# INPUT SCHEMAS
# =============================================================================

class CompanyInput(BaseModel):
    """One entity to qualify (supplied by the scraping layer)"""
    company_name: str
    company_text: str = ""
    domain: str = ""
    geography: str = ""


# =============================================================================
# STAGE RESULT SCHEMAS
# =============================================================================

class FirewallDecision(BaseModel):
    """Result from Stage 1: Heuristic Firewall"""
    model_config = ConfigDict(frozen=True)

    decision: FirewallVerdict
    entity_type: EntityType
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str
    cost: CostTag = CostTag.FREE
    signals: Tuple[str, ...] = ()


class ClassificationResult(BaseModel):
    """Result from Stage 2: Entity Classification"""
    model_config = ConfigDict(frozen=True)

    entity_type: EntityType = EntityType.UNKNOWN
    entity_subtype: EntitySubtype = EntitySubtype.UNKNOWN
    confidence: float = 0.0
    signals_positive: List[str] = Field(default_factory=list)
    signals_negative: List[str] = Field(default_factory=list)
    reason: str = ""
    source: ClassificationSource
    cost: CostTag
    firewall: Optional[FirewallDecision] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _bound_confidence(cls, value: Any) -> float:
        return _clamp(_as_number(value), 0.0, 1.0)

    @property
    def is_error(self) -> bool:
        return self.source == ClassificationSource.ERROR


class ScoreResult(BaseModel):
    """Result from Stage 3: FO Match Scoring"""
    model_config = ConfigDict(frozen=True)

    match_score: int = 0
    confidence: float = 0.0
    fit_reasons: List[str] = Field(default_factory=list)
    geo_match: bool = False
    asset_focus: List[str] = Field(default_factory=list)
    capital_indicators: List[str] = Field(default_factory=list)
    recommendation: Optional[FOStatus] = None
    source: ClassificationSource = ClassificationSource.FO_MATCH_SCORER
    cost: CostTag = CostTag.LLM_CALL
    error: Optional[str] = None

    @field_validator("match_score", mode="before")
    @classmethod
    def _bound_score(cls, value: Any) -> int:
        return int(round(_clamp(_as_number(value), 0, 10)))

    @field_validator("confidence", mode="before")
    @classmethod
    def _bound_confidence(cls, value: Any) -> float:
        return _clamp(_as_number(value), 0.0, 1.0)

    @field_validator("geo_match", mode="before")
    @classmethod
    def _truthy_geo_match(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "1")
        return bool(value)

    @field_validator("recommendation", mode="before")
    @classmethod
    def _known_recommendation(cls, value: Any) -> Optional[str]:
        # Unrecognised labels fall back to the numeric thresholds
        if isinstance(value, FOStatus):
            return value
        if isinstance(value, str) and value.strip().upper() in FOStatus.__members__:
            return value.strip().upper()
        return None

    @property
    def is_error(self) -> bool:
        return self.source == ClassificationSource.ERROR

    @property
    def threshold_recommendation(self) -> FOStatus:
        """Deterministic status from the numeric score alone"""
        return status_from_score(
            self.match_score,
            approved_min=DEFAULT_SCORE_THRESHOLDS["approved_min"],
            review_min=DEFAULT_SCORE_THRESHOLDS["review_min"],
        )


def status_from_score(match_score: int, approved_min: int = 6, review_min: int = 4) -> FOStatus:
    """Map a 0-10 match score onto APPROVED / REVIEW / REJECTED"""
    if match_score >= approved_min:
        return FOStatus.APPROVED
    if match_score >= review_min:
        return FOStatus.REVIEW
    return FOStatus.REJECTED


# =============================================================================
# UNIFIED OUTPUT SCHEMA
# =============================================================================

class PipelineOutcome(BaseModel):
    """Terminal result of the classify-and-score pipeline for one entity"""
    model_config = ConfigDict(frozen=True)

    company_name: str
    classification: ClassificationResult
    score: Optional[ScoreResult] = None
    recommendation: Optional[FOStatus] = None
    fo_status: FOStatus
    total_cost: str
    combined_confidence: float = Field(ge=0.0, le=1.0)
    reason: Optional[str] = None

    @property
    def paid_calls(self) -> int:
        """Number of paid completion calls this outcome consumed"""
        calls = int(self.classification.cost == CostTag.LLM_CALL)
        if self.score is not None and self.score.cost == CostTag.LLM_CALL:
            calls += 1
        return calls


# =============================================================================
# RUN REPORT SCHEMAS
# =============================================================================

class EntitySummary(BaseModel):
    """Per-entity line kept by the run reporter"""
    model_config = ConfigDict(frozen=True)

    company_name: str
    score: Optional[float] = None
    confidence: Optional[float] = None


class EntityError(BaseModel):
    """Error recorded against an entity"""
    model_config = ConfigDict(frozen=True)

    company: str
    error: str


class HeuristicAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    rejected_wealth_managers: int
    rejected_investment_funds: int
    passed_firewall: int
    uncertain_requiring_llm: int
    firewall_efficiency: float


class ClassificationDistribution(BaseModel):
    model_config = ConfigDict(frozen=True)

    classified_by_llm: int
    counts: Dict[str, int]


class QualificationResults(BaseModel):
    model_config = ConfigDict(frozen=True)

    approved: int
    review: int
    rejected: int
    approval_rate: float


class QualityMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    avg_confidence: float
    avg_match_score: float
    scored_entities: int
    total_errors: int
    failed_entities: int = 0
    error_rate: float


class CostAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_cost_usd: float
    cost_per_discovery: float
    cost_per_approved: Optional[float] = None


class RunSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_discovered: int
    heuristic_analysis: HeuristicAnalysis
    classification: ClassificationDistribution
    qualification_results: QualificationResults
    quality_metrics: QualityMetrics
    cost_analysis: CostAnalysis


class RunReport(BaseModel):
    """Read-only snapshot produced at the end of a run"""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    duration_seconds: float
    summary: RunSummary
    top_approved: List[EntitySummary] = Field(default_factory=list)
    top_review: List[EntitySummary] = Field(default_factory=list)
    errors: List[EntityError] = Field(default_factory=list)


class BatchRunResult(BaseModel):
    """Outcomes of a batch run plus its report"""
    outcomes: List[PipelineOutcome]
    report: RunReport


# =============================================================================
# API REQUEST SCHEMAS
# =============================================================================

class QualifyRequest(CompanyInput):
    """Request to qualify a single entity"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "company_name": "Smith Family Office",
                "company_text": "The Smith Family Office invests proprietary capital "
                                "directly in real estate.",
                "domain": "smithfamilyoffice.com",
                "geography": "Texas",
            }
        }
    )


class BatchQualifyRequest(BaseModel):
    """Request to qualify multiple entities"""
    companies: List[CompanyInput]
    max_workers: int = Field(4, ge=1, le=32)
    include_markdown: bool = False
