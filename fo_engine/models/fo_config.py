"""
FO Pipeline Configuration Models
"""

from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime, timezone
import uuid

from ..config.settings import (
    DEFAULT_GATE,
    DEFAULT_SCORE_THRESHOLDS,
    LLM_CONFIG,
)


class TargetProfile(BaseModel):
    """Ideal Customer Profile the match scorer rates entities against"""
    name: str = "Real Estate Co-Investment Partner"
    description: str = (
        "Family offices that deploy proprietary capital into direct "
        "real estate investments or co-investment partnerships."
    )
    preferred_geographies: List[str] = Field(default_factory=list)
    asset_focus: List[str] = Field(default_factory=lambda: ["real_estate"])
    capital_evidence: List[str] = Field(
        default_factory=lambda: [
            "principal capital",
            "direct investment",
            "portfolio company",
            "acquisition",
        ]
    )


class GateConfig(BaseModel):
    """Gate between classification and scoring"""
    unknown_min_confidence: float = Field(DEFAULT_GATE["unknown_min_confidence"], ge=0.0, le=1.0)
    profile_char_limit: int = Field(DEFAULT_GATE["profile_char_limit"], gt=0)


class ScoreThresholds(BaseModel):
    """Numeric fallback when the scorer gives no recommendation"""
    approved_min: int = Field(DEFAULT_SCORE_THRESHOLDS["approved_min"], ge=0, le=10)
    review_min: int = Field(DEFAULT_SCORE_THRESHOLDS["review_min"], ge=0, le=10)


class CallPolicy(BaseModel):
    """Spacing and accounting of model calls"""
    min_interval_seconds: float = Field(LLM_CONFIG["min_interval_seconds"], ge=0.0)
    cost_per_call_usd: float = Field(LLM_CONFIG["cost_per_call_usd"], ge=0.0)


class FOPipelineConfig(BaseModel):
    """Complete pipeline configuration"""
    config_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "Default FO Pipeline"
    description: Optional[str] = None

    target_profile: TargetProfile = Field(default_factory=TargetProfile)
    gate: GateConfig = Field(default_factory=GateConfig)
    thresholds: ScoreThresholds = Field(default_factory=ScoreThresholds)
    call_policy: CallPolicy = Field(default_factory=CallPolicy)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def create_default_fo_config(
    target_geographies: Optional[List[str]] = None,
    asset_focus: Optional[List[str]] = None,
    min_interval_seconds: Optional[float] = None,
) -> FOPipelineConfig:
    """
    Factory function to create a pipeline config with sensible defaults
    """
    config = FOPipelineConfig()

    if target_geographies:
        config.target_profile.preferred_geographies = target_geographies

    if asset_focus:
        config.target_profile.asset_focus = asset_focus

    if min_interval_seconds is not None:
        config.call_policy.min_interval_seconds = min_interval_seconds

    return config
