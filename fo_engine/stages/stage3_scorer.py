"""
Stage 3: FO Match Scoring
=========================
Rates a classified family office against the target profile (ICP).
Only runs for entities that pass the classification gate.
"""

import logging
from typing import Optional

from ..models.schemas import (
    ClassificationSource,
    CostTag,
    FOStatus,
    ScoreResult,
)
from ..models.fo_config import TargetProfile
from ..config.settings import DEFAULT_GATE
from ..llm.backends import CompletionBackend
from ..llm.parsing import as_str_list, parse_structured_response

logger = logging.getLogger(__name__)


class MatchScorer:
    """
    Stage 3: Score family office fit using the scoring model.
    Never raises on model or parse failure.
    """

    def __init__(
        self,
        backend: Optional[CompletionBackend] = None,
        target_profile: Optional[TargetProfile] = None,
        profile_char_limit: int = DEFAULT_GATE["profile_char_limit"],
    ):
        self.backend = backend
        self.target_profile = target_profile or TargetProfile()
        self.profile_char_limit = profile_char_limit

    def score(
        self,
        company_name: str,
        company_profile: str = "",
        geography: str = "",
        is_sfo: Optional[bool] = None,
    ) -> ScoreResult:
        """
        Score one entity.

        Args:
            company_name: Company name
            company_profile: Profile text
            geography: Known location of the entity
            is_sfo: Presumed single family office (None: unknown)

        Returns:
            ScoreResult (source fo_match_scorer or error)
        """
        try:
            if self.backend is None:
                raise RuntimeError("No scoring backend configured")

            prompt = self.build_prompt(company_name, company_profile, geography, is_sfo)
            response = self.backend.complete(prompt)

            parsed = parse_structured_response(response)
            if not parsed.ok:
                raise ValueError(parsed.error)

            data = parsed.data
            return ScoreResult(
                match_score=data.get("match_score", 0),
                confidence=data.get("confidence", 0.0),
                fit_reasons=as_str_list(data.get("fit_reasons")),
                geo_match=data.get("geo_match", False),
                asset_focus=as_str_list(data.get("asset_focus")),
                capital_indicators=as_str_list(data.get("capital_indicators")),
                recommendation=data.get("recommendation"),
                source=ClassificationSource.FO_MATCH_SCORER,
                cost=CostTag.LLM_CALL,
            )

        except Exception as e:
            logger.warning("FO match scoring error for %r: %s", company_name, e)
            return ScoreResult(
                match_score=0,
                confidence=0.0,
                fit_reasons=[],
                geo_match=False,
                asset_focus=[],
                capital_indicators=[],
                recommendation=FOStatus.REJECTED,
                source=ClassificationSource.ERROR,
                cost=CostTag.ERROR,
                error=str(e),
            )

    def build_prompt(
        self,
        company_name: str,
        company_profile: str = "",
        geography: str = "",
        is_sfo: Optional[bool] = None,
    ) -> str:
        """Generate the scoring prompt with target profile context"""
        target = self.target_profile
        if is_sfo is None:
            presumed = "Unknown"
        elif is_sfo:
            presumed = "Single Family Office"
        else:
            presumed = "Multi-Family Office"

        preferred_geo = ", ".join(target.preferred_geographies) if target.preferred_geographies else "Any"
        profile = (company_profile or "")[: self.profile_char_limit]

        return f"""
You are a specialist in family office investment matching.
Evaluate this family office's fit for the target profile below.

TARGET PROFILE ({target.name}):
- Description: {target.description}
- Preferred Geographies: {preferred_geo}
- Asset Focus: {', '.join(target.asset_focus) or 'Any'}
- Capital Evidence Sought: {', '.join(target.capital_evidence) or 'Any'}

CANDIDATE:
Company: {company_name}
Profile: {profile}
Geography: {geography or 'Unknown'}
Presumed Type: {presumed}

Output ONLY valid JSON:
{{
    "match_score": 0-10,
    "confidence": 0.0-1.0,
    "fit_reasons": ["reason1", "reason2"],
    "geo_match": true|false,
    "asset_focus": ["real_estate", "venture", "credit", "infra", "mixed"],
    "capital_indicators": ["principal capital", "direct investment", "portfolio company", "acquisition"],
    "recommendation": "APPROVED|REVIEW|REJECTED"
}}

SCORING RULES FOR FAMILY OFFICES:
- FOs get credit for ANY signals of proprietary capital deployment
- Minimal profile is acceptable (many FOs are private)
- Score on: geo match, asset alignment, capital evidence

Approved: score >= 6
Review: score 4-5
Rejected: score <= 3
"""


def score_fo_match(
    company_name: str,
    company_profile: str = "",
    geography: str = "",
    is_sfo: Optional[bool] = None,
    backend: Optional[CompletionBackend] = None,
) -> ScoreResult:
    """One-shot scoring with the default target profile"""
    return MatchScorer(backend=backend).score(company_name, company_profile, geography, is_sfo)
