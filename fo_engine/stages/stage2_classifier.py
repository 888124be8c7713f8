"""
Stage 2: Entity Classification
==============================
Hard entity-type gate. Runs the free firewall first and only escalates to
the classification model for entities the firewall marks UNCERTAIN.
"""

import logging
from typing import Any, Optional, Tuple

from ..models.schemas import (
    ClassificationResult,
    ClassificationSource,
    CostTag,
    EntitySubtype,
    EntityType,
    FirewallDecision,
    FirewallVerdict,
)
from ..config.settings import COMBINED_ENTITY_LABELS, DEFAULT_GATE
from ..llm.backends import CompletionBackend
from ..llm.parsing import as_str_list, parse_structured_response
from .stage1_firewall import HeuristicFirewall

logger = logging.getLogger(__name__)


ENTITY_CLASSIFICATION_RULES = """
You are a strict entity classifier for real estate investment discovery.
Analyze the company information and output ONLY valid JSON matching this schema:

{
    "entity_type": "FAMILY_OFFICE|WEALTH_MANAGER|INVESTMENT_FUND|OPERATOR|REIT|SERVICE_PROVIDER|UNKNOWN",
    "entity_subtype": "SFO|MFO|FAMILY_CAPITAL|RIA|PRIVATE_EQUITY|PENSION|SOVEREIGN|UNKNOWN",
    "confidence": 0.0-1.0,
    "signals_positive": ["signal1", "signal2"],
    "signals_negative": ["signal1", "signal2"],
    "reason": "Explanation"
}

STRICT CLASSIFICATION RULES:

1. FAMILY_OFFICE / SFO:
   - Single Family Office.
   - Signals: "family office for the X family", "investing the capital of the X family".

2. FAMILY_OFFICE / MFO:
   - Multi-Family Office acting as a PRINCIPAL INVESTOR.
   - Signals: "direct investments", "principal capital", "co-invest", "balance sheet".
   - MUST show evidence of investing OWN/PARTNERS' money, not just managing client accounts.

3. FAMILY_OFFICE / FAMILY_CAPITAL:
   - Holding company or investment office that invests proprietary capital
     without strictly saying "family office".
   - Signals: "private investment office", "family capital", "generational capital", "holding company".

4. WEALTH_MANAGER / MFO:
   - Calls itself "Multi-Family Office" but is effectively a wealth manager.
   - Signals: "comprehensive wealth solutions", "legacy planning", "trust services", "fiduciary",
     "serving HNW families". CTA: "Become a client".

5. WEALTH_MANAGER / RIA:
   - Standard RIA or financial planner.
   - Signals: "financial planning", "retirement", "client portal", "AUM for clients".

6. INVESTMENT_FUND (PRIVATE_EQUITY, PENSION, SOVEREIGN):
   - PE firm or fund manager raising third-party LP capital, pension plans, sovereign funds.
   - Signals: "Fund I", "Fund II", "Investors Login", "Capital Raising".

7. OPERATOR: operating company, developer or property manager.
8. REIT: real estate investment trust.
9. SERVICE_PROVIDER: consultants, OCIOs, software, legal, fund administration.

OUTPUT RULES:
- Output ONLY the JSON object.
- Use "signals_positive" for evidence of PROPRIETARY/DIRECT investment.
- Use "signals_negative" for evidence of ADVISORY/SERVICE model.
"""


class EntityClassifier:
    """
    Stage 2: Classify an entity, escalating to the model only when needed.
    Never raises on model or parse failure.
    """

    def __init__(
        self,
        backend: Optional[CompletionBackend] = None,
        firewall: Optional[HeuristicFirewall] = None,
        profile_char_limit: int = DEFAULT_GATE["profile_char_limit"],
    ):
        """
        Args:
            backend: Classification capability (None: UNCERTAIN entities become errors)
            firewall: Heuristic firewall (default pattern library if omitted)
            profile_char_limit: Max profile characters embedded in the prompt
        """
        self.backend = backend
        self.firewall = firewall or HeuristicFirewall()
        self.profile_char_limit = profile_char_limit

    def classify(
        self,
        company_name: str,
        company_text: str = "",
        domain: str = "",
    ) -> ClassificationResult:
        """
        Classify an entity.

        Args:
            company_name: Company name
            company_text: Scraped profile text
            domain: Company website domain

        Returns:
            ClassificationResult (source firewall_heuristic, llm_classification or error)
        """
        firewall = self.firewall.process(company_name, company_text, domain)

        if firewall.decision == FirewallVerdict.REJECT:
            return ClassificationResult(
                entity_type=firewall.entity_type,
                entity_subtype=EntitySubtype.UNKNOWN,
                confidence=firewall.confidence,
                signals_positive=[],
                signals_negative=[firewall.reason],
                reason=firewall.reason,
                source=ClassificationSource.FIREWALL_HEURISTIC,
                cost=CostTag.FREE,
                firewall=firewall,
            )

        if firewall.decision == FirewallVerdict.PASS:
            return ClassificationResult(
                entity_type=EntityType.FAMILY_OFFICE,
                entity_subtype=EntitySubtype.UNKNOWN,
                confidence=firewall.confidence,
                signals_positive=list(firewall.signals),
                signals_negative=[],
                reason=firewall.reason,
                source=ClassificationSource.FIREWALL_HEURISTIC,
                cost=CostTag.FREE,
                firewall=firewall,
            )

        return self._classify_with_model(company_name, company_text, domain, firewall)

    def _classify_with_model(
        self,
        company_name: str,
        company_text: str,
        domain: str,
        firewall: FirewallDecision,
    ) -> ClassificationResult:
        """Escalate an UNCERTAIN entity to the classification model"""
        try:
            if self.backend is None:
                raise RuntimeError("No classification backend configured")

            prompt = self.build_prompt(company_name, company_text, domain)
            response = self.backend.complete(prompt)

            parsed = parse_structured_response(response)
            if not parsed.ok:
                raise ValueError(parsed.error)

            entity_type, entity_subtype = normalize_entity_labels(
                parsed.data.get("entity_type"), parsed.data.get("entity_subtype")
            )
            return ClassificationResult(
                entity_type=entity_type,
                entity_subtype=entity_subtype,
                confidence=parsed.data.get("confidence", 0.0),
                signals_positive=as_str_list(parsed.data.get("signals_positive")),
                signals_negative=as_str_list(parsed.data.get("signals_negative")),
                reason=str(parsed.data.get("reason") or ""),
                source=ClassificationSource.LLM_CLASSIFICATION,
                cost=CostTag.LLM_CALL,
                firewall=firewall,
            )

        except Exception as e:
            logger.warning("Entity classification error for %r: %s", company_name, e)
            return ClassificationResult(
                entity_type=EntityType.UNKNOWN,
                entity_subtype=EntitySubtype.UNKNOWN,
                confidence=0.0,
                signals_positive=[],
                signals_negative=[str(e)],
                reason=f"Classification failed: {e}",
                source=ClassificationSource.ERROR,
                cost=CostTag.ERROR,
                firewall=firewall,
            )

    def build_prompt(self, company_name: str, company_text: str = "", domain: str = "") -> str:
        """Generate the classification prompt"""
        profile = (company_text or "")[: self.profile_char_limit]
        return f"""
{ENTITY_CLASSIFICATION_RULES}

Company: {company_name}
Website: {domain or 'Unknown'}
Profile: {profile}

Classify this company:
"""


def normalize_entity_labels(raw_type: Any, raw_subtype: Any = None) -> Tuple[EntityType, EntitySubtype]:
    """
    Map model labels onto the closed enums.

    Accepts combined labels such as ``FAMILY_OFFICE_SFO``; anything
    unrecognised becomes UNKNOWN.
    """
    type_label = _label(raw_type)
    subtype_label = _label(raw_subtype)

    if type_label in COMBINED_ENTITY_LABELS:
        type_label, combined_subtype = COMBINED_ENTITY_LABELS[type_label]
        if subtype_label not in EntitySubtype.__members__ or subtype_label == "UNKNOWN":
            subtype_label = combined_subtype

    entity_type = EntityType[type_label] if type_label in EntityType.__members__ else EntityType.UNKNOWN
    entity_subtype = (
        EntitySubtype[subtype_label] if subtype_label in EntitySubtype.__members__ else EntitySubtype.UNKNOWN
    )
    return entity_type, entity_subtype


def _label(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().upper().replace("-", "_").replace(" ", "_")


def classify_entity(
    company_name: str,
    company_text: str = "",
    domain: str = "",
    backend: Optional[CompletionBackend] = None,
) -> ClassificationResult:
    """One-shot classification with a default firewall"""
    return EntityClassifier(backend=backend).classify(company_name, company_text, domain)
