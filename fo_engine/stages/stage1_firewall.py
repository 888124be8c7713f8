"""
Stage 1: Heuristic Firewall
===========================
Free, deterministic rejection layer that runs before any model call.

Checks, in strict order (first match wins):
- Wealth-manager signals  -> REJECT as WEALTH_MANAGER
- Investment-fund signals -> REJECT as INVESTMENT_FUND (unless "family capital")
- Family-office signals   -> PASS as FAMILY_OFFICE
- Nothing matched         -> UNCERTAIN (needs model classification)
"""

import re
from typing import Dict, List, Optional

from ..models.schemas import (
    CostTag,
    EntityType,
    FirewallDecision,
    FirewallVerdict,
)
from ..config.settings import (
    FAMILY_CAPITAL_OVERRIDE,
    FIREWALL_CONFIDENCE,
    FIREWALL_PATTERNS,
)


class HeuristicFirewall:
    """
    Stage 1: Pattern matcher over company text and domain.
    Stateless after construction; safe to share between threads.
    """

    def __init__(self, pattern_library: Optional[Dict[str, List[str]]] = None):
        """
        Initialize with a pattern library or use defaults.

        Raises:
            re.error: If a pattern in a custom library does not compile
        """
        library = pattern_library or FIREWALL_PATTERNS
        self.wealth_manager_patterns = self._compile(library.get("wealth_manager", []))
        self.investment_fund_patterns = self._compile(library.get("investment_fund", []))
        self.family_office_patterns = self._compile(library.get("family_office", []))
        self.family_capital_override = re.compile(FAMILY_CAPITAL_OVERRIDE, re.IGNORECASE)

    @staticmethod
    def _compile(patterns: List[str]) -> List[re.Pattern]:
        """Pre-compile regex patterns for performance"""
        return [re.compile(p, re.IGNORECASE) for p in patterns]

    def process(
        self,
        company_name: str = "",
        company_text: str = "",
        domain: str = "",
    ) -> FirewallDecision:
        """
        Run the firewall over one entity.

        Args:
            company_name: Company name (reported only, not matched)
            company_text: Scraped profile text
            domain: Company website domain

        Returns:
            FirewallDecision
        """
        combined = f"{company_text or ''} {domain or ''}"

        # Check 1: Obvious wealth manager
        wm_match = self._first_match(self.wealth_manager_patterns, combined)
        if wm_match is not None:
            return FirewallDecision(
                decision=FirewallVerdict.REJECT,
                entity_type=EntityType.WEALTH_MANAGER,
                confidence=FIREWALL_CONFIDENCE["wealth_manager"],
                reason=f"Strong wealth management signal: {wm_match}",
                cost=CostTag.FREE,
                signals=(wm_match,),
            )

        # Check 2: Obvious investment fund, unless it is family capital
        fund_match = self._first_match(self.investment_fund_patterns, combined)
        if fund_match is not None and not self.family_capital_override.search(combined):
            return FirewallDecision(
                decision=FirewallVerdict.REJECT,
                entity_type=EntityType.INVESTMENT_FUND,
                confidence=FIREWALL_CONFIDENCE["investment_fund"],
                reason=f"Strong fund signal: {fund_match}",
                cost=CostTag.FREE,
                signals=(fund_match,),
            )

        # Check 3: Positive family office signals
        fo_signals = self._all_matches(self.family_office_patterns, combined)
        if fo_signals:
            confidence = min(
                FIREWALL_CONFIDENCE["fo_signal_cap"],
                len(fo_signals) * FIREWALL_CONFIDENCE["per_fo_signal"],
            )
            return FirewallDecision(
                decision=FirewallVerdict.PASS,
                entity_type=EntityType.FAMILY_OFFICE,
                confidence=confidence,
                reason=f"FO signals found: {', '.join(fo_signals[:2])}",
                cost=CostTag.FREE,
                signals=tuple(fo_signals),
            )

        # Check 4: Uncertain - needs model classification
        return FirewallDecision(
            decision=FirewallVerdict.UNCERTAIN,
            entity_type=EntityType.UNKNOWN,
            confidence=0.0,
            reason="No strong heuristic signals. Requires LLM classification.",
            cost=CostTag.LLM_REQUIRED,
        )

    @staticmethod
    def _first_match(patterns: List[re.Pattern], text: str) -> Optional[str]:
        for pattern in patterns:
            if pattern.search(text):
                return pattern.pattern
        return None

    @staticmethod
    def _all_matches(patterns: List[re.Pattern], text: str) -> List[str]:
        # Distinct patterns, in library order
        matched = []
        for pattern in patterns:
            if pattern.search(text) and pattern.pattern not in matched:
                matched.append(pattern.pattern)
        return matched


def run_firewall(company_name: str = "", company_text: str = "", domain: str = "") -> FirewallDecision:
    """Run the default firewall once"""
    return HeuristicFirewall().process(company_name, company_text, domain)
