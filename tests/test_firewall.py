"""Tests for the heuristic firewall."""

import re

import pytest

from fo_engine.models.schemas import CostTag, EntityType, FirewallVerdict
from fo_engine.stages.stage1_firewall import HeuristicFirewall, run_firewall

from conftest import FO_TEXT, NEUTRAL_TEXT, WEALTH_TEXT


@pytest.fixture()
def firewall():
    return HeuristicFirewall()


def test_wealth_manager_rejected(firewall):
    decision = firewall.process("Summit Wealth", WEALTH_TEXT)
    assert decision.decision == FirewallVerdict.REJECT
    assert decision.entity_type == EntityType.WEALTH_MANAGER
    assert decision.confidence == 0.95
    assert decision.cost == CostTag.FREE
    assert "wealth" in decision.reason


def test_family_office_passes_with_signal_confidence(firewall):
    decision = firewall.process("Smith Family Office", FO_TEXT)
    assert decision.decision == FirewallVerdict.PASS
    assert decision.entity_type == EntityType.FAMILY_OFFICE
    assert decision.confidence == pytest.approx(0.5)
    assert len(decision.signals) == 2
    assert decision.reason.startswith("FO signals found: ")


def test_no_signals_is_uncertain(firewall):
    decision = firewall.process("Acme Holdings", NEUTRAL_TEXT)
    assert decision.decision == FirewallVerdict.UNCERTAIN
    assert decision.entity_type == EntityType.UNKNOWN
    assert decision.confidence == 0.0
    assert decision.cost == CostTag.LLM_REQUIRED


def test_empty_input_is_uncertain(firewall):
    decision = firewall.process("", "", "")
    assert decision.decision == FirewallVerdict.UNCERTAIN


def test_fund_signal_rejected(firewall):
    decision = firewall.process("Index Co", "We sponsor a range of mutual fund products")
    assert decision.decision == FirewallVerdict.REJECT
    assert decision.entity_type == EntityType.INVESTMENT_FUND
    assert decision.confidence == 0.90


def test_wealth_signal_beats_family_office_signal(firewall):
    text = "A multi-family office offering wealth management to families"
    decision = firewall.process("Hybrid", text)
    assert decision.decision == FirewallVerdict.REJECT
    assert decision.entity_type == EntityType.WEALTH_MANAGER


def test_family_capital_overrides_fund_rejection(firewall):
    text = "Jones Family Capital holds a stake in an exchange traded fund sponsor"
    decision = firewall.process("Jones Family Capital", text)
    assert decision.decision == FirewallVerdict.PASS
    assert decision.entity_type == EntityType.FAMILY_OFFICE


def test_family_capital_does_not_override_wealth_rejection(firewall):
    text = "Family capital advice through our financial planning practice"
    decision = firewall.process("Advisory", text)
    assert decision.entity_type == EntityType.WEALTH_MANAGER


def test_fo_confidence_is_capped(firewall):
    text = (
        "The single family office of the Lee family acts as a private investment office. "
        "Lee Family Holdings deploys proprietary capital and family capital via principal investments."
    )
    decision = firewall.process("Lee", text)
    assert decision.decision == FirewallVerdict.PASS
    assert len(decision.signals) >= 4
    assert decision.confidence == 0.8


def test_ria_requires_word_boundary(firewall):
    # "Victoria" must not trip the RIA pattern
    decision = firewall.process("Victoria Partners", "Victoria Partners Holdings LLC")
    assert decision.decision == FirewallVerdict.UNCERTAIN

    decision = firewall.process("Adviser", "An independent RIA based in Ohio")
    assert decision.entity_type == EntityType.WEALTH_MANAGER


def test_matching_is_case_insensitive(firewall):
    decision = firewall.process("Caps", "WEALTH MANAGEMENT FOR EXECUTIVES")
    assert decision.entity_type == EntityType.WEALTH_MANAGER


def test_domain_is_matched(firewall):
    decision = firewall.process("Advisors", "", "ria-advisors.com")
    assert decision.entity_type == EntityType.WEALTH_MANAGER


def test_deterministic(firewall):
    first = firewall.process("Smith Family Office", FO_TEXT, "smithfo.com")
    second = firewall.process("Smith Family Office", FO_TEXT, "smithfo.com")
    assert first == second


def test_custom_pattern_library():
    library = {"wealth_manager": [], "investment_fund": [], "family_office": [r"dynasty\s+trust"]}
    decision = HeuristicFirewall(library).process("X", "The Dynasty Trust invests directly")
    assert decision.decision == FirewallVerdict.PASS
    assert decision.confidence == pytest.approx(0.25)


def test_invalid_custom_pattern_raises():
    with pytest.raises(re.error):
        HeuristicFirewall({"wealth_manager": ["(unclosed"]})


def test_run_firewall_helper():
    assert run_firewall("Summit", WEALTH_TEXT).decision == FirewallVerdict.REJECT
