"""Tests for entity classification."""

import pytest

from fo_engine.models.schemas import (
    ClassificationSource,
    CostTag,
    EntitySubtype,
    EntityType,
    FirewallVerdict,
)
from fo_engine.stages.stage2_classifier import EntityClassifier, normalize_entity_labels

from conftest import (
    FO_TEXT,
    NEUTRAL_TEXT,
    WEALTH_TEXT,
    FailingBackend,
    ScriptedBackend,
    classification_json,
)


def test_firewall_reject_skips_model():
    backend = ScriptedBackend(classification_json())
    result = EntityClassifier(backend=backend).classify("Summit Wealth", WEALTH_TEXT)

    assert backend.calls == 0
    assert result.entity_type == EntityType.WEALTH_MANAGER
    assert result.source == ClassificationSource.FIREWALL_HEURISTIC
    assert result.cost == CostTag.FREE
    assert result.signals_negative == [result.reason]
    assert result.firewall.decision == FirewallVerdict.REJECT


def test_firewall_pass_is_family_office_with_signals():
    backend = ScriptedBackend(classification_json())
    result = EntityClassifier(backend=backend).classify("Smith Family Office", FO_TEXT)

    assert backend.calls == 0
    assert result.entity_type == EntityType.FAMILY_OFFICE
    assert result.entity_subtype == EntitySubtype.UNKNOWN
    assert result.confidence == pytest.approx(0.5)
    assert len(result.signals_positive) == 2
    assert result.cost == CostTag.FREE


def test_uncertain_escalates_to_model():
    backend = ScriptedBackend(classification_json("OPERATOR", "UNKNOWN", 0.85))
    result = EntityClassifier(backend=backend).classify("Acme Holdings", NEUTRAL_TEXT, "acme.com")

    assert backend.calls == 1
    assert "Acme Holdings" in backend.prompts[0]
    assert "acme.com" in backend.prompts[0]
    assert result.entity_type == EntityType.OPERATOR
    assert result.source == ClassificationSource.LLM_CLASSIFICATION
    assert result.cost == CostTag.LLM_CALL
    assert result.confidence == pytest.approx(0.85)
    assert result.firewall.decision == FirewallVerdict.UNCERTAIN


def test_model_call_is_tagged_gemini_call():
    backend = ScriptedBackend(classification_json("REIT", "UNKNOWN", 0.8))
    result = EntityClassifier(backend=backend).classify("Acme", NEUTRAL_TEXT)
    assert result.cost == CostTag.LLM_CALL
    assert result.cost.value == "gemini_call"
    assert result.model_dump(mode="json")["cost"] == "gemini_call"


def test_non_numeric_confidence_keeps_entity_type():
    backend = ScriptedBackend(classification_json("OPERATOR", "UNKNOWN", "high"))
    result = EntityClassifier(backend=backend).classify("Acme", NEUTRAL_TEXT)
    assert result.source == ClassificationSource.LLM_CLASSIFICATION
    assert result.entity_type == EntityType.OPERATOR
    assert result.confidence == 0.0


def test_fenced_model_response_is_accepted():
    backend = ScriptedBackend("```json\n" + classification_json("REIT", "UNKNOWN", 0.7) + "\n```")
    result = EntityClassifier(backend=backend).classify("Acme", NEUTRAL_TEXT)
    assert result.entity_type == EntityType.REIT


def test_combined_label_is_split():
    backend = ScriptedBackend(classification_json("FAMILY_OFFICE_SFO", None, 0.9))
    result = EntityClassifier(backend=backend).classify("Acme", NEUTRAL_TEXT)
    assert result.entity_type == EntityType.FAMILY_OFFICE
    assert result.entity_subtype == EntitySubtype.SFO


def test_unknown_labels_become_unknown():
    assert normalize_entity_labels("BANK", "TRUST") == (EntityType.UNKNOWN, EntitySubtype.UNKNOWN)
    assert normalize_entity_labels(None) == (EntityType.UNKNOWN, EntitySubtype.UNKNOWN)
    assert normalize_entity_labels("wealth manager", "ria") == (
        EntityType.WEALTH_MANAGER,
        EntitySubtype.RIA,
    )


def test_confidence_is_clamped():
    backend = ScriptedBackend(classification_json(confidence=1.7))
    result = EntityClassifier(backend=backend).classify("Acme", NEUTRAL_TEXT)
    assert result.confidence == 1.0


def test_unparseable_response_is_error_result():
    backend = ScriptedBackend("Sorry, I can't classify this.")
    result = EntityClassifier(backend=backend).classify("Acme", NEUTRAL_TEXT)

    assert result.entity_type == EntityType.UNKNOWN
    assert result.confidence == 0.0
    assert result.source == ClassificationSource.ERROR
    assert result.cost == CostTag.ERROR
    assert result.is_error
    assert result.signals_negative


def test_backend_failure_is_error_result():
    backend = FailingBackend("timeout")
    result = EntityClassifier(backend=backend).classify("Acme", NEUTRAL_TEXT)
    assert result.source == ClassificationSource.ERROR
    assert "timeout" in result.reason


def test_missing_backend_is_error_result():
    result = EntityClassifier().classify("Acme", NEUTRAL_TEXT)
    assert result.source == ClassificationSource.ERROR


def test_profile_is_truncated_in_prompt():
    backend = ScriptedBackend(classification_json())
    classifier = EntityClassifier(backend=backend, profile_char_limit=50)
    classifier.classify("Acme", "Z" * 500)
    assert "Z" * 50 in backend.prompts[0]
    assert "Z" * 51 not in backend.prompts[0]
