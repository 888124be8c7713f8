"""Shared fixtures for FO engine tests."""

import json
import threading

import pytest

from fo_engine.llm.backends import CompletionBackend
from fo_engine.models.schemas import CompanyInput

# Texts the default firewall decides without a model call
WEALTH_TEXT = "We provide wealth management services to high-net-worth clients"
FO_TEXT = "The Smith Family Office invests proprietary capital directly in real estate"
NEUTRAL_TEXT = "Acme Holdings LLC"


class ScriptedBackend(CompletionBackend):
    """Returns queued responses in order (the last one repeats) and records every prompt."""

    name = "scripted"

    def __init__(self, *responses):
        self._responses = list(responses)
        self._lock = threading.Lock()
        self.prompts = []

    def complete(self, prompt):
        with self._lock:
            self.prompts.append(prompt)
            if not self._responses:
                raise AssertionError("ScriptedBackend ran out of responses")
            response = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def calls(self):
        return len(self.prompts)


class FailingBackend(CompletionBackend):
    """Raises on every call."""

    name = "failing"

    def __init__(self, message="connection reset"):
        self.message = message
        self.calls = 0

    def complete(self, prompt):
        self.calls += 1
        raise ConnectionError(self.message)


def classification_json(entity_type="FAMILY_OFFICE", entity_subtype="SFO", confidence=0.9, **extra):
    payload = {
        "entity_type": entity_type,
        "entity_subtype": entity_subtype,
        "confidence": confidence,
        "signals_positive": ["principal capital"],
        "signals_negative": [],
        "reason": "Invests family capital directly",
    }
    payload.update(extra)
    return json.dumps(payload)


def score_json(match_score=7, confidence=0.8, recommendation="APPROVED", **extra):
    payload = {
        "match_score": match_score,
        "confidence": confidence,
        "fit_reasons": ["Direct real estate deals"],
        "geo_match": True,
        "asset_focus": ["real_estate"],
        "capital_indicators": ["direct investment"],
        "recommendation": recommendation,
    }
    payload.update(extra)
    return json.dumps(payload)


@pytest.fixture()
def scripted_backend():
    """Factory for scripted backends."""
    return ScriptedBackend


@pytest.fixture()
def sample_companies():
    """One entity per firewall branch."""
    return [
        CompanyInput(company_name="Summit Wealth", company_text=WEALTH_TEXT, domain="summitwealth.com"),
        CompanyInput(company_name="Smith Family Office", company_text=FO_TEXT, domain="smithfo.com"),
        CompanyInput(company_name="Acme Holdings", company_text=NEUTRAL_TEXT, domain="acme.com"),
    ]
