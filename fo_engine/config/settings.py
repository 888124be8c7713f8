"""
Configuration settings for FO Qualification Engine
"""

from typing import Dict, List
import os

# =============================================================================
# LLM CONFIGURATION (OpenRouter)
# =============================================================================

LLM_CONFIG = {
    "provider": os.getenv("LLM_PROVIDER", "openrouter"),  # openrouter, openai, anthropic
    "model": os.getenv("LLM_MODEL", ""),  # empty -> provider default below
    "base_url": os.getenv("LLM_BASE_URL", "https://openrouter.ai/api/v1"),
    "max_tokens": 1000,
    "temperature": 0.1,
    "timeout_seconds": float(os.getenv("LLM_TIMEOUT_SECONDS", "30")),
    # Minimum spacing between two model calls (0 disables)
    "min_interval_seconds": float(os.getenv("LLM_MIN_INTERVAL_SECONDS", "0")),
    # Flat estimate used by the run reporter
    "cost_per_call_usd": float(os.getenv("LLM_COST_PER_CALL_USD", "0.0005")),
    # OpenRouter specific headers
    "site_url": os.getenv("OPENROUTER_SITE_URL", "http://localhost:8000"),
    "app_name": os.getenv("OPENROUTER_APP_NAME", "FO Qualification Engine"),
}

# Provider -> default model
DEFAULT_MODELS = {
    "openrouter": "google/gemini-2.0-flash-001",  # OpenRouter model format
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-haiku-latest",
}

# Provider -> environment variable holding its key
PROVIDER_API_KEY_ENV = {
    "openrouter": "OPENROUTER_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

# =============================================================================
# DEFAULT GATE & SCORE THRESHOLDS
# =============================================================================

DEFAULT_GATE = {
    # UNKNOWN entities below this classification confidence are not scored
    "unknown_min_confidence": 0.6,
    "profile_char_limit": 2000,
}

DEFAULT_SCORE_THRESHOLDS = {
    "approved_min": 6,
    "review_min": 4,
}

# =============================================================================
# FIREWALL CONFIDENCES
# =============================================================================

FIREWALL_CONFIDENCE = {
    "wealth_manager": 0.95,
    "investment_fund": 0.90,
    "per_fo_signal": 0.25,
    "fo_signal_cap": 0.8,
}

# Overrides the investment-fund rejection (fund vehicle owned by a family)
FAMILY_CAPITAL_OVERRIDE = r"family\s+capital"

# =============================================================================
# FIREWALL PATTERN LIBRARY
# =============================================================================
# Order matters: the first matching wealth-manager / fund pattern becomes the
# rejection reason.

FIREWALL_PATTERNS: Dict[str, List[str]] = {
    "wealth_manager": [
        r"wealth\s+management",
        r"financial\s+planning",
        r"our\s+clients",
        r"\bRIA\b",
        r"registered\s+investment\s+adviser",
        r"registered\s+investment\s+advisor",
        r"FINRA",
        r"Form\s+ADV",
        r"private\s+wealth",
        r"wealth\s+advisor",
        r"family\s+office\s+services",
        r"relationship\s+manager",
        r"portfolio\s+manager",
        r"assets\s+under\s+management\s+for\s+clients",
        r"financial\s+advisory",
        r"fiduciary",
        r"retirement\s+planning",
        r"insurance\s+solutions",
        r"financial\s+advisor",
        r"portfolio\s+management\s+services",
        r"investment\s+advisory",
        r"fee.?based\s+planning",
        r"wealth\s+advisors?",
        r"private\s+banking",
        r"trust\s+services",
        r"estate\s+planning",
        # Service CTAs
        r"become\s+a\s+client",
        r"our\s+services",
        r"schedule\s+(a\s+)?consultation",
        r"client\s+login",
        r"start\s+your\s+journey",
    ],
    "investment_fund": [
        r"registered\s+investment\s+company",
        r"open.?end\s+fund",
        r"mutual\s+fund",
        r"exchange.?traded\s+fund",
        r"\bETFs?\b",
        r"fund\s+manager.*clients",
        r"asset\s+management\s+company",
        r"investment\s+firm\s+managing\s+third.?party",
    ],
    "family_office": [
        r"single\s+family\s+office",
        r"multi.?family\s+office",
        r"family\s+office",
        r"private\s+investment\s+office",
        r"investment\s+office.*principal",
        r"principal\s+investments",
        r"holding\s+company.*private\s+invest",
        r"holding\s+company.*family",
        r"family\s+capital",
        r"family\s+holdings",
        r"proprietary\s+capital",
        r"private\s+capital.*family",
        r"direct\s+investment.*family",
        r"office\s+of\s+the\s+family",
        r"family\s+investment\s+vehicle",
        r"family\s+name.*principal",
        r"surname.*office",
        r"surname.*capital",
    ],
}

# =============================================================================
# MODEL LABEL NORMALISATION
# =============================================================================
# Combined labels some prompts/models emit -> (entity_type, entity_subtype)

COMBINED_ENTITY_LABELS = {
    "FAMILY_OFFICE_SFO": ("FAMILY_OFFICE", "SFO"),
    "FAMILY_OFFICE_MFO": ("FAMILY_OFFICE", "MFO"),
    "FAMILY_OFFICE_MFO_PRINCIPAL": ("FAMILY_OFFICE", "MFO"),
    "FAMILY_OFFICE_CAPITAL_VEHICLE": ("FAMILY_OFFICE", "FAMILY_CAPITAL"),
    "WEALTH_MANAGER_MFO": ("WEALTH_MANAGER", "MFO"),
    "WEALTH_MANAGER_RIA": ("WEALTH_MANAGER", "RIA"),
}

# =============================================================================
# REPORTING
# =============================================================================

REPORT_LIMITS = {
    "top_approved": 10,
    "top_review": 10,
    "errors": 5,
}
