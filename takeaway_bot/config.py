"""
Configuration Module for Takeaway Bot
=====================================

This module centralizes the configuration settings, environment variables and
constants used by the voice ordering engine and its HTTP surface. Every value
is read once at import time, so a misconfigured deployment fails on start-up
rather than halfway through a caller's order.

Configuration Categories:
-------------------------
- **Shop Configuration**: The shop and order channel that voice orders are
  booked against, and the timezone spoken pickup times are interpreted in.

- **Dialog Sessions**: Idle TTL of the in-memory dialog session store.

- **Order Rules**: Pickup lead time, slot size, per-slot throttling and the
  cancellation window.

- **Intent Classification**: Switch and confidence floor for the baseline
  intent classifier.

- **Rate Limiting / Input Validation / CORS**: Protection for the voice
  endpoints, same as any other public API.

Environment Variables:
----------------------
- DATABASE_URL: SQLAlchemy connection URL (default: "sqlite:///./takeaway.db")
- BUSINESS_TIMEZONE: IANA zone for spoken times (default: "UTC")
- DIALOG_SESSION_TTL_SECONDS: Idle session eviction (default: 1800)
- PICKUP_MIN_LEAD_MINUTES: Minimum pickup lead time (default: 10)
- ORDER_MAX_PER_SLOT: Max orders per 15-minute slot (default: 20)
- ORDER_CANCELLATION_WINDOW_MINUTES: Cancellation cutoff (default: 10)
- INTENT_CLASSIFIER_ENABLED: Enable intent classification (default: "true")
- INTENT_MIN_CONFIDENCE: Classifier confidence floor (default: 0.25)
- RATE_LIMIT_VOICE: Voice endpoint rate limit (default: "30 per minute")

Usage:
------
    from takeaway_bot.config import (
        ORDER_MAX_PER_SLOT,
        PICKUP_MIN_LEAD_MINUTES,
    )
"""

import os
from typing import List


# =============================================================================
# Database Configuration
# =============================================================================

DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./takeaway.db")


# =============================================================================
# Shop Configuration
# =============================================================================
# Voice orders are booked against a single shop and order channel.

DEFAULT_SHOP_ID: int = int(os.getenv("DEFAULT_SHOP_ID", "1"))
VOICE_ORDER_CHANNEL_ID: int = int(os.getenv("VOICE_ORDER_CHANNEL_ID", "1"))

# Spoken times ("at 18:30", "7pm tomorrow") are local to the shop
BUSINESS_TIMEZONE: str = os.getenv("BUSINESS_TIMEZONE", "UTC")

# Used when reading totals back to the caller
CURRENCY_SYMBOL: str = os.getenv("CURRENCY_SYMBOL", "$")


# =============================================================================
# Dialog Session Configuration
# =============================================================================
# Sessions live only in memory. An idle session is evicted on the next access
# after the TTL has elapsed.

DIALOG_SESSION_TTL_SECONDS: int = int(os.getenv("DIALOG_SESSION_TTL_SECONDS", "1800"))  # 30 minutes


# =============================================================================
# Order Rules
# =============================================================================

# Pickup times closer than this are rejected during slot extraction
PICKUP_MIN_LEAD_MINUTES: int = int(os.getenv("PICKUP_MIN_LEAD_MINUTES", "10"))

# Pickup slots are fixed 15-minute buckets (UTC aligned)
PICKUP_SLOT_MINUTES: int = 15

# Throttling: orders accepted per pickup slot
ORDER_MAX_PER_SLOT: int = int(os.getenv("ORDER_MAX_PER_SLOT", "20"))

# Orders can be cancelled until this many minutes before pickup
ORDER_CANCELLATION_WINDOW_MINUTES: int = int(os.getenv("ORDER_CANCELLATION_WINDOW_MINUTES", "10"))

# Accepted quantity range for a single order line
QUANTITY_MIN: int = 1
QUANTITY_MAX: int = 50


# =============================================================================
# Intent Classification
# =============================================================================

INTENT_CLASSIFIER_ENABLED: bool = os.getenv("INTENT_CLASSIFIER_ENABLED", "true").lower() == "true"

# Predictions below this confidence are discarded and keyword guards take over
INTENT_MIN_CONFIDENCE: float = float(os.getenv("INTENT_MIN_CONFIDENCE", "0.25"))


# =============================================================================
# Rate Limiting Configuration
# =============================================================================
# Uses slowapi with in-memory storage (use Redis for multi-worker prod).

RATE_LIMIT_VOICE: str = os.getenv("RATE_LIMIT_VOICE", "30 per minute")
RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"


def get_rate_limit_voice() -> str:
    """
    Return the current voice rate limit.

    This function allows dynamic override in tests without modifying
    the module-level constant.

    Returns:
        Rate limit string in "X per Y" format
    """
    return RATE_LIMIT_VOICE


# =============================================================================
# Input Validation Configuration
# =============================================================================

# Transcripts longer than this are rejected by the voice endpoint
MAX_UTTERANCE_LENGTH: int = int(os.getenv("MAX_UTTERANCE_LENGTH", "2000"))


# =============================================================================
# CORS Configuration
# =============================================================================
# Format: comma-separated list of origins. Default "*" is for development only.

_cors_origins_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in _cors_origins_env.split(",")
    if origin.strip()
] or ["*"]
