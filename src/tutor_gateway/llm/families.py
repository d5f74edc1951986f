"""Model families and their per-attempt timeouts.

A family is derived once from a model id (case-insensitive substring,
most specific name first) and then drives timeout and retry-policy
lookups, so no caller re-sniffs the model name.
"""

from enum import StrEnum


class ModelFamily(StrEnum):
    GPT5_NANO = "gpt-5-nano"
    GPT5_MINI = "gpt-5-mini"
    GPT5 = "gpt-5"
    CLAUDE = "claude"
    GEMINI = "gemini"
    SONAR = "sonar"
    DEFAULT = "default"


# Order matters: "gpt-5-mini" must be tested before "gpt-5".
_MATCH_ORDER: tuple[ModelFamily, ...] = (
    ModelFamily.GPT5_NANO,
    ModelFamily.GPT5_MINI,
    ModelFamily.GPT5,
    ModelFamily.CLAUDE,
    ModelFamily.GEMINI,
    ModelFamily.SONAR,
)

FAMILY_TIMEOUTS_MS: dict[ModelFamily, int] = {
    ModelFamily.GPT5_NANO: 45_000,
    ModelFamily.GPT5_MINI: 60_000,
    # reasoning models spend a long time before the first token
    ModelFamily.GPT5: 120_000,
    ModelFamily.CLAUDE: 90_000,
    ModelFamily.GEMINI: 90_000,
    ModelFamily.SONAR: 60_000,
    ModelFamily.DEFAULT: 55_000,
}


def detect_family(model_id: str) -> ModelFamily:
    """Map a provider model id to its family (DEFAULT when unknown)."""
    normalized = model_id.lower()
    for family in _MATCH_ORDER:
        if family.value in normalized:
            return family
    return ModelFamily.DEFAULT


def timeout_for(family: ModelFamily) -> int:
    return FAMILY_TIMEOUTS_MS.get(family, FAMILY_TIMEOUTS_MS[ModelFamily.DEFAULT])
