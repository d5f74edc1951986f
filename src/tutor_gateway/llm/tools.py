"""Tool registry: human-facing tool names -> provider, model, timeout.

Loaded from config/tools.yaml at startup, validated by Pydantic.
Adding a tool is a YAML edit; family, timeout and retry policy are
derived from the model id when the descriptor is built.
"""

from enum import StrEnum
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, model_validator

from tutor_gateway.llm.families import ModelFamily, detect_family, timeout_for
from tutor_gateway.llm.schemas import TokenUsage

logger = structlog.get_logger()


class ProviderId(StrEnum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    PERPLEXITY = "perplexity"


class CostPer1M(BaseModel):
    """Cost per one million tokens in USD."""

    input: float
    output: float
    per_search: float = 0.0  # Perplexity bills each web search separately


class ToolDescriptor(BaseModel):
    """Immutable mapping of one tool name to a provider/model pairing."""

    model_config = ConfigDict(frozen=True)

    tool_name: str = ""  # populated from dict key during registry validation
    provider: ProviderId
    model_id: str
    family: ModelFamily = ModelFamily.DEFAULT
    timeout_ms: int = 0
    pricing: CostPer1M | None = None

    @model_validator(mode="before")
    @classmethod
    def _derive_family_and_timeout(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "model_id" not in data:
            return data
        data = dict(data)
        family = ModelFamily(data.get("family") or detect_family(data["model_id"]))
        data["family"] = family
        if not data.get("timeout_ms"):
            data["timeout_ms"] = timeout_for(family)
        return data

    def estimate_cost(self, usage: TokenUsage) -> float | None:
        """Calculate cost in USD for one call, None when pricing is unknown."""
        if self.pricing is None:
            return None
        return (
            usage.prompt_tokens * self.pricing.input / 1_000_000
            + usage.completion_tokens * self.pricing.output / 1_000_000
            + self.pricing.per_search
        )


class ToolRegistry(BaseModel):
    """All configured tools plus the fallback used for unknown names.

    Validates that the default tool exists, so resolve() never fails.
    """

    default_tool: str
    tools: dict[str, ToolDescriptor]

    @model_validator(mode="before")
    @classmethod
    def _inject_tool_names(cls, data: Any) -> Any:
        if not isinstance(data, dict) or not isinstance(data.get("tools"), dict):
            return data
        tools = {
            name: {**cfg, "tool_name": name} if isinstance(cfg, dict) else cfg
            for name, cfg in data["tools"].items()
        }
        return {**data, "tools": tools}

    @model_validator(mode="after")
    def _validate_default(self) -> "ToolRegistry":
        if self.default_tool not in self.tools:
            raise ValueError(
                f"Default tool '{self.default_tool}' is not defined in tools"
            )
        return self

    def resolve(self, tool_name: str) -> ToolDescriptor:
        """Return the descriptor for tool_name, or the default descriptor."""
        descriptor = self.tools.get(tool_name)
        if descriptor is None:
            logger.warning(
                "unknown_tool_fallback",
                tool=tool_name,
                fallback=self.default_tool,
            )
            return self.tools[self.default_tool]
        return descriptor

    def list_available_models(self) -> list[dict[str, str]]:
        """Catalog of configured tools for model pickers."""
        return [
            {"id": d.model_id, "name": d.tool_name, "provider": str(d.provider)}
            for d in self.tools.values()
        ]


def load_tool_registry(
    config_path: Path,
    default_tool: str | None = None,
) -> ToolRegistry:
    """Load and validate the tool registry from YAML.

    Args:
        config_path: Path to tools.yaml. Typically comes from
            Settings.tool_registry_path.
        default_tool: Replaces the YAML default_tool when given.

    Raises:
        FileNotFoundError: if YAML file doesn't exist.
        ValueError: if YAML parsing or validation fails.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Tool registry not found: {config_path}")

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse tool registry '{config_path}': {e}") from e
    if default_tool and isinstance(raw, dict):
        raw = {**raw, "default_tool": default_tool}
    return ToolRegistry.model_validate(raw)
