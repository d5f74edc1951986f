"""Shared pytest fixtures."""

from pathlib import Path

import pytest

from tutor_gateway.llm.diagnostics import Diagnostics, InMemoryDiagnosticsStore
from tutor_gateway.llm.tools import ToolRegistry, load_tool_registry

TOOLS_YAML = Path(__file__).resolve().parents[1] / "config" / "tools.yaml"


@pytest.fixture()
def registry() -> ToolRegistry:
    """The tool registry shipped in config/tools.yaml."""
    return load_tool_registry(TOOLS_YAML)


@pytest.fixture()
def diagnostics_store() -> InMemoryDiagnosticsStore:
    return InMemoryDiagnosticsStore()


@pytest.fixture()
def diagnostics(diagnostics_store: InMemoryDiagnosticsStore) -> Diagnostics:
    return Diagnostics(diagnostics_store)
