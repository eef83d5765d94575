"""HealthHelper MCP Server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- build_narrative_client() to wire the configured narrative collaborator
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from healthhelper.core.clock import SystemClock, UtcClock
from healthhelper.core.config.settings import Settings, get_settings
from healthhelper.core.llm.provider import create_provider
from healthhelper.core.storage.snapshots import HISTORY_WINDOW
from healthhelper.domains.health.insights import HealthInsightsService
from healthhelper.domains.health.narrative import (
    LLMNarrativeClient,
    LocalNarrativeClient,
    NarrativeClient,
)
from healthhelper.domains.health.prompts.health_prompts import register_health_prompts
from healthhelper.domains.health.tools.daily_log_tools import register_daily_log_tools
from healthhelper.domains.health.tools.tip_tools import register_tip_tools
from healthhelper.domains.health.trends import TrendAnalyzer

logger = logging.getLogger(__name__)


def build_narrative_client(settings: Settings) -> NarrativeClient:
    """Create the narrative collaborator selected by ``NARRATIVE_SOURCE``.

    Raises:
        ConfigurationError: If the LLM provider is unknown or has no API key.
    """
    if settings.narrative_source == "local":
        logger.info("Using local rule-based narrative generation")
        return LocalNarrativeClient()

    if settings.llm_provider == "anthropic":
        api_key, model, base_url = settings.anthropic_api_key, settings.anthropic_model, ""
    elif settings.llm_provider == "openai":
        api_key, model, base_url = (
            settings.openai_api_key,
            settings.openai_model,
            settings.openai_base_url,
        )
    else:
        api_key, model, base_url = "", "", ""

    provider = create_provider(
        provider_name=settings.llm_provider,
        api_key=api_key,
        model=model,
        base_url=base_url,
    )
    logger.info("Using LLM narrative generation via '%s'", settings.llm_provider)
    return LLMNarrativeClient(
        provider,
        timeout_seconds=settings.narrative_timeout_seconds,
        max_tokens=settings.narrative_max_tokens,
        temperature=settings.narrative_temperature,
    )


def create_app(
    *,
    service_override: HealthInsightsService | None = None,
    clock_override: SystemClock | None = None,
) -> FastMCP:
    """Create and configure the HealthHelper MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Builds the narrative collaborator from settings
    3. Opens and migrates the database (HealthInsightsService)
    4. Registers all tools and prompts
    """
    settings = get_settings()
    clock = clock_override or UtcClock()

    server = FastMCP(
        "HealthHelper",
        instructions=(
            "Daily health log: record sleep, hydration and activity, review the "
            f"last {HISTORY_WINDOW} days, get personalised advice, and browse health tips."
        ),
    )

    if service_override is not None:
        service = service_override
    else:
        service = HealthInsightsService(
            settings.db_path,
            build_narrative_client(settings),
            clock=clock,
        )
        logger.info(
            "Health database ready: %s (schema v%d)",
            service.database.path,
            service.database.get_schema_version(),
        )

    trend_analyzer = TrendAnalyzer(service)

    @server.tool
    async def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": "HealthHelper",
            "version": "0.1.0",
            "narrative_source": settings.narrative_source,
            "history_window_days": HISTORY_WINDOW,
            "days_stored": await service.count_stored(),
        }

    register_daily_log_tools(server, service, trend_analyzer, clock)
    register_tip_tools(server, service)
    register_health_prompts(server)
    logger.info("HealthHelper tools and prompts registered")

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
