"""MCP tools for the health tip catalog and favorites."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from fastmcp import FastMCP

from healthhelper.core.storage.models import HealthTip

if TYPE_CHECKING:
    from healthhelper.domains.health.insights import HealthInsightsService


def tip_to_dict(tip: HealthTip, favorited: bool | None = None) -> dict[str, Any]:
    result: dict[str, Any] = {
        "id": tip.id,
        "title": tip.title,
        "content": tip.content,
        "category": tip.category,
    }
    if favorited is not None:
        result["favorited"] = favorited
    return result


def register_tip_tools(mcp: FastMCP, service: HealthInsightsService) -> None:
    """Register tip catalog tools on the MCP server."""

    @mcp.tool
    async def list_health_tips() -> str:
        """List every health tip with its favorite status."""
        tips = await service.get_tips_with_favorites()
        return json.dumps({"tips": [tip_to_dict(t, favorited) for t, favorited in tips]})

    @mcp.tool
    async def get_random_health_tip() -> str:
        """Get a random tip, preferring your favorites."""
        return json.dumps(tip_to_dict(await service.get_random_tip()))

    @mcp.tool
    async def toggle_tip_favorite(tip_id: int) -> str:
        """Add a tip to your favorites, or remove it if it is already there.

        Args:
            tip_id: Id of the tip from ``list_health_tips``.
        """
        favorited = await service.toggle_favorite(tip_id)
        return json.dumps({"tip_id": tip_id, "favorited": favorited})

    @mcp.tool
    async def list_favorite_tips() -> str:
        """List favorited tips, most recently favorited first."""
        tips = await service.get_favorited_tips()
        return json.dumps({"tips": [tip_to_dict(t, True) for t in tips]})
