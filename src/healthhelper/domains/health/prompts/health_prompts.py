"""MCP Prompts: pre-built interaction templates for the daily check-in."""

from __future__ import annotations

from fastmcp import FastMCP


def register_health_prompts(mcp: FastMCP) -> None:
    """Register health domain MCP prompts."""

    @mcp.prompt()
    def daily_checkin_prompt() -> str:
        """Prompt template for logging today's data and getting advice."""
        return """I'd like to log today's health data and get advice. Please:

1. Ask me when I went to bed, when I woke up and how well I slept (1-10)
2. Ask how much water I drank and what my target is
3. Ask how many minutes I exercised and how long I sat
4. Save the day and generate advice from my last 7 days

Keep it brief and encouraging."""

    @mcp.prompt()
    def weekly_review_prompt() -> str:
        """Prompt template for reviewing the stored week."""
        return """Let's review my last week. Please:

1. Show my stored days and the trend for each metric
2. Point out what improved and what slipped
3. Suggest one habit to focus on next week"""
