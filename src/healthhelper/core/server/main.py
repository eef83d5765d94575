"""HealthHelper server entry point: ``python -m healthhelper.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from healthhelper.core.config.settings import get_settings
from healthhelper.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host in {"localhost"}:
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the HealthHelper MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.hh_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger = logging.getLogger(__name__)
    if not settings.hh_allow_insecure_bind and not _is_loopback_host(settings.hh_host):
        raise RuntimeError(
            "Refusing to bind HealthHelper to a non-loopback host without an auth layer. "
            "Set HH_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info("Starting HealthHelper server on %s:%d", settings.hh_host, settings.hh_port)

    mcp = create_app()
    mcp.run(
        transport="streamable-http",
        host=settings.hh_host,
        port=settings.hh_port,
    )


if __name__ == "__main__":
    run()
