"""
Health check module for IdeaPile.

Reports system status across all components.
"""

from typing import Any

from ideapile.config import get_config_path, get_db_path, get_llm_settings, load_config


def check_database() -> tuple[str, str]:
    """Check database status."""
    db_path = get_db_path()
    if not db_path.exists():
        return "✗", "Not found"

    try:
        from ideapile.db import Database
        db = Database(db_path)
        stats = db.get_stats()
        return "✓", f"OK ({stats['total_ideas']} ideas)"
    except Exception as e:
        return "✗", f"Error: {e}"


def check_config() -> tuple[str, str]:
    """Check the config file parses."""
    config_path = get_config_path()
    if not config_path.exists():
        return "-", "Defaults (no config.toml)"

    try:
        load_config()
        return "✓", f"OK ({config_path})"
    except Exception as e:
        return "✗", f"Error: {e}"


def check_credentials(config: dict[str, Any] | None = None) -> tuple[str, str]:
    """Check an API key is configured for the selected provider."""
    try:
        settings = get_llm_settings(config)
    except Exception as e:
        return "✗", f"Error: {e}"

    provider = "Anthropic" if settings["provider"] == "anthropic" else "OpenAI"
    if not settings["api_key"]:
        return "✗", f"No API key ({provider})"
    return "✓", f"OK ({provider}, {settings['model']})"


def check_connection(config: dict[str, Any] | None = None) -> tuple[str, str]:
    """Round-trip the remote completion service. Never touches the store."""
    from ideapile.enrichment import ping
    from ideapile.llm import CompletionClient

    try:
        client = CompletionClient.from_config(config)
    except Exception as e:
        return "✗", f"Error: {e}"
    if not client.is_configured:
        return "-", "Skipped (no API key)"
    if ping(client):
        return "✓", "OK"
    return "✗", "No valid reply"


def run_health_check(online: bool = True) -> dict[str, tuple[str, str]]:
    """Run all health checks. online=False skips the network round trip."""
    checks = {
        "Database": check_database(),
        "Config": check_config(),
        "Credentials": check_credentials(),
    }
    if online:
        checks["Connection"] = check_connection()
    return checks


def format_health_report(checks: dict[str, tuple[str, str]]) -> str:
    """Format health check results."""
    lines = ["IdeaPile Health Check", "-" * 40]

    for name, (status, message) in checks.items():
        lines.append(f"{status} {name}: {message}")

    return "\n".join(lines)
