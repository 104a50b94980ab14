"""
Surfacing module for IdeaPile.

Terminal rendering of the timeline, single ideas, search results and stats.
"""

import os
import sys
from datetime import datetime
from typing import Any, Sequence

from ideapile.models import Bucket, Idea
from ideapile.timeline import group_by_time, relative_time


# ANSI color codes
class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    # Foreground colors
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    # Bright foreground colors
    BRIGHT_BLACK = "\033[90m"  # Gray
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_BLUE = "\033[94m"
    BRIGHT_MAGENTA = "\033[95m"
    BRIGHT_CYAN = "\033[96m"

    @classmethod
    def enabled(cls) -> bool:
        """Colors only on a terminal, and never when NO_COLOR is set."""
        if os.environ.get("NO_COLOR"):
            return False
        return sys.stdout.isatty()


def c(text: str, *codes: str) -> str:
    """Apply color codes to text if colors are enabled."""
    if not Colors.enabled():
        return text
    return "".join(codes) + text + Colors.RESET


# Bucket color tiers
TIER_COLORS = {
    "success": Colors.BRIGHT_GREEN,
    "warning": Colors.BRIGHT_YELLOW,
    "primary": Colors.BRIGHT_BLUE,
    "muted": Colors.WHITE,
    "subtle": Colors.BRIGHT_BLACK,
}

# Expansion kind colors
KIND_COLORS = {
    "expand": Colors.BRIGHT_CYAN,
    "combine": Colors.BRIGHT_MAGENTA,
    "suggest": Colors.BRIGHT_YELLOW,
    "inspire": Colors.BRIGHT_GREEN,
}


def _one_line(text: str, width: int) -> str:
    flat = " ".join(text.split())
    if len(flat) <= width:
        return flat
    return flat[: width - 1] + "…"


def _idea_line(idea: Idea) -> str:
    star = c("★", Colors.YELLOW) if idea.is_favorite else " "
    id_str = c(f"{idea.id:24}", Colors.DIM)
    time_str = c(idea.timestamp.astimezone().strftime("%H:%M"), Colors.DIM)
    extra = ""
    if idea.tags:
        extra += c(" " + " ".join(f"#{t}" for t in idea.tags[:3]), Colors.CYAN)
    if idea.ai_expansions:
        extra += c(f" [ai:{len(idea.ai_expansions)}]", Colors.MAGENTA)
    return f"{star} {id_str}  {time_str}  {_one_line(idea.content, 48)}{extra}"


def format_buckets(buckets: Sequence[Bucket]) -> str:
    """Render grouped buckets as colored sections."""
    if not buckets:
        return c("No ideas yet.", Colors.DIM)

    lines = []
    for bucket in buckets:
        color = TIER_COLORS.get(bucket.color, "")
        header = c(f"━━━ {bucket.title} ", Colors.BOLD, color)
        if bucket.subtitle:
            header += c(bucket.subtitle, Colors.DIM)
        lines.append(header)
        for idea in bucket.members:
            lines.append(_idea_line(idea))
        lines.append("")

    return "\n".join(lines).rstrip()


def format_timeline(ideas: Sequence[Idea], now: datetime | None = None) -> str:
    """Group ideas relative to now and render them."""
    now = now or datetime.now().astimezone()
    return format_buckets(group_by_time(ideas, now))


def format_search(query: str, ideas: Sequence[Idea]) -> str:
    """Render search results as a flat list."""
    if not ideas:
        return c(f"No ideas matching '{query}'.", Colors.DIM)

    lines = [c(f"━━━ SEARCH: {query} ━━━", Colors.BOLD, Colors.BLUE), ""]
    for idea in ideas:
        lines.append(_idea_line(idea))
    return "\n".join(lines)


def format_idea(idea: Idea, now: datetime | None = None) -> str:
    """Full detail view of one idea with its expansions."""
    now = now or datetime.now().astimezone()
    local = idea.timestamp.astimezone()

    lines = [
        c(f"━━━ {idea.id} ━━━", Colors.BOLD, Colors.BLUE),
        c(f"{local.strftime('%Y-%m-%d %H:%M')} ({relative_time(local, now)})", Colors.DIM),
    ]
    if idea.is_favorite:
        lines.append(c("★ favorite", Colors.YELLOW))
    lines.append("")
    lines.append(idea.content)

    if idea.tags:
        lines.append("")
        lines.append(c(" ".join(f"#{t}" for t in idea.tags), Colors.CYAN))

    if idea.connections:
        lines.append("")
        lines.append(c("Connections:", Colors.BOLD))
        for other in idea.connections:
            lines.append(f"  ↔ {other}")

    for expansion in idea.ai_expansions:
        kind = expansion.kind.value
        when = relative_time(expansion.timestamp.astimezone(), now)
        lines.append("")
        lines.append(c(f"── {kind} ", Colors.BOLD, KIND_COLORS.get(kind, "")) + c(when, Colors.DIM))
        if expansion.related_ideas:
            lines.append(c("   with " + ", ".join(expansion.related_ideas), Colors.DIM))
        lines.append(expansion.content)

    return "\n".join(lines)


def format_stats(stats: dict[str, Any]) -> str:
    """Render database statistics."""
    lines = [
        "IdeaPile Statistics",
        "-" * 30,
        f"Total ideas: {stats['total_ideas']}",
        f"Favorites: {stats['favorite_ideas']}",
        f"Connections: {stats['connections']}",
        f"AI expansions: {stats['ai_expansions']}",
    ]
    for kind, count in sorted(stats.get("by_kind", {}).items()):
        lines.append(f"  {kind}: {count}")
    return "\n".join(lines)
