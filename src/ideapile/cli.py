"""
CLI for IdeaPile.

Minimal CLI using stdlib for fast startup on the capture path.
Subcommands are imported lazily to avoid startup overhead.

Usage:
    ideapile "your idea here"       # Capture (primary interface)
    ideapile list                   # Browse the timeline
    ideapile --help                 # Show help
"""

import logging
import os
import sys
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from ideapile.db import Database
    from ideapile.enrichment import Enricher

logger = logging.getLogger("ideapile")


def print_help() -> None:
    """Print help message."""
    print("""ideapile - local-first idea capture with AI enrichment

Usage:
    ideapile "your idea here"     Capture an idea (#hashtags become tags)

Commands:
    ideapile list                 Show ideas grouped by time
    ideapile find <query>         Substring search over content and tags
    ideapile show <id>            Show an idea with its AI expansions
    ideapile fav <id>             Toggle favorite
    ideapile edit <id> <text>     Replace an idea's content
    ideapile rm <id>              Delete an idea
    ideapile connect <a> <b>      Connect two ideas
    ideapile disconnect <a> <b>   Remove a connection
    ideapile expand <id>          Expand an idea with AI
    ideapile suggest <id>         Suggest related ideas with AI
    ideapile inspire <id>         Get a different perspective with AI
    ideapile combine <id> <id>..  Combine two or more ideas with AI
    ideapile links <id>           Find and record connections with AI
    ideapile tags <text>          Generate tags for a piece of text
    ideapile stats                Show statistics
    ideapile export               Dump all ideas as JSON
    ideapile health               Check database, config and API

Options:
    ideapile --help, -h           Show this help
    ideapile --version, -v        Show version

Examples:
    ideapile "Plan a #trip to Japan"
    ideapile find japan
    ideapile expand lq3k9x2a-8f3kd02mzq1
    ideapile combine <id1> <id2>

Set IDEAPILE_LOG_LEVEL=DEBUG for verbose logging.""")


def print_version() -> None:
    """Print version."""
    from ideapile import __version__
    print(f"ideapile {__version__}")


def setup_logging() -> None:
    """Configure logging from IDEAPILE_LOG_LEVEL (default WARNING)."""
    level_name = os.environ.get("IDEAPILE_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, level_name, logging.WARNING),
    )


def build_services() -> tuple["Database", "Enricher"]:
    """Construct the store and the enricher once for this process."""
    from ideapile.config import ensure_dirs
    from ideapile.db import Database
    from ideapile.enrichment import Enricher

    ensure_dirs()
    db = Database()
    return db, Enricher(db)


def capture(db: "Database", enricher: "Enricher", text: str) -> str:
    """
    Capture an idea.

    Returns the idea ID.
    """
    from ideapile.ingress import capture as capture_idea

    idea = capture_idea(db, text, enricher=enricher)
    return idea.id


def cmd_capture(db: "Database", enricher: "Enricher", text: str) -> int:
    """Capture and print the new ID."""
    print(capture(db, enricher, text))
    return 0


def cmd_list(db: "Database", enricher: "Enricher", args: list[str]) -> int:
    """Show the bucketed timeline."""
    from ideapile.surfacing import format_timeline

    ideas = db.list_all()
    if "--favorites" in args or "-f" in args:
        ideas = [idea for idea in ideas if idea.is_favorite]
    print(format_timeline(ideas))
    return 0


def cmd_find(db: "Database", enricher: "Enricher", args: list[str]) -> int:
    """Substring search."""
    from ideapile.surfacing import format_search

    if not args:
        print("Usage: ideapile find <query>", file=sys.stderr)
        return 1

    query = " ".join(args)
    print(format_search(query, db.search(query)))
    return 0


def cmd_show(db: "Database", enricher: "Enricher", args: list[str]) -> int:
    """Show one idea."""
    from ideapile.surfacing import format_idea

    if not args:
        print("Usage: ideapile show <id>", file=sys.stderr)
        return 1

    idea = db.get_by_id(args[0])
    if idea is None:
        print(f"Not found: {args[0]}", file=sys.stderr)
        return 1
    print(format_idea(idea))
    return 0


def cmd_fav(db: "Database", enricher: "Enricher", args: list[str]) -> int:
    """Toggle favorite."""
    if not args:
        print("Usage: ideapile fav <id>", file=sys.stderr)
        return 1

    idea = db.toggle_favorite(args[0])
    state = "Favorited" if idea.is_favorite else "Unfavorited"
    print(f"{state}: {idea.id}")
    return 0


def cmd_edit(db: "Database", enricher: "Enricher", args: list[str]) -> int:
    """Replace content. Hashtags in the new text are added to the tags."""
    from ideapile.errors import NotFoundError
    from ideapile.ingress import extract_hashtags

    if len(args) < 2:
        print("Usage: ideapile edit <id> <text>", file=sys.stderr)
        return 1

    idea = db.get_by_id(args[0])
    if idea is None:
        raise NotFoundError(f"Idea not found: {args[0]}")

    content = " ".join(args[1:])
    edited = idea.model_copy(update={
        "content": content,
        "tags": idea.tags + extract_hashtags(content),
    })
    db.update(edited)
    print(f"Updated: {idea.id}")
    return 0


def cmd_rm(db: "Database", enricher: "Enricher", args: list[str]) -> int:
    """Delete an idea."""
    if not args:
        print("Usage: ideapile rm <id>", file=sys.stderr)
        return 1

    db.delete(args[0])
    print(f"Deleted: {args[0]}")
    return 0


def cmd_connect(db: "Database", enricher: "Enricher", args: list[str]) -> int:
    """Connect two ideas."""
    if len(args) != 2:
        print("Usage: ideapile connect <id> <id>", file=sys.stderr)
        return 1

    db.connect(args[0], args[1])
    print(f"Connected: {args[0]} ↔ {args[1]}")
    return 0


def cmd_disconnect(db: "Database", enricher: "Enricher", args: list[str]) -> int:
    """Remove a connection."""
    if len(args) != 2:
        print("Usage: ideapile disconnect <id> <id>", file=sys.stderr)
        return 1

    db.disconnect(args[0], args[1])
    print(f"Disconnected: {args[0]} ↔ {args[1]}")
    return 0


def _enrich_command(kind: str) -> Callable[["Database", "Enricher", list[str]], int]:
    def command(db: "Database", enricher: "Enricher", args: list[str]) -> int:
        if not args:
            print(f"Usage: ideapile {kind} <id>", file=sys.stderr)
            return 1

        expansion = enricher.enrich(args[0], kind)
        print(expansion.content)
        return 0

    command.__doc__ = f"Run the {kind} enrichment on one idea."
    return command


def cmd_combine(db: "Database", enricher: "Enricher", args: list[str]) -> int:
    """Combine ideas; the result is attached to the first one."""
    expansion = enricher.enrich_combined(args)
    print(expansion.content)
    return 0


def cmd_links(db: "Database", enricher: "Enricher", args: list[str]) -> int:
    """Find connections with AI and record them."""
    if not args:
        print("Usage: ideapile links <id>", file=sys.stderr)
        return 1

    connected = enricher.link_related(args[0])
    if not connected:
        print("No connections found.")
        return 0
    for other_id in connected:
        print(f"Connected: {args[0]} ↔ {other_id}")
    return 0


def cmd_tags(db: "Database", enricher: "Enricher", args: list[str]) -> int:
    """Generate tags for free text."""
    if not args:
        print("Usage: ideapile tags <text>", file=sys.stderr)
        return 1

    print(", ".join(enricher.generate_tags(" ".join(args))))
    return 0


def cmd_stats(db: "Database", enricher: "Enricher", args: list[str]) -> int:
    """Show database statistics."""
    from ideapile.surfacing import format_stats

    print(format_stats(db.get_stats()))
    return 0


def cmd_export(db: "Database", enricher: "Enricher", args: list[str]) -> int:
    """Dump everything as JSON."""
    import json

    print(json.dumps(db.export(), indent=2, ensure_ascii=False))
    return 0


def cmd_health(args: list[str]) -> int:
    """Run health checks. --offline skips the API round trip."""
    from ideapile.health import format_health_report, run_health_check

    online = "--offline" not in args
    print(format_health_report(run_health_check(online=online)))
    return 0


COMMANDS: dict[str, Callable[["Database", "Enricher", list[str]], int]] = {
    "list": cmd_list,
    "find": cmd_find,
    "show": cmd_show,
    "fav": cmd_fav,
    "edit": cmd_edit,
    "rm": cmd_rm,
    "connect": cmd_connect,
    "disconnect": cmd_disconnect,
    "expand": _enrich_command("expand"),
    "suggest": _enrich_command("suggest"),
    "inspire": _enrich_command("inspire"),
    "combine": cmd_combine,
    "links": cmd_links,
    "tags": cmd_tags,
    "stats": cmd_stats,
    "export": cmd_export,
}


def _run(handler: Callable[..., int], *handler_args: Any) -> int:
    """Run a command, turning IdeaPile errors into an exit code."""
    from ideapile.errors import IdeaPileError

    try:
        return handler(*handler_args)
    except IdeaPileError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


def main() -> int:
    """
    Main entry point.

    Optimized for minimal startup time on the capture path.
    """
    setup_logging()
    args = sys.argv[1:]

    # No args - check for piped input
    if not args:
        if not sys.stdin.isatty():
            text = sys.stdin.read().strip()
            if text:
                db, enricher = build_services()
                return _run(cmd_capture, db, enricher, text)
        print_help()
        return 0

    first_arg = args[0]

    if first_arg in ("--help", "-h", "help"):
        print_help()
        return 0

    if first_arg in ("--version", "-v", "version"):
        print_version()
        return 0

    if first_arg == "health":
        return cmd_health(args[1:])

    db, enricher = build_services()

    if first_arg in COMMANDS:
        return _run(COMMANDS[first_arg], db, enricher, args[1:])

    # Everything else is an idea to capture
    # Join all args (allows: ideapile Plan a trip to Japan)
    text = " ".join(args)

    if not text.strip():
        print("Error: Empty idea", file=sys.stderr)
        return 1

    return _run(cmd_capture, db, enricher, text)


if __name__ == "__main__":
    sys.exit(main())
