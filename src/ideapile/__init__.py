"""
IdeaPile: local-first idea capture with AI enrichment.

Provides:
- Zero-friction capture of short ideas into a local SQLite store
- LLM-powered enrichment (expand, combine, suggest, inspire, connections)
- Temporal bucketing of ideas for browsing
"""

__version__ = "0.1.0"
