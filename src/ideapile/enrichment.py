"""
LLM enrichment for IdeaPile.

Builds prompts from ideas, calls the remote completion service, and turns the
replies into expansions, connections, or tags.

Failure policy:
- expand / combine / suggest_related / inspire propagate every error so the
  caller can show it and retry. Nothing is written when they fail.
- find_connections, generate_tags, is_configured and test_connection never
  raise; they degrade to a fallback result.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

from ideapile.config import get_llm_settings, load_config
from ideapile.db import Database
from ideapile.errors import (
    DuplicateRequestError,
    InsufficientInputError,
    NotFoundError,
    RemoteServiceError,
    ValidationError,
)
from ideapile.llm import CompletionClient
from ideapile.models import Enrichment, EnrichmentKind, EnrichmentResult, Idea
from ideapile.parsing import parse_connection_indices, parse_tags

logger = logging.getLogger(__name__)

# Output length and sampling for each call
MAX_TOKENS = 500
INSPIRE_TEMPERATURE = 0.9
CONNECTIONS_MAX_TOKENS = 100
CONNECTIONS_TEMPERATURE = 0.3
TAGS_MAX_TOKENS = 60
TAGS_TEMPERATURE = 0.3
TAG_COUNT = 3
PING_MAX_TOKENS = 10
PING_TOKEN = "OK"

# Used when tag generation is unavailable
FALLBACK_TAGS = ["audio", "transcription", "idea"]

# Max ideas returned when connection finding degrades
FALLBACK_CONNECTIONS = 2


EXPAND_PROMPT = """You are a creative assistant that helps people expand their ideas.

Original idea: "{content}"
Related tags: {tags}

Expand this idea in a creative and useful way. Add details, possibilities, practical examples and paths to implementation. Be specific and constructive.

Reply only with the expansion of the idea, without introductions or explanations of what you are doing."""


COMBINE_PROMPT = """You are a creative assistant that combines different ideas into innovative concepts.

Ideas to combine:
{ideas}

Combine these ideas in a creative and innovative way. Find interesting connections, synergies and possibilities that emerge when these ideas work together. Create a new perspective or approach that takes the best of each idea.

Reply only with the creative combination, without introductions or explanations."""


SUGGEST_PROMPT = """You are a creative assistant that suggests related ideas.

Base idea: "{content}"
Tags: {tags}

Suggest 3-5 related ideas that could complement, expand or connect with this idea. The suggestions should be practical, creative and feasible.

Format your reply as a simple numbered list containing only the suggested ideas."""


INSPIRE_PROMPT = """You are a creative assistant that offers inspiring and different perspectives.

Original idea: "{content}"
Tags: {tags}

Offer a completely different perspective on this idea. Think outside the box: consider other fields, other cultures, other eras. How would someone from a completely different area approach this? What unique or unexpected aspects could be explored?

Be inspiring and innovative in your reply."""


CONNECTIONS_PROMPT = """You are an assistant that finds connections between ideas.

Base idea: "{content}"
Base idea tags: {tags}

Other available ideas:
{ideas}

Analyze and identify which ideas have meaningful connections with the base idea. Consider:
- Similar themes
- Related concepts
- Possibilities for combination
- Complementary applications

Reply only with the numbers of the connected ideas, separated by commas (e.g. "1, 3, 5"). If you find no meaningful connections, reply "none"."""


TAGS_PROMPT = """You are an assistant that labels short notes with tags.

Text: "{text}"

Suggest exactly {count} short, lowercase tags (one or two words each) that describe this text.

Reply only with the tags separated by commas (e.g. "travel, japan, planning")."""


PING_PROMPT = 'Reply only: "OK"'


def ping(client: CompletionClient) -> bool:
    """Minimal round trip; True iff the reply contains the expected token."""
    try:
        reply = client.complete(PING_PROMPT, max_tokens=PING_MAX_TOKENS)
    except Exception as e:
        logger.warning("Connection test failed: %s", e)
        return False
    return PING_TOKEN in (reply or "")


def _format_tags(tags: Sequence[str]) -> str:
    return ", ".join(tags)


def _combine_key(ideas: Sequence[Idea]) -> str:
    return ",".join(sorted(idea.id for idea in ideas))


def _numbered_listing(ideas: Sequence[Idea]) -> str:
    return "\n".join(
        f'{index}. "{idea.content}" (Tags: {_format_tags(idea.tags)})'
        for index, idea in enumerate(ideas, 1)
    )


class Enricher:
    """
    Orchestrates enrichment calls for ideas held in a Database.

    Config is re-read for every call unless one is injected. A client can be
    injected for tests; otherwise one is built per call from the current
    config.
    """

    def __init__(
        self,
        db: Database,
        config: dict[str, Any] | None = None,
        client: CompletionClient | None = None,
    ):
        self.db = db
        self._config = config
        self._client = client
        self._in_flight: dict[tuple[str, str], int] = {}
        self._in_flight_lock = threading.Lock()

    # Plumbing

    def _load_config(self) -> dict[str, Any]:
        return self._config if self._config is not None else load_config()

    def _get_client(self) -> CompletionClient:
        if self._client is not None:
            return self._client
        return CompletionClient.from_config(self._load_config())

    def _temperature(self) -> float:
        return get_llm_settings(self._load_config())["temperature"]

    @contextmanager
    def _guard(self, key: str, kind: str) -> Iterator[None]:
        """
        Reject a second concurrent request for the same (idea, kind).

        Re-entering from the thread that already holds the slot is allowed,
        so enrich() can cover both the remote call and the write.
        """
        token = (key, kind)
        owner = threading.get_ident()
        with self._in_flight_lock:
            holder = self._in_flight.get(token)
            if holder == owner:
                reentrant = True
            elif holder is not None:
                raise DuplicateRequestError(
                    f"A {kind} request is already running for {key}",
                    details={"idea_id": key, "kind": kind},
                )
            else:
                reentrant = False
                self._in_flight[token] = owner
        try:
            yield
        finally:
            if not reentrant:
                with self._in_flight_lock:
                    self._in_flight.pop(token, None)

    def is_in_flight(self, idea_id: str, kind: EnrichmentKind | str) -> bool:
        kind = EnrichmentKind(kind).value
        with self._in_flight_lock:
            return (idea_id, kind) in self._in_flight

    def _complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        text = self._get_client().complete(prompt, max_tokens=max_tokens, temperature=temperature)
        if not text or not text.strip():
            raise RemoteServiceError("Empty response from the model")
        return text.strip()

    # Primary enrichment calls (errors propagate)

    def expand(self, idea: Idea) -> EnrichmentResult:
        """Elaborate on an idea, using its tags as context."""
        prompt = EXPAND_PROMPT.format(content=idea.content, tags=_format_tags(idea.tags))
        with self._guard(idea.id, EnrichmentKind.EXPAND.value):
            content = self._complete(prompt, MAX_TOKENS, self._temperature())
        logger.info("Idea expanded: %s", idea.id)
        return EnrichmentResult(kind=EnrichmentKind.EXPAND, content=content)

    def combine(self, ideas: Sequence[Idea]) -> EnrichmentResult:
        """Merge two or more ideas into a new concept."""
        if len(ideas) < 2:
            raise InsufficientInputError(
                "At least 2 ideas are required to combine",
                details={"count": len(ideas)},
            )

        related = [idea.id for idea in ideas]
        prompt = COMBINE_PROMPT.format(ideas=_numbered_listing(ideas))
        with self._guard(_combine_key(ideas), EnrichmentKind.COMBINE.value):
            content = self._complete(prompt, MAX_TOKENS, self._temperature())
        logger.info("Ideas combined: %s", ", ".join(related))
        return EnrichmentResult(
            kind=EnrichmentKind.COMBINE,
            content=content,
            related_ideas=related,
        )

    def suggest_related(self, idea: Idea) -> EnrichmentResult:
        """Ask for 3-5 related ideas as a numbered list. Stored as returned."""
        prompt = SUGGEST_PROMPT.format(content=idea.content, tags=_format_tags(idea.tags))
        with self._guard(idea.id, EnrichmentKind.SUGGEST.value):
            content = self._complete(prompt, MAX_TOKENS, self._temperature())
        logger.info("Related ideas suggested: %s", idea.id)
        return EnrichmentResult(kind=EnrichmentKind.SUGGEST, content=content)

    def inspire(self, idea: Idea) -> EnrichmentResult:
        """Like expand, at maximum temperature."""
        prompt = INSPIRE_PROMPT.format(content=idea.content, tags=_format_tags(idea.tags))
        with self._guard(idea.id, EnrichmentKind.INSPIRE.value):
            content = self._complete(prompt, MAX_TOKENS, INSPIRE_TEMPERATURE)
        logger.info("Idea inspired: %s", idea.id)
        return EnrichmentResult(kind=EnrichmentKind.INSPIRE, content=content)

    # Degrading calls (never raise)

    def find_connections(self, idea: Idea, corpus: Sequence[Idea]) -> list[str]:
        """
        Ask which other ideas in the corpus connect to this one.

        Returns ids of connected ideas. On any call or parse failure, returns
        the first min(2, len(others)) other ideas instead of raising.
        """
        others = [other for other in corpus if other.id != idea.id]
        if not others:
            return []

        prompt = CONNECTIONS_PROMPT.format(
            content=idea.content,
            tags=_format_tags(idea.tags),
            ideas=_numbered_listing(others),
        )

        try:
            reply = self._complete(prompt, CONNECTIONS_MAX_TOKENS, CONNECTIONS_TEMPERATURE)
            indices = parse_connection_indices(reply, len(others))
        except Exception as e:
            fallback = [other.id for other in others[:FALLBACK_CONNECTIONS]]
            logger.warning(
                "Finding connections for %s failed (%s); falling back to %d ideas",
                idea.id, e, len(fallback),
            )
            return fallback

        connected = [others[index].id for index in indices]
        logger.info("Connections found for %s: %d", idea.id, len(connected))
        return connected

    def generate_tags(self, text: str) -> list[str]:
        """Derive a small tag set from free text. Falls back to FALLBACK_TAGS."""
        prompt = TAGS_PROMPT.format(text=text, count=TAG_COUNT)
        try:
            reply = self._complete(prompt, TAGS_MAX_TOKENS, TAGS_TEMPERATURE)
            return parse_tags(reply, limit=TAG_COUNT)
        except Exception as e:
            logger.warning("Tag generation failed (%s); using fallback tags", e)
            return list(FALLBACK_TAGS)

    def is_configured(self) -> bool:
        """True iff a credential for the remote service is present."""
        try:
            if self._client is not None:
                return self._client.is_configured
            return bool(get_llm_settings(self._load_config())["api_key"])
        except Exception as e:
            logger.warning("Could not read LLM configuration: %s", e)
            return False

    def test_connection(self) -> bool:
        """Minimal round trip; True iff the reply contains the expected token."""
        try:
            client = self._get_client()
        except Exception as e:
            logger.warning("Connection test failed: %s", e)
            return False
        return ping(client)

    # Store-integrated operations

    def _require(self, idea_id: str) -> Idea:
        idea = self.db.get_by_id(idea_id)
        if idea is None:
            raise NotFoundError(f"Idea not found: {idea_id}", details={"id": idea_id})
        return idea

    def enrich(self, idea_id: str, kind: EnrichmentKind | str) -> Enrichment:
        """
        Run a single-idea enrichment and persist the result.

        kind is expand, suggest or inspire. Combine goes through
        enrich_combined().
        """
        kind = EnrichmentKind(kind)
        handlers = {
            EnrichmentKind.EXPAND: self.expand,
            EnrichmentKind.SUGGEST: self.suggest_related,
            EnrichmentKind.INSPIRE: self.inspire,
        }
        if kind not in handlers:
            raise ValidationError(
                "Combine needs several ideas; use enrich_combined()",
                details={"kind": kind.value},
            )

        idea = self._require(idea_id)
        with self._guard(idea.id, kind.value):
            result = handlers[kind](idea)
            return self.db.add_enrichment(idea.id, result.kind, result.content, result.related_ideas)

    def enrich_combined(self, idea_ids: Sequence[str]) -> Enrichment:
        """Combine ideas and attach the result to the first one."""
        if len(idea_ids) < 2:
            raise InsufficientInputError(
                "At least 2 ideas are required to combine",
                details={"count": len(idea_ids)},
            )
        ideas = [self._require(idea_id) for idea_id in idea_ids]
        with self._guard(_combine_key(ideas), EnrichmentKind.COMBINE.value):
            result = self.combine(ideas)
            return self.db.add_enrichment(ideas[0].id, result.kind, result.content, result.related_ideas)

    def link_related(self, idea_id: str) -> list[str]:
        """Find connections across the whole store and record them."""
        idea = self._require(idea_id)
        connected = self.find_connections(idea, self.db.list_all())
        for other_id in connected:
            self.db.connect(idea.id, other_id)
        return connected
