"""
Unique slug assignment for titled records.

``assign_slug`` derives a URL-safe slug from a title and appends ``-1``,
``-2``, ... until the uniqueness oracle reports the candidate free. The
oracle is injected so the same loop serves the ORM, async callers and tests.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Awaitable, Callable, Optional, Type

from django.conf import settings
from django.db import models

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 1000

SlugOracle = Callable[[str, Any], bool]
AsyncSlugOracle = Callable[[str, Any], Awaitable[bool]]

_DISALLOWED = re.compile(r"[^a-z0-9_\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


class SlugError(ValueError):
    """Base class for slug assignment failures."""


class InvalidTitle(SlugError):
    """The title has no characters that survive normalization."""

    def __init__(self, title: str):
        super().__init__(f"Title {title!r} does not produce a usable slug")
        self.title = title


class SlugExhausted(SlugError):
    """No free candidate was found within the attempt limit."""

    def __init__(self, base: str, attempts: int):
        super().__init__(
            f"No unique slug for {base!r} after {attempts} attempts"
        )
        self.base = base
        self.attempts = attempts


def normalize_title(title: str) -> str:
    """
    Turn ``title`` into a slug candidate.

    Surrounding whitespace is stripped before hyphenation, so it never ends
    up as a leading or trailing hyphen. Hyphens typed in the title are kept.
    """
    value = _DISALLOWED.sub("", title.lower())
    value = _WHITESPACE.sub("-", value.strip())
    return _HYPHENS.sub("-", value)


def _candidates(base: str, max_attempts: int):
    yield base
    for counter in range(1, max_attempts):
        yield f"{base}-{counter}"


def _resolve_base(title: str, max_attempts: Optional[int]) -> tuple[str, int]:
    base = normalize_title(title)
    if not base:
        raise InvalidTitle(title)
    if max_attempts is None:
        max_attempts = getattr(settings, "SLUG_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    return base, max_attempts


def assign_slug(
    title: str,
    exclude_id: Any,
    exists: SlugOracle,
    max_attempts: Optional[int] = None,
) -> str:
    """
    Return the first free slug for ``title``.

    ``exists(candidate, exclude_id)`` is called once per attempt and must
    return True when a record other than ``exclude_id`` holds ``candidate``.
    Errors raised by the oracle propagate unchanged.
    """
    base, max_attempts = _resolve_base(title, max_attempts)
    for slug in _candidates(base, max_attempts):
        if not exists(slug, exclude_id):
            return slug
        logger.debug("Slug %s already taken", slug)

    logger.warning("Gave up assigning a slug for %r after %d attempts", title, max_attempts)
    raise SlugExhausted(base, max_attempts)


async def aassign_slug(
    title: str,
    exclude_id: Any,
    exists: AsyncSlugOracle,
    max_attempts: Optional[int] = None,
) -> str:
    """Async variant of :func:`assign_slug`; each lookup is awaited in turn."""
    base, max_attempts = _resolve_base(title, max_attempts)
    for slug in _candidates(base, max_attempts):
        if not await exists(slug, exclude_id):
            return slug
        logger.debug("Slug %s already taken", slug)

    logger.warning("Gave up assigning a slug for %r after %d attempts", title, max_attempts)
    raise SlugExhausted(base, max_attempts)


def _lookup(model: Type[models.Model], slug_field: str, slug: str, exclude_id: Any):
    queryset = model._default_manager.filter(**{slug_field: slug})
    if exclude_id is not None:
        queryset = queryset.exclude(pk=exclude_id)
    return queryset


def model_slug_oracle(model: Type[models.Model], slug_field: str = "slug") -> SlugOracle:
    """Uniqueness oracle backed by ``model``'s default manager."""

    def exists(slug: str, exclude_id: Any) -> bool:
        return _lookup(model, slug_field, slug, exclude_id).exists()

    return exists


def amodel_slug_oracle(
    model: Type[models.Model], slug_field: str = "slug"
) -> AsyncSlugOracle:
    """Async uniqueness oracle backed by ``model``'s default manager."""

    async def exists(slug: str, exclude_id: Any) -> bool:
        return await _lookup(model, slug_field, slug, exclude_id).aexists()

    return exists
