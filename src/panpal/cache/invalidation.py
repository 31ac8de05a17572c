"""Write-driven cache invalidation.

Every mutating service operation calls the matching CacheInvalidator method
after its database write commits. Each method maps the write to every key
family it could have staled and removes them via pattern invalidation.

The policy over-invalidates on purpose: any recipe write evicts all recipe
list pages, because list membership and ordering (by date, by rating) make
precise targeting impractical.

Example:
    invalidator = CacheInvalidator(cache)

    recipe = await repo.update(recipe_id, changes)
    await session.commit()
    await invalidator.recipe_changed(recipe_id)
"""

from __future__ import annotations

import logging
from enum import Enum

from panpal.cache.keys import CacheKeys
from panpal.cache.service import CacheAsideService, InvalidationReport, InvalidationTarget
from panpal.cache.ttl import CacheBucket

logger = logging.getLogger(__name__)


class InvalidationEvent(str, Enum):
    """Kind of write that triggered an invalidation."""

    RECIPE_CREATED = "recipe_created"
    RECIPE_CHANGED = "recipe_changed"
    RECIPE_DELETED = "recipe_deleted"
    RATING_CHANGED = "rating_changed"
    FAVORITE_CHANGED = "favorite_changed"
    USER_CHANGED = "user_changed"


def _list_targets() -> list[InvalidationTarget]:
    pattern = CacheKeys.recipe_list_pattern()
    return [
        InvalidationTarget(pattern, CacheBucket.RECIPES),
        InvalidationTarget(pattern, CacheBucket.SEARCH),
    ]


def _trending_target() -> InvalidationTarget:
    return InvalidationTarget(CacheKeys.trending_pattern(), CacheBucket.TRENDING)


def _recipe_target(recipe_id: str) -> InvalidationTarget:
    return InvalidationTarget(CacheKeys.recipe_pattern(recipe_id), CacheBucket.RECIPES)


def _all_favorites_target() -> InvalidationTarget:
    # Favorites pages embed recipe summaries for any user
    return InvalidationTarget(CacheKeys.user_favorites_pattern(), CacheBucket.FAVORITES)


def targets_for(
    event: InvalidationEvent,
    *,
    recipe_id: str | None = None,
    user_id: str | None = None,
) -> list[InvalidationTarget]:
    """Resolve the (pattern, bucket) targets a write invalidates."""
    if event == InvalidationEvent.RECIPE_CREATED:
        return [*_list_targets(), _trending_target()]

    if event in (InvalidationEvent.RECIPE_CHANGED, InvalidationEvent.RECIPE_DELETED):
        if recipe_id is None:
            raise ValueError(f"{event.value} requires recipe_id")
        targets = [
            _recipe_target(recipe_id),
            *_list_targets(),
            _trending_target(),
            _all_favorites_target(),
        ]
        if event == InvalidationEvent.RECIPE_DELETED:
            ratings = CacheKeys.recipe_ratings_pattern(recipe_id)
            targets.append(InvalidationTarget(ratings, CacheBucket.RATINGS))
        return targets

    if event == InvalidationEvent.RATING_CHANGED:
        if recipe_id is None:
            raise ValueError(f"{event.value} requires recipe_id")
        return [
            InvalidationTarget(CacheKeys.recipe_ratings_pattern(recipe_id), CacheBucket.RATINGS),
            _recipe_target(recipe_id),
            *_list_targets(),
            _trending_target(),
            # Averages and the rater's own score show on every favorites page
            _all_favorites_target(),
        ]

    if event == InvalidationEvent.FAVORITE_CHANGED:
        if recipe_id is None or user_id is None:
            raise ValueError(f"{event.value} requires recipe_id and user_id")
        return [
            InvalidationTarget(CacheKeys.user_favorites_pattern(user_id), CacheBucket.FAVORITES),
            _recipe_target(recipe_id),
            *_list_targets(),
            # New favorites count towards the trending score
            _trending_target(),
        ]

    if event == InvalidationEvent.USER_CHANGED:
        if user_id is None:
            raise ValueError(f"{event.value} requires user_id")
        return [
            InvalidationTarget(CacheKeys.user_pattern(user_id), CacheBucket.RECIPES),
            InvalidationTarget(CacheKeys.user_favorites_pattern(user_id), CacheBucket.FAVORITES),
            *_list_targets(),
            # Rating pages show each rater's current name and avatar
            InvalidationTarget(CacheKeys.recipe_ratings_pattern(), CacheBucket.RATINGS),
        ]

    raise ValueError(f"Unknown invalidation event: {event!r}")


class CacheInvalidator:
    """Translates domain writes into pattern invalidations.

    Store failures never raise: a failed target is logged and listed in the
    returned report while the remaining targets still run.
    """

    def __init__(self, cache: CacheAsideService):
        self.cache = cache

    async def _run(
        self,
        event: InvalidationEvent,
        *,
        recipe_id: str | None = None,
        user_id: str | None = None,
    ) -> InvalidationReport:
        targets = targets_for(event, recipe_id=recipe_id, user_id=user_id)
        report = await self.cache.invalidate_patterns(targets)
        if report.ok:
            logger.debug(f"{event.value}: invalidated {report.total_deleted} keys")
        else:
            logger.warning(
                f"{event.value}: invalidation incomplete, failed targets {report.failed}; "
                "affected entries stay stale until their TTL expires"
            )
        return report

    async def recipe_created(self) -> InvalidationReport:
        """A new recipe can appear on any list page and in trending."""
        return await self._run(InvalidationEvent.RECIPE_CREATED)

    async def recipe_changed(self, recipe_id: str) -> InvalidationReport:
        """Recipe fields or image changed."""
        return await self._run(InvalidationEvent.RECIPE_CHANGED, recipe_id=recipe_id)

    async def recipe_deleted(self, recipe_id: str) -> InvalidationReport:
        return await self._run(InvalidationEvent.RECIPE_DELETED, recipe_id=recipe_id)

    async def rating_changed(self, recipe_id: str) -> InvalidationReport:
        """A rating was added, changed or removed; averages shift everywhere."""
        return await self._run(InvalidationEvent.RATING_CHANGED, recipe_id=recipe_id)

    async def favorite_changed(self, user_id: str, recipe_id: str) -> InvalidationReport:
        return await self._run(
            InvalidationEvent.FAVORITE_CHANGED, recipe_id=recipe_id, user_id=user_id
        )

    async def user_changed(self, user_id: str) -> InvalidationReport:
        """Profile changes show up in viewer-scoped entries and rating pages."""
        return await self._run(InvalidationEvent.USER_CHANGED, user_id=user_id)
