"""CLI commands for operating the cache.

Usage:
    panpal cache invalidate "recipes:list:*" --bucket recipes
    panpal cache ttl
"""

from __future__ import annotations

import asyncio

import typer

from panpal.cache import (
    CacheBucket,
    CacheKeys,
    InvalidationReport,
    InvalidationTarget,
    InvalidKeyComponentError,
    TTLPolicy,
    close_cache,
    init_cache,
    validate_pattern,
)
from panpal.config import settings

app = typer.Typer(help="Inspect and invalidate the cache", no_args_is_help=True)


async def _invalidate(target: InvalidationTarget) -> tuple[bool, InvalidationReport]:
    cache = await init_cache(settings)
    try:
        report = await cache.invalidate_patterns([target])
        return cache.enabled, report
    finally:
        await close_cache(cache)


@app.command("invalidate")
def invalidate(
    pattern: str = typer.Argument(..., help="Glob pattern, e.g. 'recipe:42*'"),
    bucket: str = typer.Option(CacheBucket.DEFAULT, "--bucket", "-b", help="Cache bucket"),
) -> None:
    """Delete every key in a bucket matching PATTERN."""
    try:
        target = InvalidationTarget(validate_pattern(pattern), bucket)
        full_pattern = CacheKeys.full_key(bucket, target.pattern)
    except InvalidKeyComponentError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)

    enabled, report = asyncio.run(_invalidate(target))
    if not enabled:
        typer.echo("Error: cache is disabled or unreachable", err=True)
        raise typer.Exit(code=1)
    if not report.ok:
        typer.echo(f"Error: invalidation failed for {', '.join(report.failed)}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Deleted {report.total_deleted} keys matching {full_pattern}")


@app.command("ttl")
def ttl() -> None:
    """Show the effective TTL per bucket."""
    policy = TTLPolicy(settings.cache_ttl_overrides, fallback=settings.cache_default_ttl)
    for bucket, seconds in sorted(policy.as_dict().items()):
        typer.echo(f"{bucket:<12} {seconds}s")
