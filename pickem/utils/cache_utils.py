"""
Cache utilities for standings and league stats
"""

import functools

from flask import current_app

from pickem import cache


def league_cache_key(prefix, league_id, season, *parts):
    suffix = "_".join(str(part) for part in parts)
    return f"{prefix}_league_{league_id}_season_{season}_{suffix}"


def league_version(league_id, season):
    """Current cache generation for a league season"""
    return cache.get(f"version_league_{league_id}_season_{season}") or 0


def cached_league_query(prefix, timeout=300):
    """
    Decorator for caching league-scoped computations

    The wrapped function must take ``(league_id, season, ...)`` as its leading
    arguments. Keys embed a per-league generation counter, so bumping it with
    :func:`invalidate_league_cache` drops every cached entry for that season.

    Args:
        prefix: Prefix for cache key
        timeout: Cache timeout in seconds
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(league_id, season, *args, **kwargs):
            extra = list(args) + [f"{k}={v}" for k, v in sorted(kwargs.items())]
            cache_key = league_cache_key(
                prefix,
                league_id,
                season,
                f"v{league_version(league_id, season)}",
                *extra,
            )

            result = cache.get(cache_key)
            if result is not None:
                current_app.logger.debug(f"Cache hit for key: {cache_key}")
                return result

            result = f(league_id, season, *args, **kwargs)
            cache.set(cache_key, result, timeout=timeout)
            current_app.logger.debug(f"Cache set for key: {cache_key}")

            return result

        return wrapped

    return decorator


def invalidate_league_cache(league_id, season):
    """Invalidate cached standings and stats for one league season"""
    key = f"version_league_{league_id}_season_{season}"
    try:
        cache.set(key, league_version(league_id, season) + 1, timeout=0)
    except Exception as e:
        # Stale entries still expire after their timeout
        current_app.logger.error(f"Failed to invalidate cache {key}: {e}")
