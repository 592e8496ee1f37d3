"""
Response caching for read-mostly views (leaderboards).

Cached entries are grouped; each group carries a generation number that is
part of every key. Invalidating a group bumps its generation, so stale
entries are simply never read again and age out on their own. This works
the same on SimpleCache and Redis without pattern deletes.
"""

import functools

from flask import current_app, request

from dailypicks import cache


def _generation_key(group):
    return f"generation:{group}"


def current_generation(group):
    return cache.get(_generation_key(group)) or 0


def make_cache_key(group):
    """Key for the current request within a cache group"""
    return f"{group}:{current_generation(group)}:{request.full_path}"


def cached_route(group, timeout=300):
    """
    Cache a view's return value under `group`.

    The view must return something picklable (a dict, not a Response).
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            cache_key = make_cache_key(group)

            result = cache.get(cache_key)
            if result is not None:
                current_app.logger.debug(f"Cache hit: {cache_key}")
                return result

            result = f(*args, **kwargs)
            cache.set(cache_key, result, timeout=timeout)
            return result

        return wrapped

    return decorator


def invalidate_group(group):
    """Drop every cached entry in `group` by moving to a new generation"""
    try:
        generation = current_generation(group) + 1
        cache.set(_generation_key(group), generation, timeout=0)
        current_app.logger.info(f"Cache group '{group}' now at generation {generation}")
    except Exception as e:
        current_app.logger.error(f"Failed to invalidate cache group '{group}': {e}")
