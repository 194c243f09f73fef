"""
Recommendation engine: content-based, collaborative and hybrid.

- Preferences = explicit genre subscriptions + genres of movies the user rated >= 4.
- Content-based: unrated movies in preferred genres, newest first.
- Collaborative: Jaccard similarity on rated-movie sets, then movies the top
  neighbours rated >= 4 that the user has not rated yet.
- Hybrid: content-based first, collaborative after, deduplicated by movie id.

Everything is recomputed from the database on each call. Data-access errors
are logged and degrade to an empty list; callers always get a list back.
"""
from __future__ import annotations

import functools
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from django.conf import settings
from django.core.cache import cache
from django.db.models import F

from .models import Movie, MovieGenre, Rating, UserGenre

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
NEIGHBOR_COUNT = 5   # top-K most similar users used for collaborative filtering
HIGH_RATING = 4      # "liked it" threshold, inclusive

# newest first; movies without a year last, ties by id
NEWEST_FIRST = (F("release_year").desc(nulls_last=True), "id")


@dataclass
class Recommendation:
    movies: List[Movie] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _failed(what: str, exc: Exception) -> Recommendation:
    logger.exception("Error generating %s recommendations", what)
    return Recommendation(movies=[], error=f"{type(exc).__name__}: {exc}")


def _coerce_limit(limit) -> int:
    return max(int(limit), 0)


def _with_genres(qs):
    return qs.prefetch_related("genres")


# ---------------- Preferences ----------------

def preferred_genre_ids(user_id) -> Set[int]:
    explicit = UserGenre.objects.filter(user_id=user_id).values_list("genre_id", flat=True)
    implicit = MovieGenre.objects.filter(
        movie__ratings__user_id=user_id,
        movie__ratings__value__gte=HIGH_RATING,
    ).values_list("genre_id", flat=True)
    return set(explicit) | set(implicit)


def rated_movie_ids(user_id) -> Set[int]:
    return set(Rating.objects.filter(user_id=user_id).values_list("movie_id", flat=True))


# ---------------- Content-based ----------------

def content_based_result(user_id, limit=DEFAULT_LIMIT) -> Recommendation:
    try:
        limit = _coerce_limit(limit)
        genre_ids = preferred_genre_ids(user_id)
        if not genre_ids or not limit:
            return Recommendation()

        qs = (
            Movie.objects.filter(memberships__genre_id__in=genre_ids)
            .exclude(id__in=rated_movie_ids(user_id))
            .distinct()
            .order_by(*NEWEST_FIRST)
        )
        return Recommendation(movies=list(_with_genres(qs)[:limit]))
    except Exception as exc:
        return _failed("content-based", exc)


def get_recommendations(user_id, limit=DEFAULT_LIMIT) -> List[Movie]:
    return content_based_result(user_id, limit).movies


# ---------------- Similarity ----------------

def jaccard(a: Set, b: Set) -> float:
    union = len(a | b)
    if not union:
        return 0.0
    return len(a & b) / union


def rank_neighbors(target_ids: Set[int], others: Dict[int, Set[int]]) -> List[Tuple[int, float]]:
    """
    Score every other user against the target's rated set and sort by score,
    highest first. Equal scores keep ascending user id order.
    """
    scored = [(uid, jaccard(target_ids, others[uid])) for uid in sorted(others)]
    scored.sort(key=lambda t: t[1], reverse=True)
    return scored


def user_similarities(user_id) -> List[Tuple[int, float]]:
    """
    (other_user_id, score) for every user sharing at least one rated movie
    with user_id. Users with no overlap are never candidates, so every
    returned score is > 0.
    """
    target_ids = rated_movie_ids(user_id)
    if not target_ids:
        return []

    candidates = (
        Rating.objects.filter(movie_id__in=target_ids)
        .exclude(user_id=user_id)
        .values("user_id")
    )
    others: Dict[int, Set[int]] = defaultdict(set)
    for uid, mid in Rating.objects.filter(user_id__in=candidates).values_list("user_id", "movie_id"):
        others[uid].add(mid)
    return rank_neighbors(target_ids, others)


# ---------------- Collaborative ----------------

def collaborative_result(user_id, limit=DEFAULT_LIMIT, neighbors=NEIGHBOR_COUNT) -> Recommendation:
    try:
        limit = _coerce_limit(limit)
        similar = user_similarities(user_id)
        if not similar or not limit:
            return Recommendation()

        neighbor_ids = [uid for uid, _ in similar[:neighbors]]
        qs = (
            Movie.objects.filter(
                ratings__user_id__in=neighbor_ids,
                ratings__value__gte=HIGH_RATING,
            )
            .exclude(id__in=Rating.objects.filter(user_id=user_id).values("movie_id"))
            .distinct()
            .order_by(*NEWEST_FIRST)
        )
        return Recommendation(movies=list(_with_genres(qs)[:limit]))
    except Exception as exc:
        return _failed("collaborative", exc)


def get_collaborative_recommendations(user_id, limit=DEFAULT_LIMIT) -> List[Movie]:
    return collaborative_result(user_id, limit).movies


# ---------------- Hybrid ----------------

def merge_unique(limit: int, *lists: Iterable[Movie]) -> List[Movie]:
    """Concatenate, keep the first occurrence of each movie id, cut at limit."""
    unique: Dict[int, Movie] = {}
    for movies in lists:
        for movie in movies:
            unique.setdefault(movie.id, movie)
    return list(unique.values())[:_coerce_limit(limit)]


def hybrid_result(user_id, limit=DEFAULT_LIMIT) -> Recommendation:
    content = content_based_result(user_id, limit)
    collab = collaborative_result(user_id, limit)
    try:
        movies = merge_unique(limit, content.movies, collab.movies)
    except Exception as exc:
        return _failed("hybrid", exc)
    # one side failing still returns what the other side produced
    if content.ok or collab.ok:
        return Recommendation(movies=movies)
    return Recommendation(movies=movies, error=content.error)


def get_hybrid_recommendations(user_id, limit=DEFAULT_LIMIT) -> List[Movie]:
    return hybrid_result(user_id, limit).movies


# ---------------- Optional cache ----------------

ALL_USERS = "all"


def _version_key(user_id) -> str:
    return f"recs-ver:{user_id}"


def invalidate_recommendations(user_id=ALL_USERS) -> None:
    """
    Bump a cache version so memoized lists are not served again. A rating can
    change anyone's neighbours, so rating writes bump ALL_USERS; genre
    subscriptions only touch the subscriber's own lists.
    """
    key = _version_key(user_id)
    cache.add(key, 0, None)
    try:
        cache.incr(key)
    except ValueError:  # evicted between add and incr
        cache.set(key, 1, None)


def cached(func):
    """
    Memoize a recommender per (user, limit) in Django's cache for
    RECOMMENDATIONS_CACHE_SECONDS. 0 (the default) bypasses the cache.
    Keys carry the shared and per-user versions bumped by
    invalidate_recommendations().
    """
    @functools.wraps(func)
    def wrapper(user_id, limit=DEFAULT_LIMIT):
        timeout = int(getattr(settings, "RECOMMENDATIONS_CACHE_SECONDS", 0) or 0)
        if timeout <= 0:
            return func(user_id, limit)
        try:
            limit_key = _coerce_limit(limit)
        except (TypeError, ValueError):
            # uncacheable limit; the recommender itself fails soft on it
            return func(user_id, limit)
        shared = cache.get_or_set(_version_key(ALL_USERS), 0, None)
        own = cache.get_or_set(_version_key(user_id), 0, None)
        key = f"recs:v{shared}.{own}:{func.__name__}:{user_id}:{limit_key}"
        movies = cache.get(key)
        if movies is None:
            movies = func(user_id, limit)
            cache.set(key, movies, timeout)
        return movies

    return wrapper
