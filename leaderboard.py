"""Contribution leaderboard.

Routes:
- GET /api/leaderboard?page=1&pageSize=25

The full ranking is computed in one batched pass over all users and kept in a
LeaderboardCache for LEADERBOARD_TTL_SECONDS. A request after expiry recomputes
synchronously; invalidate() (the "leaderboard" tag) forces the next access to
recompute regardless of age.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from flask import Blueprint, current_app, jsonify, request

from activity import load_all_activity
from errors import internal
from extensions import limiter
from scoring import compute_points


logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 100
CACHE_TAG = "leaderboard"

leaderboard_api = Blueprint("leaderboard_api", __name__)


@dataclass(frozen=True)
class LeaderboardEntry:
    user_id: int
    display_name: str | None
    wallet_address: str
    points: int
    pages: int = 0
    edits: int = 0
    contributions: int = 0
    comments: int = 0

    def to_dict(self):
        return {
            "userId": self.user_id,
            "displayName": self.display_name,
            "walletAddress": self.wallet_address,
            "points": self.points,
            "pages": self.pages,
            "edits": self.edits,
            "contributions": self.contributions,
            "comments": self.comments,
        }


def rank_entries(entries: list[LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Drop zero-point users; order by points desc, then user id asc."""
    return sorted(
        (e for e in entries if e.points > 0),
        key=lambda e: (-e.points, e.user_id),
    )


def compute_leaderboard(now: datetime | None = None) -> list[LeaderboardEntry]:
    entries = []
    for ua in load_all_activity(now):
        c = ua.counts
        entries.append(
            LeaderboardEntry(
                user_id=ua.user_id,
                display_name=ua.display_name,
                wallet_address=ua.wallet_address,
                points=compute_points(c).total,
                pages=c.pages_created,
                edits=c.edit_slots,
                contributions=c.unique_edited_pages,
                comments=c.comment_slots,
            )
        )
    return rank_entries(entries)


class LeaderboardCache:
    """TTL cache around a leaderboard loader with explicit invalidation.

    Refreshes are single-flighted: concurrent requests arriving after expiry
    wait on the lock and reuse the freshly computed list. With a redis
    tag_store the invalidation generation is shared between worker processes.
    """

    def __init__(
        self,
        loader: Callable[[], list[LeaderboardEntry]],
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
        tag_store=None,
        tag: str = CACHE_TAG,
    ):
        self._loader = loader
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._tag_store = tag_store
        self._tag_key = f"cache-tag:{tag}"
        self._lock = threading.Lock()
        self._entries: list[LeaderboardEntry] | None = None
        self._computed_at = 0.0
        self._generation = 0

    def _shared_generation(self) -> int | None:
        if self._tag_store is None:
            return None
        try:
            return int(self._tag_store.get(self._tag_key) or 0)
        except Exception as e:
            logger.warning("Leaderboard tag store unavailable: %s", e)
            return None

    def _is_fresh(self, generation: int | None) -> bool:
        if self._entries is None:
            return False
        if generation is not None and generation != self._generation:
            return False
        return (self._clock() - self._computed_at) < self._ttl

    def get(self) -> list[LeaderboardEntry]:
        generation = self._shared_generation()
        entries = self._entries
        if entries is not None and self._is_fresh(generation):
            return entries
        with self._lock:
            # another request may have refreshed while we waited
            if self._is_fresh(generation):
                return self._entries
            started = self._clock()
            entries = self._loader()
            self._entries = entries
            self._computed_at = self._clock()
            if generation is not None:
                self._generation = generation
            logger.info(
                "Leaderboard recomputed: %d entries in %.3fs", len(entries), self._computed_at - started
            )
            return entries

    def invalidate(self) -> None:
        if self._tag_store is not None:
            try:
                self._tag_store.incr(self._tag_key)
            except Exception as e:
                logger.warning("Leaderboard tag store unavailable, invalidating locally: %s", e)
        with self._lock:
            self._entries = None


def init_leaderboard(app, tag_store=None) -> LeaderboardCache:
    """Create the app's leaderboard cache and register it on app.extensions."""

    def _load():
        with app.app_context():
            return compute_leaderboard()

    cache = LeaderboardCache(
        _load,
        ttl_seconds=app.config.get("LEADERBOARD_TTL_SECONDS", 300),
        tag_store=tag_store,
    )
    app.extensions["leaderboard_cache"] = cache
    return cache


def get_leaderboard_cache() -> LeaderboardCache:
    return current_app.extensions["leaderboard_cache"]


def _int_arg(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_pagination(args, default_page_size: int = DEFAULT_PAGE_SIZE) -> tuple[int, int]:
    page = max(1, _int_arg(args.get("page"), 1))
    page_size = _int_arg(args.get("pageSize"), default_page_size)
    page_size = max(1, min(page_size, MAX_PAGE_SIZE))
    return page, page_size


def paginate(items: list, page: int, page_size: int) -> dict:
    total = len(items)
    start = (page - 1) * page_size
    return {
        "items": items[start:start + page_size],
        "total": total,
        "page": page,
        "pageSize": page_size,
        "totalPages": math.ceil(total / page_size) if total else 0,
    }


@leaderboard_api.get("/api/leaderboard")
@limiter.limit("60 per minute")
def get_leaderboard():
    page, page_size = parse_pagination(request.args)
    try:
        entries = get_leaderboard_cache().get()
    except Exception:
        current_app.logger.exception("Failed to fetch leaderboard")
        return internal("Failed to fetch leaderboard")

    out = paginate(entries, page, page_size)
    out["items"] = [e.to_dict() for e in out["items"]]
    return jsonify(out)
