from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import func

from extensions import db
from models_wiki import Comment, Page, Revision, User
from scoring import ActivityCounts


SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class UserActivity:
    user_id: int
    display_name: str | None
    wallet_address: str
    counts: ActivityCounts


def _epoch_seconds(ts: datetime) -> float:
    # Stored timestamps are naive UTC (datetime.utcnow).
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.timestamp()


def hour_bucket(ts: datetime) -> int:
    """Index of the UTC hour containing ts, counted from the Unix epoch."""
    return int(_epoch_seconds(ts) // SECONDS_PER_HOUR)


def account_age_days(created_at: datetime, now: datetime | None = None) -> int:
    now = now or datetime.utcnow()
    age = _epoch_seconds(now) - _epoch_seconds(created_at)
    return max(0, int(age // SECONDS_PER_DAY))


def _slots(events: Iterable[tuple[int, datetime]]) -> set[tuple[int, int]]:
    return {(page_id, hour_bucket(ts)) for page_id, ts in events}


def aggregate_activity(
    pages_created: int,
    revisions: Iterable[tuple[int, datetime]],
    comments: Iterable[tuple[int, datetime]],
    created_at: datetime,
    now: datetime | None = None,
) -> ActivityCounts:
    """Reduce raw (page_id, timestamp) events to anti-farming counts.

    Any number of revisions (or comments) by the same user on the same page
    within one UTC hour counts as a single slot. unique_edited_pages is not
    bucketed: a page counts once no matter how often it was edited.
    """
    revisions = list(revisions)
    return ActivityCounts(
        pages_created=max(0, int(pages_created or 0)),
        edit_slots=len(_slots(revisions)),
        unique_edited_pages=len({page_id for page_id, _ in revisions}),
        comment_slots=len(_slots(comments)),
        account_age_days=account_age_days(created_at, now),
    )


def load_user_activity(user: User, now: datetime | None = None) -> ActivityCounts:
    pages_created = (
        db.session.query(func.count(Page.id))
        .filter(Page.author_id == user.id)
        .scalar()
        or 0
    )
    revisions = (
        db.session.query(Revision.page_id, Revision.created_at)
        .filter(Revision.author_id == user.id)
        .all()
    )
    comments = (
        db.session.query(Comment.page_id, Comment.created_at)
        .filter(Comment.author_id == user.id)
        .all()
    )
    return aggregate_activity(pages_created, revisions, comments, user.created_at, now)


def load_all_activity(now: datetime | None = None) -> list[UserActivity]:
    """Batch form for the leaderboard: one query per table, grouped in memory."""
    now = now or datetime.utcnow()

    page_counts = dict(
        db.session.query(Page.author_id, func.count(Page.id))
        .group_by(Page.author_id)
        .all()
    )

    revisions_by_user = defaultdict(list)
    for author_id, page_id, created_at in db.session.query(
        Revision.author_id, Revision.page_id, Revision.created_at
    ):
        revisions_by_user[author_id].append((page_id, created_at))

    comments_by_user = defaultdict(list)
    for author_id, page_id, created_at in db.session.query(
        Comment.author_id, Comment.page_id, Comment.created_at
    ):
        comments_by_user[author_id].append((page_id, created_at))

    users = db.session.query(
        User.id, User.display_name, User.wallet_address, User.created_at
    ).order_by(User.id.asc())

    out = []
    for user_id, display_name, wallet_address, created_at in users:
        counts = aggregate_activity(
            page_counts.get(user_id, 0),
            revisions_by_user.get(user_id, ()),
            comments_by_user.get(user_id, ()),
            created_at,
            now,
        )
        out.append(UserActivity(user_id, display_name, wallet_address, counts))
    return out
