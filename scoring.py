"""Contribution scoring.

Two independent scores are derived from the same ActivityCounts:

- points: linear weighted total used for ranking and token rewards.
- ring score: log-dampened 0-100 value shown on profiles only.

The weights and dampening bases are policy values kept for compatibility with
previously published leaderboards and distributions. Change them only together
with an announcement.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


WEIGHTS: dict[str, int] = {
    "page": 150,
    "edit": 80,
    "contribution": 80,
    "comment": 70,
    "tenure": 50,
}

TENURE_PERIOD_DAYS = 30

# (weight, dampening base) per ring-score component
RING_PAGES = (15, 10)
RING_EDITS = (8, 5)
RING_CONTRIBUTIONS = (8, 5)
RING_COMMENTS = (7, 8)
RING_TENURE = (10, 50)
RING_MAX = 100

# Profile tiers derived from the ring score
RING_TIERS: list[tuple[str, int]] = [
    ("New", 0),
    ("Member", 20),
    ("Active", 50),
    ("Trusted", 80),
]


@dataclass(frozen=True)
class ActivityCounts:
    pages_created: int = 0
    edit_slots: int = 0
    unique_edited_pages: int = 0
    comment_slots: int = 0
    account_age_days: int = 0


@dataclass(frozen=True)
class ScoreBreakdown:
    pages: int
    edits: int
    contributions: int
    comments: int
    tenure: int

    @property
    def total(self) -> int:
        return self.pages + self.edits + self.contributions + self.comments + self.tenure

    def to_dict(self):
        return {
            "pages": self.pages,
            "edits": self.edits,
            "contributions": self.contributions,
            "comments": self.comments,
            "tenure": self.tenure,
        }


def compute_points(counts: ActivityCounts) -> ScoreBreakdown:
    return ScoreBreakdown(
        pages=counts.pages_created * WEIGHTS["page"],
        edits=counts.edit_slots * WEIGHTS["edit"],
        contributions=counts.unique_edited_pages * WEIGHTS["contribution"],
        comments=counts.comment_slots * WEIGHTS["comment"],
        tenure=(counts.account_age_days // TENURE_PERIOD_DAYS) * WEIGHTS["tenure"],
    )


def total_points(counts: ActivityCounts) -> int:
    return compute_points(counts).total


def dampen(value: float, base: float) -> float:
    if value <= 0:
        return 0.0
    return math.log(value + 1) / math.log(base)


def ring_score(counts: ActivityCounts) -> int:
    """Log-dampened 0-100 score for profile display.

    Tenure only contributes once the account has at least one edit or comment
    slot, so dormant accounts do not build up a ring just by existing.
    """
    has_activity = 1 if (counts.edit_slots + counts.comment_slots) > 0 else 0
    raw = (
        RING_PAGES[0] * dampen(counts.pages_created, RING_PAGES[1])
        + RING_EDITS[0] * dampen(counts.edit_slots, RING_EDITS[1])
        + RING_CONTRIBUTIONS[0] * dampen(counts.unique_edited_pages, RING_CONTRIBUTIONS[1])
        + RING_COMMENTS[0] * dampen(counts.comment_slots, RING_COMMENTS[1])
        + RING_TENURE[0] * dampen(counts.account_age_days, RING_TENURE[1]) * has_activity
    )
    # half-up rounding, not banker's rounding
    return max(0, min(math.floor(raw + 0.5), RING_MAX))


def ring_tier(score: int) -> str:
    tier = RING_TIERS[0][0]
    for name, threshold in RING_TIERS:
        if score >= threshold:
            tier = name
    return tier
