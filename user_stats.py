from flask import Blueprint, current_app, jsonify

from activity import load_user_activity
from errors import internal, not_found
from extensions import db, limiter
from models_wiki import User
from scoring import compute_points, ring_score, ring_tier


user_stats_api = Blueprint("user_stats_api", __name__)

STATS_RATE_LIMIT = "120 per minute"


def build_user_stats(user: User, now=None) -> dict:
    counts = load_user_activity(user, now)
    breakdown = compute_points(counts)
    score = ring_score(counts)
    return {
        "userId": user.id,
        "displayName": user.display_name,
        "walletAddress": user.wallet_address,
        "memberSince": user.created_at.isoformat() if user.created_at else None,
        "stats": {
            "pages": counts.pages_created,
            "edits": counts.edit_slots,
            "comments": counts.comment_slots,
            "uniqueContributions": counts.unique_edited_pages,
            "accountAgeDays": counts.account_age_days,
        },
        "score": score,
        "tier": ring_tier(score),
        "points": breakdown.total,
        "breakdown": breakdown.to_dict(),
    }


@user_stats_api.get("/api/users/<int:user_id>/stats")
@limiter.limit(STATS_RATE_LIMIT)
def get_user_stats(user_id: int):
    try:
        user = db.session.get(User, user_id)
        if not user:
            return not_found("User not found")
        return jsonify(build_user_stats(user))
    except Exception:
        current_app.logger.exception("Failed to fetch user stats")
        return internal("Failed to fetch user stats")
