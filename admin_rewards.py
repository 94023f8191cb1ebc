"""Admin rewards dashboard APIs.

Admin access rules:
- The session wallet must equal ADMIN_WALLET, checked on every request.

Routes:
- GET  /api/admin/rewards               live distribution estimate + recent airdrops
- GET  /api/admin/rewards?format=csv    payable rows as a CSV download
- POST /api/admin/rewards               record an executed airdrop snapshot
- POST /api/admin/leaderboard/revalidate
"""

from concurrent.futures import ThreadPoolExecutor

from flask import Blueprint, Response, current_app, jsonify, request

from auth import require_admin
from errors import bad_request, internal
from extensions import db, limiter
from leaderboard import get_leaderboard_cache
from rewards import (
    SnapshotValidationError,
    build_csv,
    compute_shares,
    payable_shares,
    recent_airdrops,
    record_airdrop,
    validate_snapshot,
)
from treasury import TreasuryError, get_treasury_address, get_treasury_balance


admin_rewards = Blueprint("admin_rewards", __name__)

ADMIN_RATE_LIMIT = "60 per minute"


@admin_rewards.get("/api/admin/rewards")
@limiter.limit(ADMIN_RATE_LIMIT)
def api_admin_rewards():
    err = require_admin()
    if err:
        return err

    fmt = (request.args.get("format") or "json").strip().lower()

    try:
        # The balance oracle and the leaderboard are independent: fetch the
        # balance on a worker thread while the leaderboard is read here.
        with ThreadPoolExecutor(max_workers=1) as pool:
            balance_future = pool.submit(get_treasury_balance)
            entries = get_leaderboard_cache().get()
            balance = balance_future.result()
    except TreasuryError as e:
        current_app.logger.error("Treasury balance unavailable: %s", e)
        return internal("Failed to fetch rewards")
    except Exception:
        current_app.logger.exception("Failed to fetch rewards")
        return internal("Failed to fetch rewards")

    distribution = compute_shares(entries, balance)

    if fmt == "csv":
        csv = build_csv(payable_shares(distribution))
        return Response(
            csv,
            mimetype="text/csv",
            headers={"Content-Disposition": 'attachment; filename="airdrop.csv"'},
        )

    return jsonify({
        "treasury": {"address": get_treasury_address(), "balance": float(balance)},
        "totalPoints": distribution.total_points,
        "editors": [e.to_dict() for e in distribution.editors],
        "airdrops": [a.to_dict() for a in recent_airdrops()],
    })


@admin_rewards.post("/api/admin/rewards")
@limiter.limit(ADMIN_RATE_LIMIT)
def api_admin_record_airdrop():
    err = require_admin()
    if err:
        return err

    data = request.get_json(silent=True) or {}
    try:
        tx_hash, total, snapshot = validate_snapshot(data)
    except SnapshotValidationError as e:
        return bad_request(str(e))

    try:
        airdrop = record_airdrop(tx_hash, total, snapshot)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record airdrop")
        return internal("Failed to record airdrop")

    current_app.logger.info(
        "Airdrop %s recorded: tx=%s total=%s editors=%d",
        airdrop.id, airdrop.tx_hash, airdrop.total_amount, airdrop.editor_count,
    )
    return jsonify(airdrop.to_dict()), 201


@admin_rewards.post("/api/admin/leaderboard/revalidate")
@limiter.limit(ADMIN_RATE_LIMIT)
def api_admin_revalidate_leaderboard():
    err = require_admin()
    if err:
        return err
    get_leaderboard_cache().invalidate()
    return jsonify({"success": True, "revalidated": "leaderboard"})
