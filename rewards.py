"""Reward distribution: proportional shares of the treasury by leaderboard points.

amount_i = floor(balance * points_i / total_points, 2dp)

Amounts are truncated, never rounded up, so the sum can not exceed the
treasury. Rows under MIN_PAYOUT are dust: they stay in the admin listing but
are left out of the payout CSV.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal
from typing import Iterable

from extensions import db
from models_rewards import Airdrop


CENT = Decimal("0.01")
MIN_PAYOUT = Decimal("1")
CSV_HEADER = "Address,Amount"


class SnapshotValidationError(ValueError):
    pass


@dataclass(frozen=True)
class RewardShare:
    user_id: int
    display_name: str | None
    wallet_address: str
    points: int
    share: float
    amount: Decimal

    def to_dict(self):
        return {
            "userId": self.user_id,
            "displayName": self.display_name,
            "walletAddress": self.wallet_address,
            "points": self.points,
            "share": self.share,
            "amountXrd": float(self.amount),
        }


@dataclass(frozen=True)
class RewardDistribution:
    total_points: int = 0
    editors: list[RewardShare] = field(default_factory=list)


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def compute_shares(entries: Iterable, balance) -> RewardDistribution:
    """Split balance across entries (anything with user_id, display_name,
    wallet_address and points) in proportion to their points."""
    entries = [e for e in entries if e.points > 0]
    total = sum(e.points for e in entries)
    if total == 0:
        return RewardDistribution()

    balance = _to_decimal(balance)
    editors = []
    for e in entries:
        amount = (balance * e.points / total).quantize(CENT, rounding=ROUND_DOWN)
        editors.append(
            RewardShare(
                user_id=e.user_id,
                display_name=e.display_name,
                wallet_address=e.wallet_address,
                points=e.points,
                share=e.points / total,
                amount=amount,
            )
        )
    return RewardDistribution(total_points=total, editors=editors)


def payable_shares(distribution: RewardDistribution) -> list[RewardShare]:
    return [e for e in distribution.editors if e.amount >= MIN_PAYOUT]


def build_csv(rows: Iterable[RewardShare]) -> str:
    lines = [CSV_HEADER]
    for r in rows:
        lines.append(f"{r.wallet_address},{format(r.amount.normalize(), 'f')}")
    return "\n".join(lines)


def validate_snapshot(data: dict) -> tuple[str, float, list]:
    if not isinstance(data, dict):
        raise SnapshotValidationError("txHash, totalXrd, and snapshot are required")
    tx_hash = data.get("txHash")
    total = data.get("totalXrd")
    snapshot = data.get("snapshot")

    if not isinstance(tx_hash, str) or not tx_hash.strip():
        raise SnapshotValidationError("txHash, totalXrd, and snapshot are required")
    if isinstance(total, bool) or not isinstance(total, (int, float)) or total <= 0:
        raise SnapshotValidationError("txHash, totalXrd, and snapshot are required")
    if not isinstance(snapshot, list):
        raise SnapshotValidationError("txHash, totalXrd, and snapshot are required")
    return tx_hash.strip(), float(total), snapshot


def record_airdrop(tx_hash: str, total_amount: float, snapshot: list) -> Airdrop:
    """Persist what was actually paid on-chain. Shares are not recomputed."""
    airdrop = Airdrop(
        tx_hash=tx_hash,
        total_amount=total_amount,
        editor_count=len(snapshot),
        snapshot_json=snapshot,
    )
    db.session.add(airdrop)
    db.session.commit()
    return airdrop


def recent_airdrops(limit: int = 20) -> list[Airdrop]:
    return Airdrop.query.order_by(Airdrop.created_at.desc(), Airdrop.id.desc()).limit(limit).all()
