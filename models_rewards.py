"""Reward distribution records.

An Airdrop row is the permanent record of a distribution that was actually
executed on-chain. Rows are insert-only: corrections are made by recording a
new snapshot, never by editing an old one.
"""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Float, Index, Integer, String, event

from extensions import db


class ImmutableRecordError(RuntimeError):
    pass


class Airdrop(db.Model):
    __tablename__ = "airdrops"

    id = Column(Integer, primary_key=True)
    tx_hash = Column(String(128), nullable=False)
    total_amount = Column(Float, nullable=False)
    editor_count = Column(Integer, nullable=False, default=0)
    snapshot_json = Column(JSON, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_airdrops_created_at", "created_at"),
        Index("idx_airdrops_tx_hash", "tx_hash"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "txHash": self.tx_hash,
            "totalXrd": self.total_amount,
            "editorCount": self.editor_count,
            "snapshot": self.snapshot_json,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


@event.listens_for(Airdrop, "before_update")
def _refuse_update(mapper, connection, target):
    raise ImmutableRecordError(f"airdrop {target.id} is immutable; record a new snapshot instead")


@event.listens_for(Airdrop, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise ImmutableRecordError(f"airdrop {target.id} cannot be deleted")
