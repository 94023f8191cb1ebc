"""Wiki models read by the contribution scoring engine.

Page and comment CRUD live elsewhere; these tables only carry the columns the
engine needs: who authored what, on which page, and when.
"""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from extensions import db


class User(db.Model):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    wallet_address = Column(String(42), unique=True, nullable=False, index=True)
    display_name = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_users_created_at", "created_at"),
    )


class Page(db.Model):
    __tablename__ = "pages"

    id = Column(Integer, primary_key=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class Revision(db.Model):
    __tablename__ = "revisions"

    id = Column(Integer, primary_key=True)
    page_id = Column(Integer, ForeignKey("pages.id"), nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_revisions_author_created", "author_id", "created_at"),
        Index("idx_revisions_page", "page_id"),
    )


class Comment(db.Model):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True)
    page_id = Column(Integer, ForeignKey("pages.id"), nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_comments_author_created", "author_id", "created_at"),
        Index("idx_comments_page", "page_id"),
    )
