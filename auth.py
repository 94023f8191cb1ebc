"""Wallet signature login.

Routes:
- POST /api/auth/nonce   {wallet}
- POST /api/auth/verify  {wallet, nonce, signature}
- POST /api/auth/logout

The user signs "Login nonce: <nonce>" with their wallet; on success the
lowercase wallet address is stored in the Flask session under "wallet".
"""

from __future__ import annotations

import os
import re
import secrets
from datetime import datetime, timedelta

from eth_account import Account
from eth_account.messages import encode_defunct
from flask import Blueprint, current_app, jsonify, request, session

from errors import bad_request, forbidden, internal, unauthorized
from extensions import db, limiter
from models_auth import LoginNonce
from models_wiki import User


NONCE_TTL_MINUTES = 10

auth_api = Blueprint("auth_api", __name__)

_WALLET_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def normalize_wallet(wallet: str) -> str:
    if not isinstance(wallet, str):
        return ""
    return wallet.strip().lower()


def is_valid_wallet(wallet: str) -> bool:
    return bool(_WALLET_RE.match(wallet or ""))


def admin_wallet() -> str:
    return normalize_wallet(os.getenv("ADMIN_WALLET", ""))


def current_wallet() -> str | None:
    return session.get("wallet")


def require_admin():
    """Return an error response unless the session wallet is the administrator.

    Checked on every request against the configured address; nothing about
    admin status is cached in the session.
    """
    wallet = current_wallet()
    if not wallet:
        return unauthorized()
    expected = admin_wallet()
    if not expected or normalize_wallet(wallet) != expected:
        return forbidden("Admin access required")
    return None


def login_message(nonce: str) -> str:
    return f"Login nonce: {nonce}"


def ensure_user(wallet: str) -> User:
    wallet = normalize_wallet(wallet)
    user = User.query.filter_by(wallet_address=wallet).first()
    if not user:
        user = User(wallet_address=wallet, created_at=datetime.utcnow())
        db.session.add(user)
        db.session.commit()
    return user


@auth_api.post("/api/auth/nonce")
@limiter.limit("30 per minute")
def auth_nonce():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    wallet = normalize_wallet(data.get("wallet"))
    if not is_valid_wallet(wallet):
        return bad_request("Invalid wallet")
    try:
        nonce = secrets.token_hex(16)
        expires_at = datetime.utcnow() + timedelta(minutes=NONCE_TTL_MINUTES)
        db.session.add(LoginNonce(wallet=wallet, nonce=nonce, expires_at=expires_at, used=0))
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Auth nonce failed")
        return internal()
    return jsonify({"success": True, "nonce": nonce, "message": login_message(nonce)})


@auth_api.post("/api/auth/verify")
@limiter.limit("30 per minute")
def auth_verify():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    wallet = normalize_wallet(data.get("wallet"))
    signature = data.get("signature") or ""
    nonce = data.get("nonce") or ""

    if not is_valid_wallet(wallet):
        return bad_request("Invalid wallet")
    if not signature or not nonce:
        return bad_request("Missing signature or nonce")

    ln = (
        LoginNonce.query.filter_by(wallet=wallet, nonce=nonce, used=0)
        .order_by(LoginNonce.created_at.desc())
        .first()
    )
    if not ln or ln.expires_at < datetime.utcnow():
        return bad_request("Nonce expired")

    try:
        recovered = Account.recover_message(encode_defunct(text=login_message(nonce)), signature=signature)
    except Exception:
        return unauthorized("Bad signature")
    if normalize_wallet(recovered) != wallet:
        return unauthorized("Signature does not match wallet")

    try:
        ln.used = 1
        db.session.commit()
        user = ensure_user(wallet)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Auth verify failed")
        return internal()

    session["wallet"] = wallet
    return jsonify({"success": True, "userId": user.id, "wallet": wallet})


@auth_api.post("/api/auth/logout")
def auth_logout():
    session.pop("wallet", None)
    return jsonify({"success": True})
