from dotenv import load_dotenv
load_dotenv()

import os
import time
from datetime import datetime, timedelta

import redis
from flask import Flask, jsonify, request, session as flask_session
from flask_cors import CORS
from sqlalchemy import text
from werkzeug.middleware.proxy_fix import ProxyFix

from extensions import db, limiter

app = Flask(__name__)

# --- Ensure SECRET_KEY for sessions (required by wallet signature login) ---
secret_key = os.getenv('SECRET_KEY') or os.getenv('FLASK_SECRET_KEY')
if not secret_key:
    # Safe dev fallback to prevent 500s locally. Set SECRET_KEY on Render for production.
    secret_key = 'dev-secret-key-change-me'
app.config['SECRET_KEY'] = secret_key

# Enforce a strong SECRET_KEY in production (do not allow dev fallbacks).
if (os.getenv("RENDER") or os.getenv("FLASK_ENV") == "production") and secret_key.startswith("dev-secret-key-change"):
    raise RuntimeError("SECRET_KEY must be set to a strong random value in production (Render/FLASK_ENV=production).")

# --- Session & cookie hardening ---
app.config["SESSION_COOKIE_HTTPONLY"] = True
app.config["SESSION_COOKIE_SAMESITE"] = os.getenv("SESSION_COOKIE_SAMESITE", "Lax")
if os.getenv("RENDER") or os.getenv("FLASK_ENV") == "production":
    app.config["SESSION_COOKIE_SECURE"] = True

# NOTE: PERMANENT_SESSION_LIFETIME only applies when session.permanent=True (set in before_request).
app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=int(os.getenv("SESSION_LIFETIME_HOURS", "168")))
app.config["SESSION_IDLE_TIMEOUT_MINUTES"] = int(os.getenv("SESSION_IDLE_TIMEOUT_MINUTES", "60"))

REDIS_URL = os.getenv("REDIS_URL", "").strip()

# Optional: server-side sessions (allows true revocation when using a shared store like Redis).
# Enable by setting USE_SERVER_SIDE_SESSIONS=1 and SESSION_REDIS_URL (or REDIS_URL).
if os.getenv("USE_SERVER_SIDE_SESSIONS", "0") == "1":
    try:
        from flask_session import Session
        redis_url = os.getenv("SESSION_REDIS_URL") or REDIS_URL
        if not redis_url:
            raise RuntimeError("USE_SERVER_SIDE_SESSIONS=1 but SESSION_REDIS_URL/REDIS_URL is not set")
        app.config["SESSION_TYPE"] = "redis"
        app.config["SESSION_REDIS"] = redis.from_url(redis_url)
        app.config["SESSION_USE_SIGNER"] = True
        app.config["SESSION_PERMANENT"] = True
        app.config["SESSION_KEY_PREFIX"] = os.getenv("SESSION_KEY_PREFIX", "wiki:")
        Session(app)
    except Exception as e:
        # Fail closed in production if explicitly enabled but misconfigured.
        if os.getenv("RENDER") or os.getenv("FLASK_ENV") == "production":
            raise
        app.logger.warning("Server-side sessions not enabled: %s", e)

# Render (and most PaaS) runs behind a reverse proxy. Without ProxyFix,
# request.remote_addr will be the proxy IP, collapsing many users into one
# rate-limit bucket.
if os.getenv("RENDER") or os.getenv("FLASK_ENV") == "production":
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

_db_url = os.getenv("DATABASE_URL")
if not _db_url:
    if os.getenv("RENDER") == "true":
        raise RuntimeError("DATABASE_URL missing on Render; refusing to use SQLite.")
    _db_url = "sqlite:///wiki.db"

if _db_url.startswith("postgres://"):
    _db_url = _db_url.replace("postgres://", "postgresql://", 1)

app.config["SQLALCHEMY_DATABASE_URI"] = _db_url
app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
    "pool_recycle": 300,
    "pool_pre_ping": True,
}

# Leaderboard staleness (seconds); POST /api/admin/leaderboard/revalidate forces a refresh.
app.config["LEADERBOARD_TTL_SECONDS"] = int(os.getenv("LEADERBOARD_TTL_SECONDS", "300"))

# Rate limiting
# - In production (Render), set RATE_LIMIT_STORAGE_URL to a Redis URL for multi-instance correctness.
# - Defaults to in-memory storage for simplicity.
app.config["RATELIMIT_STORAGE_URI"] = os.getenv("RATE_LIMIT_STORAGE_URL", "memory://")
app.config["RATELIMIT_ENABLED"] = os.getenv("RATE_LIMIT_ENABLED", "1") == "1"

# Initialize extensions
db.init_app(app)
CORS(app)
limiter.init_app(app)


@app.before_request
def _enforce_session_idle_timeout():
    if not flask_session.get("wallet"):
        return

    flask_session.permanent = True

    idle_minutes = int(app.config.get("SESSION_IDLE_TIMEOUT_MINUTES", 60))
    now_ts = int(time.time())
    last_seen = flask_session.get("_last_seen_ts")
    if isinstance(last_seen, int) and idle_minutes > 0:
        if now_ts - last_seen > idle_minutes * 60:
            # Idle timeout: clear all session state.
            flask_session.clear()
            return

    flask_session["_last_seen_ts"] = now_ts


@app.after_request
def add_default_headers(resp):
    path = request.path or ""
    # avoid caching API responses downstream (admin views are user-specific)
    resp.headers.setdefault("Cache-Control", "no-store")
    resp.headers.setdefault("X-Content-Type-Options", "nosniff")
    if path.startswith("/api/admin"):
        resp.headers["X-Robots-Tag"] = "noindex, nofollow"
    return resp


# ==================== HEALTH CHECK ====================

@app.route('/api/health', methods=['GET'])
def health_check():
    try:
        db.session.execute(text('SELECT 1'))
        return jsonify({
            'success': True,
            'status': 'healthy',
            'timestamp': datetime.utcnow().isoformat(),
            'database': 'connected',
        })
    except Exception as e:
        app.logger.exception("Health check failed")
        return jsonify({
            'success': False,
            'status': 'unhealthy',
            'error': str(e),
            'timestamp': datetime.utcnow().isoformat()
        }), 500


# ==================== BLUEPRINTS ====================
from models_auth import LoginNonce  # noqa: F401
from models_rewards import Airdrop  # noqa: F401
from models_wiki import Comment, Page, Revision, User  # noqa: F401

from admin_rewards import admin_rewards
from auth import auth_api
from leaderboard import init_leaderboard, leaderboard_api
from user_stats import user_stats_api

app.register_blueprint(auth_api)
app.register_blueprint(leaderboard_api)
app.register_blueprint(user_stats_api)
app.register_blueprint(admin_rewards)

# Shared "leaderboard" cache tag across worker processes when Redis is available.
init_leaderboard(app, tag_store=redis.from_url(REDIS_URL) if REDIS_URL else None)

with app.app_context():
    db.create_all()

if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    debug = os.getenv('FLASK_ENV', 'development') == 'development'

    print("=" * 60)
    print("Wiki Contribution Rewards")
    print("=" * 60)
    print(f"Admin wallet: {os.getenv('ADMIN_WALLET') or '(not set)'}")
    print(f"Treasury: {os.getenv('TREASURY_ADDRESS') or '(not set)'}")
    print(f"Leaderboard: http://localhost:{port}/api/leaderboard")
    print(f"Admin rewards: http://localhost:{port}/api/admin/rewards")
    print("=" * 60)

    app.run(host='0.0.0.0', port=port, debug=debug)
