"""
Login against a file-backed credential store and stateless session tokens.

The store is a JSON list of ``{id, username, name, role, salt, password_hash}``
at ``CREDENTIALS_FILE``; hashes are PBKDF2-SHA256. Sessions are HS256 JWTs signed
with ``SESSION_SECRET`` and carrying an ``exp`` claim.

    python -m claims_crm.services.auth hash-password
"""

import argparse
import getpass
import hashlib
import json
import secrets
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import jwt
import structlog
from fastapi import Request

from claims_crm.config import settings

log = structlog.get_logger()

PBKDF2_ITERATIONS = 120000

_process_secret: Optional[str] = None


def hash_password(password: str, salt: str) -> str:
    return hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        PBKDF2_ITERATIONS,
    ).hex()


def create_password_credentials(password: str) -> tuple[str, str]:
    salt = secrets.token_hex(16)
    return salt, hash_password(password, salt)


def verify_password(password: str, salt: Optional[str], expected_hash: Optional[str]) -> bool:
    if not password or not salt or not expected_hash:
        return False
    return secrets.compare_digest(hash_password(password, salt), expected_hash)


def load_credentials(path: Optional[str] = None) -> List[Dict[str, Any]]:
    store = Path(path or settings.CREDENTIALS_FILE)
    if not store.exists():
        log.warning("auth.credentials_missing", path=str(store))
        return []
    with store.open(encoding="utf-8") as f:
        entries = json.load(f)
    if not isinstance(entries, list):
        raise ValueError(f"Credential store {store} must contain a JSON list")
    return entries


def _public(entry: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": entry.get("id"),
        "username": entry["username"],
        "name": entry.get("name") or entry["username"],
        "role": entry.get("role", "user"),
    }


def authenticate(username: str, password: str) -> Optional[Dict[str, Any]]:
    """Return the public user record, or None when the credentials do not match."""
    for entry in load_credentials():
        if entry.get("username", "").lower() == username.lower():
            if verify_password(password, entry.get("salt"), entry.get("password_hash")):
                return _public(entry)
            break
    return None


# =========================
# SESSION TOKENS
# =========================
TOKEN_ALGORITHM = "HS256"


def _secret() -> str:
    global _process_secret
    if settings.SESSION_SECRET:
        return settings.SESSION_SECRET
    if _process_secret is None:
        _process_secret = secrets.token_urlsafe(32)
        log.warning("auth.ephemeral_secret", reason="SESSION_SECRET unset; sessions end when the process restarts")
    return _process_secret


def issue_token(user: Dict[str, Any], now: Optional[float] = None) -> str:
    now = now if now is not None else time.time()
    claims = {**user, "exp": int(now + settings.SESSION_TTL_HOURS * 3600)}
    return jwt.encode(claims, _secret(), algorithm=TOKEN_ALGORITHM)


def decode_token(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the user in a valid, unexpired token; None for anything else."""
    if not token:
        return None
    try:
        claims = jwt.decode(token, _secret(), algorithms=[TOKEN_ALGORITHM], options={"require": ["exp"]})
    except jwt.ExpiredSignatureError:
        log.info("auth.session_expired")
        return None
    except jwt.InvalidTokenError as e:
        log.warning("auth.session_invalid", error=str(e))
        return None
    claims.pop("exp", None)
    return claims


def session_user(request: Request) -> Optional[Dict[str, Any]]:
    return decode_token(request.cookies.get(settings.SESSION_COOKIE_NAME))


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(prog="python -m claims_crm.services.auth")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("hash-password", help="Print a salt/password_hash pair for the credential store")
    parser.parse_args(argv)

    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Repeat password: "):
        raise SystemExit("Passwords do not match")
    salt, password_hash = create_password_credentials(password)
    print(json.dumps({"salt": salt, "password_hash": password_hash}, indent=2))


if __name__ == "__main__":
    main()
