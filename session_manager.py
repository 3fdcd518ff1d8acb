#!/usr/bin/env python3
"""
Session Manager for the Prismic migration CLI

Caches login tokens between CLI commands so each stage does not have to
authenticate again. Tokens are encrypted at rest and expire.
"""

import json
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional, Dict, Any
from cryptography.fernet import Fernet, InvalidToken

from config import STATE_DIR, SESSION_TTL_HOURS
from logging_config import logger


class SessionManager:
    """Manages cached login tokens with encrypted storage"""

    def __init__(self, session_dir: Optional[Path] = None, ttl_hours: int = SESSION_TTL_HOURS):
        self.session_dir = session_dir or STATE_DIR / "sessions"
        self.session_dir.mkdir(parents=True, exist_ok=True)
        self.ttl_hours = ttl_hours

        self.session_file = self.session_dir / "tokens.json"
        self.session_key_file = self.session_dir / ".session_key"

        self._setup_encryption()

    def _setup_encryption(self):
        """Setup encryption for session storage"""
        if self.session_key_file.exists():
            with open(self.session_key_file, "rb") as f:
                self.encryption_key = f.read()
        else:
            self.encryption_key = Fernet.generate_key()
            with open(self.session_key_file, "wb") as f:
                f.write(self.encryption_key)
            os.chmod(self.session_key_file, 0o600)

        self.cipher = Fernet(self.encryption_key)

    def store_token(self, account: str, token: str) -> bool:
        """Cache a token for an account (e.g. 'source:me@example.com')"""
        sessions = self._load()
        sessions[account] = {
            "token": self._encrypt(token),
            "created": datetime.now().isoformat(),
            "expires": (datetime.now() + timedelta(hours=self.ttl_hours)).isoformat(),
        }

        try:
            self._save(sessions)
            logger.log_operation_end("store_token", True, account=account)
            return True
        except OSError as e:
            logger.log_error(e, {"operation": "store_token", "account": account})
            return False

    def get_token(self, account: str) -> Optional[str]:
        """Return a cached, unexpired token or None"""
        session = self._load().get(account)
        if not session:
            return None

        if datetime.now() > datetime.fromisoformat(session["expires"]):
            self.clear_token(account)
            return None

        try:
            return self._decrypt(session["token"])
        except InvalidToken as e:
            logger.log_error(e, {"operation": "get_token", "account": account})
            self.clear_token(account)
            return None

    def clear_token(self, account: str) -> bool:
        sessions = self._load()
        if account not in sessions:
            return False
        del sessions[account]
        self._save(sessions)
        return True

    def clear_session(self) -> bool:
        """Clear every cached token"""
        if self.session_file.exists():
            self.session_file.unlink()
        logger.log_operation_end("clear_session", True)
        return True

    def get_session_info(self) -> Dict[str, Dict[str, Any]]:
        """Cached accounts with their timestamps (without tokens)"""
        return {
            account: {"created": data["created"], "expires": data["expires"]}
            for account, data in self._load().items()
        }

    def _load(self) -> Dict[str, Any]:
        if not self.session_file.exists():
            return {}
        try:
            with open(self.session_file, "r") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.log_error(e, {"operation": "load_sessions"})
            return {}

    def _save(self, sessions: Dict[str, Any]):
        with open(self.session_file, "w") as f:
            json.dump(sessions, f, indent=2)
        os.chmod(self.session_file, 0o600)

    def _encrypt(self, text: str) -> str:
        """Encrypt text for storage"""
        return self.cipher.encrypt(text.encode()).decode()

    def _decrypt(self, encrypted_text: str) -> str:
        """Decrypt text from storage"""
        return self.cipher.decrypt(encrypted_text.encode()).decode()
