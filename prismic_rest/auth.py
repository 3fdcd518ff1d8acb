"""
Authentication for the Prismic REST APIs

Login with account credentials returns a bearer token as plain text.
"""

import requests

from config import AUTH_URL, REQUEST_TIMEOUT
from logging_config import logger


class AuthenticationError(Exception):
    """Login against the Prismic auth endpoint failed"""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)


def login(email: str, password: str, timeout: float = REQUEST_TIMEOUT) -> str:
    """Use Prismic's auth endpoint to exchange account credentials for a token

    Parameters:
        :email: Prismic account email
        :password: Prismic account password
        :timeout: request timeout in seconds
    """
    try:
        r = requests.post(
            AUTH_URL,
            json={"email": email, "password": password},
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise AuthenticationError(f"Failed to reach auth endpoint: {e}") from e

    logger.log_api_call("POST", AUTH_URL, r.status_code)

    if not r.ok:
        raise AuthenticationError(
            f"Failed to authenticate: {r.status_code} {r.reason}", r.status_code
        )

    token = r.text.strip()
    if not token:
        raise AuthenticationError("Auth endpoint returned an empty token", r.status_code)
    return token
