"""
Repository language configuration
"""

from typing import Optional, Dict, Any, List, Callable

import requests

from logging_config import logger
from .documents import read_repository_api


def get_repository_languages(
    repository: str,
    token_provider: Optional[Callable[[], str]] = None,
) -> List[Dict[str, Any]]:
    """Return the languages configured for a repository ([{id, name}])

    The public Content API is tried first; when that fails and a token
    provider is given, the request is repeated with its bearer token.
    Every failure degrades to [].

    Parameters:
        :repository: repository name
        :token_provider: callable returning a bearer token, invoked lazily
    """
    if not repository:
        return []

    try:
        api = read_repository_api(repository)
        return api.get("languages") or []
    except (requests.RequestException, ValueError) as e:
        logger.info(f"Public API failed for {repository}: {e}")

    if token_provider is None:
        return []

    try:
        token = token_provider()
        api = read_repository_api(repository, token)
        return api.get("languages") or []
    except Exception as e:
        logger.warning(f"Authenticated API failed for {repository}: {e}")
        return []
