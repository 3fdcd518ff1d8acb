"""
Custom type and shared slice operations for the Prismic Custom Types API
"""

from typing import Dict, Any, List

import requests

from config import CUSTOM_TYPES_API_URL, REQUEST_TIMEOUT
from logging_config import logger


def _list(kind: str, repository: str, token: str) -> List[Dict[str, Any]]:
    url = f"{CUSTOM_TYPES_API_URL}/{kind}"
    r = requests.get(
        url,
        headers={"repository": repository, "Authorization": f"Bearer {token}"},
        timeout=REQUEST_TIMEOUT,
    )
    logger.log_api_call("GET", url, r.status_code, repository=repository)
    r.raise_for_status()
    return r.json()


def _insert(kind: str, repository: str, token: str, definition: Dict[str, Any]) -> bool:
    url = f"{CUSTOM_TYPES_API_URL}/{kind}/insert"
    r = requests.post(
        url,
        headers={
            "repository": repository,
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        },
        json=definition,
        timeout=REQUEST_TIMEOUT,
    )
    logger.log_api_call("POST", url, r.status_code, repository=repository, definition=definition.get("id"))
    return r.ok


def list_slices(repository: str, token: str) -> List[Dict[str, Any]]:
    """List the shared slices of a repository

    Parameters:
        :repository: repository name
        :token: bearer token
    """
    return _list("slices", repository, token)


def insert_slice(repository: str, token: str, slice_definition: Dict[str, Any]) -> bool:
    """Insert a shared slice definition; False when the API rejects it (e.g. it exists)"""
    return _insert("slices", repository, token, slice_definition)


def list_custom_types(repository: str, token: str) -> List[Dict[str, Any]]:
    """List the custom types of a repository

    Parameters:
        :repository: repository name
        :token: bearer token
    """
    return _list("customtypes", repository, token)


def insert_custom_type(repository: str, token: str, custom_type: Dict[str, Any]) -> bool:
    """Insert a custom type definition; False when the API rejects it"""
    return _insert("customtypes", repository, token, custom_type)
