"""
Asset operations for the Prismic Asset API

Handles listing, downloading and uploading media assets
"""

import json
import mimetypes
import time
from pathlib import Path
from typing import Optional, Dict, Any, List

import requests

from config import ASSET_API_URL, ASSET_LIST_LIMIT, REQUEST_TIMEOUT, DOWNLOAD_TIMEOUT, CHUNK_SIZE
from logging_config import logger


def _headers(repository: str, token: Optional[str]) -> Dict[str, str]:
    headers = {"repository": repository}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def list_assets(
    repository: str,
    token: Optional[str],
    limit: int = ASSET_LIST_LIMIT,
    timeout: float = REQUEST_TIMEOUT,
) -> Dict[str, Any]:
    """Use Prismic's Asset API to list the assets of a repository

    Returns the raw response body ({"total": int, "items": [...]}).
    Raises requests.HTTPError on a non-2xx status.

    Parameters:
        :repository: repository name
        :token: bearer token, or None for an unauthenticated request
        :limit: page size; only the first page is requested
        :timeout: request timeout in seconds
    """
    started = time.monotonic()
    r = requests.get(
        ASSET_API_URL,
        params={"limit": limit},
        headers=_headers(repository, token),
        timeout=timeout,
    )
    logger.log_api_call(
        "GET", ASSET_API_URL, r.status_code, time.monotonic() - started, repository=repository
    )
    r.raise_for_status()
    return r.json()


def fetch_asset_inventory(
    repository: str,
    token: Optional[str],
    limit: int = ASSET_LIST_LIMIT,
    timeout: float = REQUEST_TIMEOUT,
) -> List[Dict[str, Any]]:
    """Fetch the asset inventory of a repository as [{id, filename, url}]

    An inventory that cannot be read is treated as empty: timeouts, non-2xx
    statuses, unparsable bodies and bodies without an ``items`` list all
    return []. Entries without an id or filename are dropped.
    """
    if not repository:
        raise ValueError("Repository name is required")

    try:
        r = requests.get(
            ASSET_API_URL,
            params={"limit": limit},
            headers=_headers(repository, token),
            timeout=timeout,
        )
    except requests.Timeout:
        logger.warning(f"Assets fetch timed out for {repository}")
        return []
    except requests.RequestException as e:
        logger.warning(f"Assets fetch error for {repository}: {e}")
        return []

    logger.log_api_call("GET", ASSET_API_URL, r.status_code, repository=repository)

    if not r.ok:
        logger.warning(
            f"Failed to fetch assets for {repository}: {r.status_code} {r.reason}",
            body=(r.text or "")[:300],
        )
        return []

    text = r.text
    if not text or not text.strip():
        return []

    try:
        parsed = json.loads(text)
    except ValueError as e:
        logger.warning(f"Failed parsing assets list for {repository}: {e}")
        return []

    if not isinstance(parsed, dict) or not isinstance(parsed.get("items"), list):
        logger.warning(f"Unexpected assets response structure for {repository}")
        return []

    return [
        {"id": item["id"], "filename": item["filename"], "url": item.get("url")}
        for item in parsed["items"]
        if isinstance(item, dict) and item.get("id") and item.get("filename")
    ]


def download_asset(url: str, destination: Path, timeout: float = DOWNLOAD_TIMEOUT) -> Path:
    """Stream an asset from its CDN url to a local file

    A partially written file is removed when the download fails, and the
    error is re-raised.

    Parameters:
        :url: public asset url
        :destination: target file path; its parent directory must exist
        :timeout: request timeout in seconds
    """
    try:
        with requests.get(url, stream=True, timeout=timeout) as r:
            r.raise_for_status()
            with open(destination, "wb") as f:
                for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
    except (requests.RequestException, OSError):
        if destination.exists():
            destination.unlink()
        raise

    return destination


def upload_asset(
    repository: str,
    token: str,
    file_path: Path,
    timeout: float = DOWNLOAD_TIMEOUT,
) -> Dict[str, Any]:
    """Use Prismic's Asset API to upload a file as a new asset

    Returns the created asset ({"id", "filename", ...}).
    Raises requests.HTTPError on a non-2xx status.

    Parameters:
        :repository: destination repository name
        :token: bearer token with write access
        :file_path: local file to upload
    """
    content_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
    started = time.monotonic()
    with open(file_path, "rb") as f:
        r = requests.post(
            ASSET_API_URL,
            headers=_headers(repository, token),
            files={"file": (file_path.name, f, content_type)},
            timeout=timeout,
        )
    logger.log_api_call(
        "POST", ASSET_API_URL, r.status_code, time.monotonic() - started, filename=file_path.name
    )
    r.raise_for_status()
    return r.json()
