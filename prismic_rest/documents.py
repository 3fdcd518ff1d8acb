"""
Document operations for the Prismic Content and Migration APIs

Handles enumerating every document of a repository and submitting documents
to the destination's migration release.
"""

from typing import Optional, Dict, Any, List

import requests

from config import CONTENT_API_TEMPLATE, MIGRATION_API_URL, DOCUMENTS_PAGE_SIZE, REQUEST_TIMEOUT
from logging_config import logger


def read_repository_api(repository: str, access_token: Optional[str] = None) -> Dict[str, Any]:
    """Read the Content API entry point of a repository (refs, languages, types)

    Raises requests.HTTPError on a non-2xx status.

    Parameters:
        :repository: repository name
        :access_token: optional bearer token for private repositories
    """
    url = CONTENT_API_TEMPLATE.format(repository=repository)
    headers = {"Cache-Control": "no-cache"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"

    r = requests.get(url, headers=headers, timeout=REQUEST_TIMEOUT)
    logger.log_api_call("GET", url, r.status_code, repository=repository)
    r.raise_for_status()
    return r.json()


def get_master_ref(api: Dict[str, Any]) -> str:
    """Return the master ref from a repository API response"""
    for ref in api.get("refs", []):
        if ref.get("isMasterRef"):
            return ref["ref"]
    raise ValueError("Repository API response has no master ref")


def fetch_all_documents(
    repository: str,
    access_token: Optional[str] = None,
    page_size: int = DOCUMENTS_PAGE_SIZE,
) -> List[Dict[str, Any]]:
    """Fetch every published document of a repository, in all languages

    Follows the search pagination until the last page.

    Parameters:
        :repository: repository name
        :access_token: optional access token for private repositories
        :page_size: documents per page (Prismic caps this at 100)
    """
    api = read_repository_api(repository, access_token)
    ref = get_master_ref(api)
    url = f"{CONTENT_API_TEMPLATE.format(repository=repository)}/documents/search"

    documents: List[Dict[str, Any]] = []
    page = 1
    while True:
        params = {"ref": ref, "lang": "*", "pageSize": page_size, "page": page}
        if access_token:
            params["access_token"] = access_token

        r = requests.get(url, params=params, timeout=REQUEST_TIMEOUT)
        logger.log_api_call("GET", url, r.status_code, repository=repository, page=page)
        r.raise_for_status()
        body = r.json()

        documents.extend(body.get("results", []))
        if page >= body.get("total_pages", 1):
            break
        page += 1

    logger.info(f"Fetched {len(documents)} documents from {repository}")
    return documents


def submit_document(
    repository: str,
    api_key: str,
    token: str,
    payload: Dict[str, Any],
) -> requests.Response:
    """Use Prismic's Migration API to create one document in a repository

    The response is returned as-is so the caller can decide on retries.

    Parameters:
        :repository: destination repository name
        :api_key: migration API key (x-api-key header)
        :token: bearer token with write access
        :payload: document JSON to create
    """
    r = requests.post(
        MIGRATION_API_URL,
        headers={
            "repository": repository,
            "x-api-key": api_key,
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        },
        json=payload,
        timeout=REQUEST_TIMEOUT,
    )
    logger.log_api_call("POST", MIGRATION_API_URL, r.status_code, document=payload.get("id"))
    return r
