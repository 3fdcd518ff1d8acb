"""
Submit source documents to the destination's Migration API.

Documents are processed strictly in order, one request at a time, with a
fixed pause between submissions. A rate-limited submission is retried after
the policy's backoff; anything else that goes wrong with one document is
counted as a failure and the batch moves on.
"""

import json
from typing import Callable, Dict, Any, List, Optional

from config import DOCUMENT_DELAY, RATE_LIMIT_STATUS
from logging_config import logger
from .migration_logger import MigrationLogger
from .models import IdMapping, MigrationRunResult
from .retry import BackoffPolicy
from .rewriter import (
    IdReplacer,
    DocumentRewriteError,
    rewrite_document,
    document_title,
    build_migration_payload,
)

INVALID_LANGUAGE_MESSAGE = "language you provided is invalid"
VERBOSE_DOCUMENTS = 3  # log rewrite details for the first few documents


def submit_with_retry(submit: Callable[[Dict[str, Any]], Any], payload: Dict[str, Any], policy: BackoffPolicy):
    """Submit once, retrying only on a rate-limit status."""
    response = submit(payload)
    attempt = 0
    while response.status_code == RATE_LIMIT_STATUS and policy.should_retry(attempt):
        logger.info(f"Rate limited for document {payload.get('id')} - waiting {policy.delay_for(attempt)} seconds...")
        policy.wait(attempt)
        attempt += 1
        response = submit(payload)
    return response, attempt


def _created_id(body: str) -> Optional[str]:
    if '"id":' not in (body or ""):
        return None
    try:
        parsed = json.loads(body)
    except ValueError:
        return ""
    if isinstance(parsed, dict):
        return str(parsed.get("id") or "")
    return ""


def migrate_documents(
    documents: List[Any],
    mappings: List[IdMapping],
    submit: Callable[[Dict[str, Any]], Any],
    policy: BackoffPolicy = None,
    document_delay: float = DOCUMENT_DELAY,
    run_log: MigrationLogger = None,
    destination_languages: Optional[List[Dict[str, Any]]] = None,
    on_result: Optional[Callable[..., None]] = None,
) -> MigrationRunResult:
    """
    Rewrite asset ids in every document and submit it.

    submit(payload) returns a response with status_code, ok and text.
    on_result(source_id, status, destination_id, title, reason) is called
    once per document when given.
    """
    policy = policy or BackoffPolicy()
    replacer = IdReplacer(mappings)
    result = MigrationRunResult(total_documents=len(documents))

    logger.log_operation_start(
        "migrate_documents", documents=len(documents), mappings=len(replacer)
    )
    if not len(replacer):
        logger.warning("No asset mappings available. Asset IDs will not be replaced!")

    def fail(index, source_id, title, reason):
        result.failures += 1
        logger.warning(f"Document {index} ({title}): {reason}")
        if run_log:
            run_log.error(reason, item=source_id, title=title)
        if on_result:
            on_result(source_id, "failed", None, title, reason)

    for index, document in enumerate(documents):
        title = document_title(document, index)
        source_id = document.get("id") if isinstance(document, dict) else None
        source_id = source_id or f"#{index}"

        try:
            rewritten = rewrite_document(document, replacer)
        except DocumentRewriteError as e:
            fail(index, source_id, title, str(e))
            continue

        if index < VERBOSE_DOCUMENTS:
            logger.info(f"Document {index}: Made {rewritten.replacement_count} asset ID replacements")

        payload = build_migration_payload(rewritten.document, title)

        try:
            response, retries = submit_with_retry(submit, payload, policy)
        except Exception as e:
            logger.log_error(e, {"operation": "submit_document", "document": source_id})
            fail(index, source_id, title, f"Error migrating document: {e}")
        else:
            if not response.ok:
                body = response.text or ""
                if response.status_code == 400:
                    logger.info(f"400 Error details for document {index} ({title}): {body}")
                    if INVALID_LANGUAGE_MESSAGE in body:
                        available = ", ".join(l.get("id", "") for l in destination_languages or [])
                        logger.warning(
                            f"Language error for document {index}: document language "
                            f"{payload.get('lang') or 'unknown'} is not configured in the "
                            f"destination (available: {available})"
                        )
                suffix = " on retry" if retries else ""
                fail(index, source_id, title, f"Migration rejected{suffix}: {response.status_code}")
            else:
                created_id = _created_id(response.text)
                if created_id is None:
                    fail(index, source_id, title, "Migration failed - no ID in response")
                else:
                    if run_log:
                        if retries:
                            run_log.warning("Migrated on retry after rate limit", item=source_id, title=title)
                        else:
                            run_log.info(f"Migrated as {created_id}", item=source_id, title=title)
                    if on_result:
                        on_result(source_id, "migrated", created_id or None, title, None)

        logger.log_batch_progress("migrate_documents", index + 1, len(documents))
        if index < len(documents) - 1:
            policy.pause(document_delay)

    logger.log_operation_end(
        "migrate_documents", result.failures == 0,
        total=result.total_documents, failures=result.failures,
    )
    return result
