"""
Tests for migration.document_migrator

Tests sequential submission, rate-limit retry and per-document failure counting
"""

import json
import unittest
from unittest.mock import MagicMock, call

from migration.document_migrator import migrate_documents, submit_with_retry
from migration.migration_logger import MigrationLogger, LogLevel
from migration.models import IdMapping
from migration.retry import BackoffPolicy


def response(status_code=201, body=None, text=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.text = text if text is not None else json.dumps(body if body is not None else {"id": "new-id"})
    return resp


def document(index, lang="en-us"):
    return {
        "id": f"doc{index}",
        "type": "page",
        "lang": lang,
        "data": {"title": [{"text": f"Page {index}"}], "image": {"id": "A1"}},
    }


class TestMigrateDocuments(unittest.TestCase):

    def setUp(self):
        self.sleep = MagicMock()
        self.policy = BackoffPolicy(retries=1, delays=(10,), sleep=self.sleep)
        self.mappings = [IdMapping("A1", "X9")]

    def test_all_documents_succeed(self):
        submit = MagicMock(return_value=response())
        documents = [document(i) for i in range(3)]

        result = migrate_documents(documents, self.mappings, submit, policy=self.policy, document_delay=3)

        self.assertEqual(result.total_documents, 3)
        self.assertEqual(result.failures, 0)
        self.assertEqual(submit.call_count, 3)
        # pauses between documents only
        self.assertEqual(self.sleep.call_args_list, [call(3), call(3)])

    def test_payload_is_rewritten_and_titled(self):
        submit = MagicMock(return_value=response())

        migrate_documents([document(0)], self.mappings, submit, policy=self.policy)

        payload = submit.call_args[0][0]
        self.assertEqual(payload["data"]["image"]["id"], "X9")
        self.assertEqual(payload["title"], "Page 0")
        self.assertEqual(payload["id"], "doc0")

    def test_unparsable_document_counts_as_failure(self):
        """A bad document is skipped and the rest are still submitted"""
        submit = MagicMock(return_value=response())
        documents = [document(0), document(1), '{"id": "broken"', document(3), document(4)]

        result = migrate_documents(documents, self.mappings, submit, policy=self.policy)

        self.assertEqual(result.failures, 1)
        self.assertEqual(result.succeeded, 4)
        self.assertEqual(submit.call_count, 4)
        submitted = [c[0][0]["id"] for c in submit.call_args_list]
        self.assertEqual(submitted, ["doc0", "doc1", "doc3", "doc4"])

    def test_private_use_text_does_not_stop_the_batch(self):
        submit = MagicMock(return_value=response())
        first = document(0)
        first["data"]["icon"] = "\ue00099\ue001"

        result = migrate_documents([first, document(1)], self.mappings, submit, policy=self.policy)

        self.assertEqual(result.failures, 0)
        payloads = [c[0][0] for c in submit.call_args_list]
        self.assertEqual([p["id"] for p in payloads], ["doc0", "doc1"])
        self.assertEqual(payloads[0]["data"]["icon"], "\ue00099\ue001")
        self.assertEqual(payloads[0]["data"]["image"]["id"], "X9")

    def test_document_missing_type_counts_as_failure(self):
        submit = MagicMock(return_value=response())

        result = migrate_documents([{"id": "doc0"}], self.mappings, submit, policy=self.policy)

        self.assertEqual(result.failures, 1)
        submit.assert_not_called()

    def test_rate_limit_then_success(self):
        submit = MagicMock(side_effect=[response(429, text="Too Many Requests"), response()])

        result = migrate_documents([document(0)], self.mappings, submit, policy=self.policy)

        self.assertEqual(result.failures, 0)
        self.assertEqual(submit.call_count, 2)
        self.sleep.assert_called_once_with(10)

    def test_rate_limit_twice_is_failure(self):
        submit = MagicMock(return_value=response(429, text="Too Many Requests"))

        result = migrate_documents([document(0)], self.mappings, submit, policy=self.policy)

        self.assertEqual(result.failures, 1)
        self.assertEqual(submit.call_count, 2)

    def test_rejected_document_is_failure(self):
        submit = MagicMock(side_effect=[response(500, text="boom"), response()])

        result = migrate_documents([document(0), document(1)], self.mappings, submit, policy=self.policy)

        self.assertEqual(result.failures, 1)
        self.assertEqual(submit.call_count, 2)

    def test_invalid_language_is_failure(self):
        body = '{"message": "The language you provided is invalid"}'
        submit = MagicMock(return_value=response(400, text=body))

        result = migrate_documents(
            [document(0, lang="fr-fr")],
            self.mappings,
            submit,
            policy=self.policy,
            destination_languages=[{"id": "en-us", "name": "English"}],
        )

        self.assertEqual(result.failures, 1)

    def test_success_without_id_is_failure(self):
        submit = MagicMock(return_value=response(201, text='{"status": "queued"}'))

        result = migrate_documents([document(0)], self.mappings, submit, policy=self.policy)

        self.assertEqual(result.failures, 1)

    def test_submit_exception_is_failure(self):
        submit = MagicMock(side_effect=[ConnectionError("reset"), response()])

        result = migrate_documents([document(0), document(1)], self.mappings, submit, policy=self.policy)

        self.assertEqual(result.failures, 1)
        self.assertEqual(submit.call_count, 2)

    def test_failures_never_exceed_total(self):
        submit = MagicMock(return_value=response(500, text="down"))
        documents = [document(i) for i in range(4)] + ["not json"]

        result = migrate_documents(documents, self.mappings, submit, policy=self.policy)

        self.assertEqual(result.total_documents, 5)
        self.assertEqual(result.failures, 5)

    def test_empty_batch(self):
        submit = MagicMock()

        result = migrate_documents([], self.mappings, submit, policy=self.policy)

        self.assertEqual(result.to_dict(), {"done": True, "totalDocuments": 0, "failures": 0})
        submit.assert_not_called()
        self.sleep.assert_not_called()

    def test_no_mappings_still_submits(self):
        submit = MagicMock(return_value=response())

        result = migrate_documents([document(0)], [], submit, policy=self.policy)

        self.assertEqual(result.failures, 0)
        self.assertEqual(submit.call_args[0][0]["data"]["image"]["id"], "A1")

    def test_on_result_and_run_log(self):
        submit = MagicMock(side_effect=[response(body={"id": "D1"}), response(500, text="x")])
        on_result = MagicMock()
        run_log = MigrationLogger("migrate_documents")

        migrate_documents(
            [document(0), document(1)], self.mappings, submit,
            policy=self.policy, run_log=run_log, on_result=on_result,
        )

        on_result.assert_any_call("doc0", "migrated", "D1", "Page 0", None)
        failed_call = on_result.call_args_list[1]
        self.assertEqual(failed_call[0][:2], ("doc1", "failed"))
        self.assertEqual(run_log.failed_items(), ["doc1"])
        self.assertEqual(len(run_log.get_entries_by_level(LogLevel.INFO)), 1)


class TestSubmitWithRetry(unittest.TestCase):

    def test_no_retry_without_rate_limit(self):
        sleep = MagicMock()
        submit = MagicMock(return_value=response(500))

        resp, retries = submit_with_retry(submit, {"id": "d"}, BackoffPolicy(sleep=sleep))

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(retries, 0)
        sleep.assert_not_called()

    def test_retry_disabled(self):
        sleep = MagicMock()
        submit = MagicMock(return_value=response(429))

        resp, retries = submit_with_retry(submit, {"id": "d"}, BackoffPolicy(retries=0, sleep=sleep))

        self.assertEqual(resp.status_code, 429)
        self.assertEqual(submit.call_count, 1)
        sleep.assert_not_called()
