import unittest
from unittest.mock import MagicMock

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from vibeagent_api.store import FirestoreDocumentStore


def _snapshot(doc_id, data, exists=True):
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = exists
    snapshot.to_dict.return_value = data if exists else None
    return snapshot


class FirestoreDocumentStoreTests(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.collection = self.client.collection.return_value
        self.doc_ref = self.collection.document.return_value
        self.store = FirestoreDocumentStore(self.client)

    def test_get_missing_document(self):
        self.doc_ref.get.return_value = _snapshot("missing", None, exists=False)
        self.assertIsNone(self.store.get("households", "missing"))
        self.client.collection.assert_called_with("households")
        self.collection.document.assert_called_with("missing")

    def test_get_existing_document(self):
        self.doc_ref.get.return_value = _snapshot("house1", {"address": "1 A St"})
        doc = self.store.get("households", "house1")
        self.assertEqual(doc.as_dict(), {"id": "house1", "address": "1 A St"})

    def test_set_merges_and_requests_server_timestamps(self):
        self.doc_ref.get.return_value = _snapshot("job1", {"status": "open"})

        doc = self.store.set(
            "jobs", "job1", {"status": "open"}, merge=True, server_timestamps=("updated_at",)
        )

        self.doc_ref.set.assert_called_once_with(
            {"status": "open", "updated_at": SERVER_TIMESTAMP}, merge=True
        )
        self.assertEqual(doc.id, "job1")

    def test_add_returns_generated_document(self):
        new_ref = MagicMock()
        new_ref.get.return_value = _snapshot("generated", {"title": "Fix sink"})
        self.collection.add.return_value = (None, new_ref)

        doc = self.store.add("jobs", {"title": "Fix sink"}, server_timestamps=("created_at",))

        self.collection.add.assert_called_once_with(
            {"title": "Fix sink", "created_at": SERVER_TIMESTAMP}
        )
        self.assertEqual(doc.id, "generated")

    def test_query_applies_filters(self):
        filtered = self.collection.where.return_value.where.return_value
        filtered.stream.return_value = [_snapshot("job1", {"status": "open"})]

        results = self.store.query(
            "jobs", equals={"user_id": "+11234567890"}, within={"status": ("open",)}
        )

        self.assertEqual([doc.id for doc in results], ["job1"])
        first_filter = self.collection.where.call_args.kwargs["filter"]
        self.assertEqual(first_filter.field_path, "user_id")
        self.assertEqual(first_filter.op_string, "==")
        second_filter = self.collection.where.return_value.where.call_args.kwargs["filter"]
        self.assertEqual(second_filter.op_string, "in")
        self.assertEqual(second_filter.value, ["open"])


if __name__ == "__main__":
    unittest.main()
