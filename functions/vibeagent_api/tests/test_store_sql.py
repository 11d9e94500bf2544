import unittest

from vibeagent_api import handlers
from vibeagent_api.store import SqlDocumentStore


class SqlDocumentStoreTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL store logic.
    """

    def setUp(self):
        self.db = SqlDocumentStore("sqlite+pysqlite:///:memory:")

    def test_requires_database_url(self):
        with self.assertRaises(ValueError):
            SqlDocumentStore("")

    def test_set_and_get(self):
        doc = self.db.set("users", "+11234567890", {"name": "Test"})
        self.assertEqual(doc.as_dict(), {"id": "+11234567890", "name": "Test"})
        fetched = self.db.get("users", "+11234567890")
        self.assertEqual(fetched.data, {"name": "Test"})
        self.assertIsNone(self.db.get("users", "+19998887777"))

    def test_collections_are_separate(self):
        self.db.set("households", "same-id", {"address": "1 A St"})
        self.assertIsNone(self.db.get("jobs", "same-id"))

    def test_merge_keeps_existing_fields(self):
        self.db.set("households", "house1", {"address": "1 A St", "meta": {"a": 1}})
        merged = self.db.set(
            "households", "house1", {"timezone": "UTC", "meta": {"b": 2}}, merge=True
        )
        self.assertEqual(
            merged.data, {"address": "1 A St", "timezone": "UTC", "meta": {"a": 1, "b": 2}}
        )

    def test_set_without_merge_replaces(self):
        self.db.set("households", "house1", {"address": "1 A St"})
        replaced = self.db.set("households", "house1", {"timezone": "UTC"})
        self.assertEqual(replaced.data, {"timezone": "UTC"})

    def test_server_timestamps_are_assigned(self):
        doc = self.db.add("jobs", {"title": "Fix sink"}, server_timestamps=("created_at",))
        self.assertTrue(doc.id)
        self.assertIsInstance(doc.data["created_at"], str)
        self.assertEqual(self.db.get("jobs", doc.id).data["title"], "Fix sink")

    def test_query_filters_by_equality_and_membership(self):
        self.db.set("jobs", "a", {"user_id": "u1", "status": "open"})
        self.db.set("jobs", "b", {"user_id": "u1", "status": "completed"})
        self.db.set("jobs", "c", {"user_id": "u2", "status": "open"})
        self.db.set("jobs", "d", {"user_id": "u1"})

        results = self.db.query(
            "jobs", equals={"user_id": "u1"}, within={"status": ["open", "in_progress"]}
        )
        self.assertEqual([doc.id for doc in results], ["a"])

    def test_user_detail_reads_from_sql_store(self):
        phone = "+11234567890"
        self.db.set("users", phone, {"phone": phone, "household_ids": ["h1", "h2", "gone"]})
        self.db.set("households", "h1", {"address": "1 A St"})
        self.db.set("households", "h2", {"address": "2 B St"})
        self.db.set("jobs", "j1", {"user_id": phone, "status": "in_progress"})

        detail = handlers.get_user_detail(self.db, phone, max_workers=1)

        self.assertEqual([h["id"] for h in detail["households"]], ["h1", "h2"])
        self.assertEqual([job["id"] for job in detail["activeJobs"]], ["j1"])


if __name__ == "__main__":
    unittest.main()
