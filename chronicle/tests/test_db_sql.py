import os
import tempfile
import unittest
from datetime import datetime

from chronicle.db import SqlDbClient
from chronicle.errors import UpstreamError


class SqlDbClientTests(unittest.TestCase):
    """
    Uses a SQLite file via SQLAlchemy URL to exercise the pooled query helper
    and the statements behind each resource.
    """

    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        path = os.path.join(self._tmpdir.name, "chronicle.db")
        self.db = SqlDbClient(f"sqlite+pysqlite:///{path}")
        self.db.create_schema()

    def tearDown(self):
        self.db.close()
        self._tmpdir.cleanup()

    def test_pool_is_bounded(self):
        self.assertEqual(self.db.engine.pool.size(), 10)
        # No overflow connections and no checkout timeout: callers queue.
        self.assertEqual(self.db.engine.pool._max_overflow, 0)
        self.assertIsNone(self.db.engine.pool._timeout)
        small = SqlDbClient(
            f"sqlite+pysqlite:///{os.path.join(self._tmpdir.name, 'small.db')}",
            pool_size=3,
        )
        try:
            self.assertEqual(small.engine.pool.size(), 3)
        finally:
            small.close()

    def test_create_and_get_history(self):
        created = self.db.create_history("Judul", "Pesan")
        self.assertIsNotNone(created.id)
        fetched = self.db.get_history(str(created.id))
        self.assertIsNotNone(fetched)
        self.assertEqual(fetched.title, "Judul")
        self.assertEqual(fetched.message, "Pesan")
        self.assertIsInstance(fetched.created_at, datetime)

    def test_get_history_missing(self):
        self.assertIsNone(self.db.get_history("999"))
        self.assertIsNone(self.db.get_history("1 OR 1=1"))
        self.assertIsNone(self.db.get_history("\u00b2"))
        self.assertIsNone(self.db.get_history("99999999999999999999999"))

    def test_list_history_orders_by_created_at_desc(self):
        for title, created_at in (
            ("middle", "2024-01-02 00:00:00"),
            ("oldest", "2024-01-01 00:00:00"),
            ("newest", "2024-01-03 00:00:00"),
        ):
            self.db.query(
                "INSERT INTO history (title, message, created_at) "
                "VALUES (:title, :message, :created_at)",
                {"title": title, "message": "m", "created_at": created_at},
            )
        titles = [record.title for record in self.db.list_history()]
        self.assertEqual(titles, ["newest", "middle", "oldest"])

    def test_list_history_empty(self):
        self.assertEqual(self.db.list_history(), [])

    def test_profile_seeded_and_updated(self):
        profile = self.db.get_profile()
        self.assertIsNotNone(profile)
        self.assertEqual(profile.id, 1)
        self.assertIsNone(profile.profile_picture_url)

        self.db.update_profile("Sari", "https://storage.googleapis.com/b/profiles/1-a.png")
        self.db.update_profile("Budi")
        profile = self.db.get_profile()
        self.assertEqual(profile.name, "Budi")
        self.assertEqual(
            profile.profile_picture_url,
            "https://storage.googleapis.com/b/profiles/1-a.png",
        )

    def test_create_schema_is_idempotent(self):
        self.db.update_profile("Sari")
        self.db.create_schema()
        self.assertEqual(self.db.get_profile().name, "Sari")

    def test_get_profile_missing(self):
        self.db.query("DELETE FROM profile")
        self.assertIsNone(self.db.get_profile())

    def test_create_feedback_assigns_ids(self):
        first = self.db.create_feedback("great", 4)
        second = self.db.create_feedback("ok", 1)
        self.assertEqual(second.id, first.id + 1)
        rows = self.db.query("SELECT comment, rating FROM feedback ORDER BY id").rows
        self.assertEqual(
            rows, [{"comment": "great", "rating": 4}, {"comment": "ok", "rating": 1}]
        )

    def test_query_error_is_upstream_and_releases_connection(self):
        with self.assertRaises(UpstreamError) as ctx:
            self.db.query("SELECT * FROM missing_table")
        self.assertIn("missing_table", ctx.exception.message)
        self.assertEqual(self.db.engine.pool.checkedout(), 0)

    def test_rating_constraint_enforced_by_store(self):
        with self.assertRaises(UpstreamError):
            self.db.query(
                "INSERT INTO feedback (comment, rating) VALUES (:comment, :rating)",
                {"comment": "bad", "rating": 5},
            )


if __name__ == "__main__":
    unittest.main()
