import datetime
import unittest

from hobbyboard.db import SqlRecordStore, seed_default_user
from hobbyboard.errors import PersistenceError


class SqlRecordStoreTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL store.
    """

    def setUp(self):
        self.db = SqlRecordStore("sqlite+pysqlite:///:memory:")
        self.db.create_schema()
        self.db.create_user("greg", "admin", None)

    def test_create_and_get_user(self):
        self.db.create_user("ann", "pw", "/images/uploads/ann.png")
        users = self.db.list_users()
        self.assertEqual([u.username for u in users], ["greg", "ann"])
        ann = self.db.get_user(users[1].id)
        self.assertEqual(ann.profile_image, "/images/uploads/ann.png")
        self.assertIsNone(self.db.get_user(999))

    def test_find_user_by_credentials_is_exact(self):
        self.assertIsNotNone(self.db.find_user_by_credentials("greg", "admin"))
        self.assertIsNone(self.db.find_user_by_credentials("greg", "Admin"))
        self.assertIsNone(self.db.find_user_by_credentials("nobody", "admin"))

    def test_duplicate_username_raises_persistence_error(self):
        with self.assertRaises(PersistenceError):
            self.db.create_user("greg", "other", None)

    def test_update_user_returns_rowcount(self):
        greg = self.db.list_users()[0]
        updated = self.db.update_user(
            greg.id, username="gregory", password="new", profile_image=None
        )
        self.assertEqual(updated, 1)
        self.assertEqual(self.db.get_user(greg.id).username, "gregory")
        self.assertEqual(
            self.db.update_user(999, username="x", password="y", profile_image=None),
            0,
        )

    def test_delete_user_does_not_cascade(self):
        greg = self.db.list_users()[0]
        self.db.create_hobby(greg.id, "Chess", datetime.date(2020, 1, 1))
        self.assertEqual(self.db.delete_user(greg.id), 1)
        self.assertIsNone(self.db.get_user(greg.id))
        self.assertEqual(len(self.db.list_hobbies(greg.id)), 1)

    def test_hobbies_are_scoped_and_ordered(self):
        greg = self.db.list_users()[0]
        self.db.create_user("ann", "pw", None)
        ann = self.db.list_users()[1]
        self.db.create_hobby(greg.id, "Knitting", datetime.date(2021, 5, 1))
        self.db.create_hobby(ann.id, "Surfing", datetime.date(2019, 7, 4))
        self.db.create_hobby(greg.id, "Baking", datetime.date(2018, 2, 3))

        hobbies = self.db.list_hobbies(greg.id)
        self.assertEqual(
            [h.hobby_description for h in hobbies], ["Knitting", "Baking"]
        )
        self.assertEqual(hobbies[0].date_learned, datetime.date(2021, 5, 1))
        self.assertEqual(hobbies[0].as_dict()["date_learned"], "2021-05-01")

    def test_delete_hobby_requires_matching_owner(self):
        greg = self.db.list_users()[0]
        self.db.create_user("ann", "pw", None)
        ann = self.db.list_users()[1]
        self.db.create_hobby(ann.id, "Surfing", datetime.date(2019, 7, 4))
        surfing = self.db.list_hobbies(ann.id)[0]

        self.assertEqual(self.db.delete_hobby(greg.id, surfing.id), 0)
        self.assertEqual(len(self.db.list_hobbies(ann.id)), 1)
        self.assertEqual(self.db.delete_hobby(ann.id, surfing.id), 1)
        self.assertEqual(self.db.list_hobbies(ann.id), [])

    def test_seed_default_user_is_idempotent(self):
        self.assertFalse(seed_default_user(self.db))
        fresh = SqlRecordStore("sqlite+pysqlite:///:memory:")
        fresh.create_schema()
        self.assertTrue(seed_default_user(fresh))
        self.assertIsNotNone(fresh.find_user_by_credentials("greg", "admin"))


class UnreachableDatabaseTests(unittest.TestCase):
    def setUp(self):
        # Building the store must not connect.
        self.db = SqlRecordStore("sqlite:////nonexistent_dir/x/db.sqlite")

    def test_create_schema_raises_persistence_error(self):
        with self.assertRaises(PersistenceError):
            self.db.create_schema()

    def test_queries_raise_persistence_error(self):
        with self.assertRaises(PersistenceError):
            self.db.find_user_by_credentials("greg", "admin")
        with self.assertRaises(PersistenceError):
            self.db.list_users()


if __name__ == "__main__":
    unittest.main()
