import time
import unittest
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

from user_info.bags import InMemoryBagStore, SqlBagStore, _DefaultBagMixin
from user_info.db import Database, InMemoryUserDirectory, UserRow
from user_info.errors import NotFoundError, UserNotFoundError


class BagStoreContract:
    """Behavior both bag stores must share. Subclasses provide self.bags."""

    def test_has_bags(self):
        self.assertFalse(self.bags.has_bags("test-user"))
        self.bags.add_bag("test-user", {"a": 1})
        self.assertTrue(self.bags.has_bags("test-user"))
        self.assertFalse(self.bags.has_bags("other-user"))

    def test_add_get_update_bag(self):
        bag_id = self.bags.add_bag("test-user", {"items": [1]})
        self.assertTrue(self.bags.has_bag("test-user", bag_id))
        self.assertFalse(self.bags.has_bag("other-user", bag_id))

        bag = self.bags.get_bag("test-user", bag_id)
        self.assertEqual(bag.id, bag_id)
        self.assertEqual(bag.contents, {"items": [1]})

        self.bags.update_bag("test-user", bag_id, {"items": [1, 2]})
        self.assertEqual(self.bags.get_bag("test-user", bag_id).contents, {"items": [1, 2]})

    def test_get_missing_bag(self):
        with self.assertRaises(NotFoundError):
            self.bags.get_bag("test-user", "missing")

    def test_other_users_bag_is_not_updated(self):
        bag_id = self.bags.add_bag("test-user", {"a": 1})
        self.bags.update_bag("other-user", bag_id, {"a": 2})
        self.assertEqual(self.bags.get_bag("test-user", bag_id).contents, {"a": 1})

    def test_get_bags_and_delete(self):
        first = self.bags.add_bag("test-user", {"n": 1})
        second = self.bags.add_bag("test-user", {"n": 2})
        self.bags.add_bag("other-user", {"n": 3})
        ids = sorted(bag.id for bag in self.bags.get_bags("test-user"))
        self.assertEqual(ids, sorted([first, second]))

        self.bags.delete_bag("test-user", first)
        self.assertEqual([b.id for b in self.bags.get_bags("test-user")], [second])

        self.bags.delete_all_bags("test-user")
        self.assertEqual(self.bags.get_bags("test-user"), [])
        self.assertTrue(self.bags.has_bags("other-user"))

    def test_default_bag_created_lazily(self):
        self.assertFalse(self.bags.has_default_bag("test-user"))
        bag = self.bags.get_default_bag("test-user")
        self.assertEqual(bag.contents, {})
        self.assertTrue(self.bags.has_default_bag("test-user"))
        self.assertEqual(self.bags.get_default_bag("test-user").id, bag.id)

    def test_set_default_bag(self):
        bag_id = self.bags.add_bag("test-user", {"x": 1})
        self.bags.set_default_bag("test-user", bag_id)
        self.assertEqual(self.bags.get_default_bag("test-user").contents, {"x": 1})

    def test_update_default_bag(self):
        self.bags.update_default_bag("test-user", {"x": 2})
        self.assertEqual(self.bags.get_default_bag("test-user").contents, {"x": 2})

    def test_deleted_default_bag_is_recreated(self):
        original = self.bags.get_default_bag("test-user")
        self.bags.delete_default_bag("test-user")
        self.assertFalse(self.bags.has_bag("test-user", original.id))
        self.assertFalse(self.bags.has_default_bag("test-user"))

        recreated = self.bags.get_default_bag("test-user")
        self.assertNotEqual(recreated.id, original.id)
        self.assertEqual(recreated.contents, {})

    def test_concurrent_first_reads_share_one_default(self):
        find = self.bags._find_default_bag

        def slow_find(username):
            bag = find(username)
            time.sleep(0.05)
            return bag

        with patch.object(self.bags, "_find_default_bag", side_effect=slow_find):
            with ThreadPoolExecutor(max_workers=4) as pool:
                ids = list(
                    pool.map(
                        lambda _: self.bags.get_default_bag("test-user").id, range(4)
                    )
                )
        self.assertEqual(len(set(ids)), 1)
        self.assertEqual(len(self.bags.get_bags("test-user")), 1)

    def test_unknown_user(self):
        self.assertFalse(self.bags.user_exists("nobody"))
        with self.assertRaises(UserNotFoundError):
            self.bags.add_bag("nobody", {})


class DefaultBagMixinTests(unittest.TestCase):
    def test_store_without_default_lookup_cannot_be_built(self):
        class IncompleteStore(_DefaultBagMixin):
            pass

        with self.assertRaises(TypeError):
            IncompleteStore()


class InMemoryBagStoreTests(BagStoreContract, unittest.TestCase):
    def setUp(self):
        self.bags = InMemoryBagStore(InMemoryUserDirectory(["test-user", "other-user"]))

    def test_returned_bags_are_copies(self):
        bag_id = self.bags.add_bag("test-user", {"a": [1]})
        bag = self.bags.get_bag("test-user", bag_id)
        bag.contents["a"].append(2)
        self.assertEqual(self.bags.get_bag("test-user", bag_id).contents, {"a": [1]})


class SqlBagStoreTests(BagStoreContract, unittest.TestCase):
    def setUp(self):
        self.db = Database("sqlite+pysqlite:///:memory:")
        with self.db.Session() as session:
            session.add(UserRow(id="u1", username="test-user"))
            session.add(UserRow(id="u2", username="other-user"))
            session.commit()
        self.bags = SqlBagStore(self.db)

    def tearDown(self):
        self.db.dispose()

    def test_bag_owner_id(self):
        bag_id = self.bags.add_bag("test-user", {})
        self.assertEqual(self.bags.get_bag("test-user", bag_id).user_id, "u1")


if __name__ == "__main__":
    unittest.main()
