import unittest

from fastapi.testclient import TestClient

from user_info.app import create_app
from user_info.bag_routes import add_username_suffix
from user_info.config import Settings
from user_info.db import InMemoryUserDirectory
from user_info.dependencies import in_memory_context


class BagRoutesTests(unittest.TestCase):
    def setUp(self):
        self.users = InMemoryUserDirectory(["test-user"])
        context = in_memory_context(Settings(use_in_memory_backends=True), self.users)
        self.bags = context.bags
        self.client = TestClient(create_app(context))

    def test_greeting(self):
        response = self.client.get("/bags/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "Hello from the bags handler")

    def test_has_bags(self):
        self.assertEqual(self.client.head("/bags/test-user").status_code, 404)
        self.bags.add_bag("test-user", {"a": 1})
        self.assertEqual(self.client.head("/bags/test-user").status_code, 200)

    def test_unknown_user(self):
        response = self.client.get("/bags/nobody")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"user": "nobody"})
        self.assertEqual(self.client.get("/bags/nobody/default").status_code, 404)

    def test_add_and_list_bags(self):
        response = self.client.put("/bags/test-user", content=b'{"items": ["x"]}')
        self.assertEqual(response.status_code, 200)
        bag_id = response.json()["id"]

        response = self.client.get("/bags/test-user")
        self.assertEqual(response.status_code, 200)
        bags = response.json()["bags"]
        self.assertEqual(len(bags), 1)
        self.assertEqual(bags[0]["id"], bag_id)
        self.assertEqual(bags[0]["contents"], {"items": ["x"]})
        self.assertEqual(bags[0]["user_id"], self.users.user_id("test-user"))

    def test_add_bag_malformed_body(self):
        response = self.client.put("/bags/test-user", content=b"nope")
        self.assertEqual(response.status_code, 400)
        self.assertFalse(self.bags.has_bags("test-user"))

    def test_get_update_delete_bag(self):
        bag_id = self.bags.add_bag("test-user", {"n": 1})

        response = self.client.get(f"/bags/test-user/{bag_id}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["contents"], {"n": 1})

        response = self.client.post(f"/bags/test-user/{bag_id}", content=b'{"n": 2}')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.bags.get_bag("test-user", bag_id).contents, {"n": 2})

        response = self.client.delete(f"/bags/test-user/{bag_id}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get(f"/bags/test-user/{bag_id}").status_code, 404)

    def test_update_missing_bag(self):
        response = self.client.post("/bags/test-user/missing", content=b"{}")
        self.assertEqual(response.status_code, 404)

    def test_update_bag_malformed_body(self):
        bag_id = self.bags.add_bag("test-user", {})
        response = self.client.post(f"/bags/test-user/{bag_id}", content=b"nope")
        self.assertEqual(response.status_code, 500)

    def test_default_bag_created_on_read(self):
        self.assertFalse(self.bags.has_bags("test-user"))
        first = self.client.get("/bags/test-user/default")
        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.json()["contents"], {})
        self.assertTrue(self.bags.has_bags("test-user"))

        second = self.client.get("/bags/test-user/default")
        self.assertEqual(second.json()["id"], first.json()["id"])

    def test_update_and_delete_default_bag(self):
        response = self.client.post("/bags/test-user/default", content=b'{"k": "v"}')
        self.assertEqual(response.status_code, 200)
        default = self.client.get("/bags/test-user/default").json()
        self.assertEqual(default["contents"], {"k": "v"})

        self.assertEqual(self.client.delete("/bags/test-user/default").status_code, 200)
        recreated = self.client.get("/bags/test-user/default").json()
        self.assertNotEqual(recreated["id"], default["id"])
        self.assertEqual(recreated["contents"], {})

    def test_delete_all_bags(self):
        self.bags.add_bag("test-user", {})
        self.bags.add_bag("test-user", {})
        self.assertEqual(self.client.delete("/bags/test-user").status_code, 200)
        self.assertFalse(self.bags.has_bags("test-user"))


class UserDomainTests(unittest.TestCase):
    def test_add_username_suffix(self):
        self.assertEqual(add_username_suffix("ipctest", "@example.org"), "ipctest@example.org")
        self.assertEqual(
            add_username_suffix("ipctest@example.org", "@example.org"), "ipctest@example.org"
        )
        self.assertEqual(add_username_suffix("ipctest", ""), "ipctest")

    def test_routes_apply_user_domain(self):
        users = InMemoryUserDirectory(["ipctest@example.org"])
        settings = Settings(use_in_memory_backends=True, user_domain="@example.org")
        client = TestClient(create_app(in_memory_context(settings, users)))
        response = client.get("/bags/ipctest/default")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user_id"], users.user_id("ipctest@example.org"))


if __name__ == "__main__":
    unittest.main()
