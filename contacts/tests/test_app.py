import unittest

from fastapi.testclient import TestClient

from contacts.app import create_app
from contacts.config import Settings
from contacts.db import InMemoryUserStore, SqlUserStore
from contacts.errors import StoreError

EMPTY_ADDRESS = {"street": "", "city": "", "zip": "", "geo": {"lat": "", "lng": ""}}


def _settings(**overrides) -> Settings:
    values = {"environment": "test", "user_store_backend": "memory"}
    values.update(overrides)
    return Settings(**values)


class UsersApiContract:
    def make_store(self):
        raise NotImplementedError

    def setUp(self):
        self.store = self.make_store()
        self.client = TestClient(create_app(settings=_settings(), store=self.store))

    def tearDown(self):
        self.store.close()

    def _create(self, **fields):
        payload = {"name": "Ada Lovelace", "email": "ada@lovelace.io", "phone": "+44 20 7946 0000"}
        payload.update(fields)
        response = self.client.post("/api/users", json=payload)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["data"]

    def test_create_minimal_user_returns_fully_shaped_address(self):
        response = self.client.post(
            "/api/users", json={"name": "A", "email": "a@x.com", "phone": "+1 555 0100"}
        )
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["message"], "User created successfully")
        self.assertEqual(body["data"]["address"], EMPTY_ADDRESS)
        self.assertIsInstance(body["data"]["id"], int)
        self.assertIsNotNone(body["data"]["created_at"])
        self.assertEqual(body["data"]["updated_at"], body["data"]["created_at"])

    def test_flat_and_nested_shapes_produce_the_same_address(self):
        flat = self._create(
            email="flat@contacts.io",
            street="1 Main St",
            city="Springfield",
            zip="12345",
            geo_lat="40.7128",
            geo_lng="-74.0060",
        )
        nested = self._create(
            email="nested@contacts.io",
            address={
                "street": "1 Main St",
                "city": "Springfield",
                "zip": "12345",
                "geo": {"lat": "40.7128", "lng": "-74.0060"},
            },
        )
        self.assertEqual(flat["address"], nested["address"])

    def test_nested_address_round_trips_through_get(self):
        created = self._create(
            address={"street": "12 Baker St", "city": "London", "geo": {"lat": 51.5, "lng": 0}}
        )
        response = self.client.get(f"/api/users/{created['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json()["data"]["address"],
            {
                "street": "12 Baker St",
                "city": "London",
                "zip": "",
                "geo": {"lat": "51.5", "lng": "0"},
            },
        )

    def test_repeated_get_is_identical(self):
        created = self._create(company="Analytical Engines")
        first = self.client.get(f"/api/users/{created['id']}").json()
        second = self.client.get(f"/api/users/{created['id']}").json()
        self.assertEqual(first, second)
        self.assertNotIn("message", first)

    def test_get_missing_user_is_404(self):
        response = self.client.get("/api/users/4242")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"success": False, "message": "User not found"})

    def test_get_with_non_integer_id_is_400(self):
        response = self.client.get("/api/users/abc")
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["errors"][0]["field"], "user_id")

    def test_list_users(self):
        self.assertEqual(self.client.get("/api/users").json(), {"success": True, "data": []})
        older = self._create(email="older@contacts.io")
        newer = self._create(email="newer@contacts.io")
        data = self.client.get("/api/users").json()["data"]
        self.assertEqual([u["id"] for u in data], [newer["id"], older["id"]])

    def test_create_validation_errors_are_collected(self):
        response = self.client.post(
            "/api/users", json={"name": "", "email": "bad", "phone": "letters"}
        )
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual({e["field"] for e in body["errors"]}, {"name", "email", "phone"})
        self.assertEqual(self.client.get("/api/users").json()["data"], [])

    def test_create_with_non_object_body_is_400(self):
        response = self.client.post("/api/users", json=["nope"])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"][0]["field"], "body")

    def test_duplicate_email_is_rejected_and_not_persisted(self):
        self._create()
        response = self.client.post(
            "/api/users",
            json={"name": "Impostor", "email": "ada@lovelace.io", "phone": "1"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json(), {"success": False, "message": "Email already exists"}
        )
        self.assertEqual(len(self.client.get("/api/users").json()["data"]), 1)

    def test_update_omitting_company_keeps_it(self):
        created = self._create(company="Acme")
        response = self.client.put(f"/api/users/{created['id']}", json={"name": "Ada King"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["message"], "User updated successfully")
        self.assertEqual(body["data"]["name"], "Ada King")
        self.assertEqual(body["data"]["company"], "Acme")

    def test_update_with_null_company_clears_it(self):
        created = self._create(company="Acme")
        response = self.client.put(f"/api/users/{created['id']}", json={"company": None})
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json()["data"]["company"])
        fetched = self.client.get(f"/api/users/{created['id']}").json()["data"]
        self.assertIsNone(fetched["company"])

    def test_update_nested_geo_keeps_other_address_fields(self):
        created = self._create(address={"city": "London", "geo": {"lat": "1", "lng": "2"}})
        response = self.client.put(
            f"/api/users/{created['id']}", json={"address": {"geo": {"lat": 0}}}
        )
        address = response.json()["data"]["address"]
        self.assertEqual(address["city"], "London")
        self.assertEqual(address["geo"], {"lat": "0", "lng": "2"})

    def test_update_accepts_a_fetched_user_as_payload(self):
        created = self._create(company="Acme")
        created["company"] = "Acme Ltd"
        response = self.client.put(f"/api/users/{created['id']}", json=created)
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["data"]["company"], "Acme Ltd")
        self.assertEqual(response.json()["data"]["address"], EMPTY_ADDRESS)

    def test_update_invalid_field_is_400(self):
        created = self._create()
        response = self.client.put(f"/api/users/{created['id']}", json={"phone": "abc"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"][0]["field"], "phone")

    def test_update_missing_user_is_404(self):
        response = self.client.put("/api/users/4242", json={"name": "Nobody"})
        self.assertEqual(response.status_code, 404)

    def test_update_to_taken_email_is_rejected(self):
        self._create(email="taken@contacts.io")
        other = self._create(email="free@contacts.io")
        response = self.client.put(
            f"/api/users/{other['id']}", json={"email": "taken@contacts.io"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Email already exists")

    def test_delete_then_get_is_404(self):
        created = self._create()
        response = self.client.delete(f"/api/users/{created['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(), {"success": True, "message": "User deleted successfully"}
        )
        self.assertEqual(self.client.get(f"/api/users/{created['id']}").status_code, 404)
        self.assertEqual(self.client.delete(f"/api/users/{created['id']}").status_code, 404)

    def test_search_by_company_substring(self):
        created = self._create(company="Analytical Engines")
        self._create(name="Grace Hopper", email="grace@navy.mil", company="US Navy")
        response = self.client.get("/api/users/search/engine")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([u["id"] for u in response.json()["data"]], [created["id"]])

    def test_search_without_match_is_empty(self):
        self._create()
        response = self.client.get("/api/users/search/nothing-like-this")
        self.assertEqual(response.json(), {"success": True, "data": []})

    def test_numeric_zip_is_stored_as_text(self):
        created = self._create(address={"zip": 12345, "geo": {"lat": 0, "lng": 0}})
        self.assertEqual(created["address"]["zip"], "12345")
        self.assertEqual(created["address"]["geo"], {"lat": "0", "lng": "0"})

    def test_phone_at_column_width_is_accepted(self):
        created = self._create(phone="5" * 255)
        fetched = self.client.get(f"/api/users/{created['id']}").json()["data"]
        self.assertEqual(fetched["phone"], "5" * 255)


class InMemoryUsersApiTests(UsersApiContract, unittest.TestCase):
    def make_store(self):
        return InMemoryUserStore()


class SqlUsersApiTests(UsersApiContract, unittest.TestCase):
    def make_store(self):
        return SqlUserStore("sqlite+pysqlite:///:memory:")


class BrokenStore(InMemoryUserStore):
    def list_users(self):
        raise StoreError("connection refused", code="08006", hint="Is Postgres running?")

    def ping(self):
        raise StoreError("connection refused", code="08006")

    def search_users(self, query):
        raise RuntimeError("boom")


class ErrorHandlingTests(unittest.TestCase):
    def _client(self, **settings) -> TestClient:
        app = create_app(settings=_settings(**settings), store=BrokenStore())
        return TestClient(app, raise_server_exceptions=False)

    def test_store_error_hides_details_in_production(self):
        response = self._client(environment="production").get("/api/users")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(), {"success": False, "message": "Database operation failed"}
        )

    def test_store_error_exposes_details_in_development(self):
        response = self._client(environment="development").get("/api/users")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json()["error"],
            {"message": "connection refused", "code": "08006", "hint": "Is Postgres running?"},
        )

    def test_store_error_exposes_details_in_debug_mode(self):
        response = self._client(environment="production", debug=True).get("/api/users")
        self.assertEqual(response.json()["error"]["code"], "08006")

    def test_unexpected_error_is_generic_500(self):
        response = self._client(environment="production").get("/api/users/search/x")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(), {"success": False, "message": "Something went wrong!"}
        )

    def test_unknown_route_is_404_envelope(self):
        response = self._client().get("/api/nope")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"success": False, "message": "Route not found"})


class HealthTests(unittest.TestCase):
    def test_health(self):
        client = TestClient(create_app(settings=_settings(), store=InMemoryUserStore()))
        body = client.get("/health").json()
        self.assertEqual(body["status"], "ok")
        self.assertIn("timestamp", body)

    def test_db_health_ok(self):
        client = TestClient(create_app(settings=_settings(), store=InMemoryUserStore()))
        response = client.get("/db-health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "success")

    def test_db_health_failure(self):
        client = TestClient(
            create_app(settings=_settings(environment="production"), store=BrokenStore())
        )
        response = client.get("/db-health")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(), {"status": "error", "message": "Database connection failed"}
        )

    def test_db_health_failure_in_development_includes_error(self):
        client = TestClient(
            create_app(settings=_settings(environment="development"), store=BrokenStore())
        )
        self.assertEqual(client.get("/db-health").json()["error"], "connection refused")

    def test_lifespan_survives_unreachable_store(self):
        app = create_app(settings=_settings(), store=BrokenStore())
        with TestClient(app) as client:
            self.assertEqual(client.get("/health").status_code, 200)


if __name__ == "__main__":
    unittest.main()
