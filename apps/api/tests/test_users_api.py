"""User route tests over the HTTP surface."""

from __future__ import annotations

import os
import unittest

from fastapi.testclient import TestClient

from app.adapters.auth import MockIdentityProvider
from app.core.config import get_settings
from app.main import create_app
from app.routes.dependencies import get_identity_provider

ADA = {"Authorization": "Bearer test:fb-ada"}
NEWCOMER = {"Authorization": "Bearer test:fb-newcomer"}


class _UsersApiCase(unittest.TestCase):
    _env_keys = ("CURATOR_AUTH_PROVIDER",)

    def setUp(self) -> None:
        self._old_env = {k: os.environ.get(k) for k in self._env_keys}
        os.environ["CURATOR_AUTH_PROVIDER"] = "mock"
        get_settings.cache_clear()

        self.app = create_app()
        self.provider = MockIdentityProvider()
        self.app.dependency_overrides[get_identity_provider] = lambda: self.provider
        self.store = self.app.state.store
        self.store.collections["images"] = {
            "img-1": {
                "_id": "img-1",
                "url": "https://cdn/ada.png",
                "blurHash": "LKO2?U",
                "status": True,
                "parentType": "users",
                "parentId": "u-1",
            },
        }
        self.store.collections["users"] = {
            f"u-{index}": {
                "_id": f"u-{index}",
                "firebaseId": "fb-ada" if index == 1 else f"fb-{index}",
                "name": "Ada" if index == 1 else f"User {index:02d}",
                "email": f"user{index}@example.com",
                "role": "ADMIN" if index == 1 else "JUNIOR",
                "status": True,
                "image": "img-1" if index == 1 else None,
                "favoriteOwners": [],
                "notificationTokens": [],
            }
            for index in range(1, 26)
        }
        self.client = TestClient(self.app)

    def tearDown(self) -> None:
        for key, value in self._old_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        get_settings.cache_clear()


class GetListTests(_UsersApiCase):
    def test_paginated_list_uses_floor_page_count(self) -> None:
        response = self.client.post(
            "/users/getList",
            headers=ADA,
            json={"limit": 10, "skip": 0, "page": 1, "sort": {"_id": 1}, "projection": {"name": 1}},
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["count"], 25)
        self.assertEqual(body["totalPages"], 2)
        self.assertEqual(body["page"], 1)
        self.assertEqual(len(body["data"]), 10)
        self.assertEqual(set(body["data"][0]), {"_id", "name"})

    def test_unpaginated_list(self) -> None:
        response = self.client.post("/users/getList", headers=ADA, json={"filter": {"role": "JUNIOR"}})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["count"], 24)
        self.assertEqual(response.json()["totalPages"], 1)
        self.assertEqual(len(response.json()["data"]), 24)

    def test_list_with_population(self) -> None:
        response = self.client.post(
            "/users/getList",
            headers=ADA,
            json={"filter": {"_id": "u-1"}, "population": [{"path": "image", "select": {"url": 1}}]},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"][0]["image"], {"_id": "img-1", "url": "https://cdn/ada.png"})

    def test_unqueryable_field_returns_400(self) -> None:
        response = self.client.post("/users/getList", headers=ADA, json={"filter": {"password": "x"}})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "UNKNOWN_FIELD")
        self.assertEqual(response.json()["details"], {"field": "password"})

    def test_sort_on_object_field_succeeds(self) -> None:
        self.store.collections["users"]["u-3"]["preferences"] = {"language": "fr"}

        response = self.client.post("/users/getList", headers=ADA, json={"sort": {"preferences": -1}, "limit": 1})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"][0]["_id"], "u-3")

    def test_invalid_regex_returns_400(self) -> None:
        response = self.client.post("/users/getList", headers=ADA, json={"filter": {"name": {"$regex": "["}}})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "INVALID_VALUE")
        self.assertEqual(response.json()["details"], {"field": "name"})

    def test_malformed_descriptor_returns_422(self) -> None:
        response = self.client.post("/users/getList", headers=ADA, json={"limit": -5})

        self.assertEqual(response.status_code, 422)


class ReadRouteTests(_UsersApiCase):
    def test_get_one(self) -> None:
        response = self.client.get("/users/getOne/u-1", headers=ADA)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["_id"], "u-1")
        self.assertEqual(body["firebaseId"], "fb-ada")
        self.assertEqual(body["image"], {"_id": "img-1", "url": "https://cdn/ada.png"})

    def test_get_one_missing_returns_404(self) -> None:
        response = self.client.get("/users/getOne/missing", headers=ADA)

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "RESOURCE_NOT_FOUND")

    def test_get_auth_user(self) -> None:
        response = self.client.get("/users/getAuthUser", headers=ADA)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["_id"], "u-1")
        self.assertEqual(response.json()["name"], "Ada")


class UpdateRouteTests(_UsersApiCase):
    def test_update_returns_true_and_merges_fields(self) -> None:
        response = self.client.put(
            "/users/update/u-2",
            headers=ADA,
            json={"name": "Grace", "preferences": {"language": "fr"}, "newFavorite": "owner-1"},
        )

        self.assertEqual(response.status_code, 200)
        self.assertIs(response.json(), True)
        stored = self.store.collections["users"]["u-2"]
        self.assertEqual(stored["name"], "Grace")
        self.assertEqual(stored["preferences"], {"language": "fr"})
        self.assertEqual(stored["favoriteOwners"], ["owner-1"])

    def test_update_with_image_payload_replaces_image(self) -> None:
        response = self.client.put(
            "/users/update/u-1",
            headers=ADA,
            json={"image": {"url": "https://cdn/ada-2.png", "blurHash": "L00000"}},
        )

        self.assertEqual(response.status_code, 200)
        new_image_id = self.store.collections["users"]["u-1"]["image"]
        self.assertNotEqual(new_image_id, "img-1")
        self.assertFalse(self.store.collections["images"]["img-1"]["status"])
        self.assertEqual(self.store.collections["images"][new_image_id]["url"], "https://cdn/ada-2.png")
        self.assertEqual(self.store.collections["images"][new_image_id]["parentId"], "u-1")

    def test_unknown_field_is_rejected_without_side_effects(self) -> None:
        before = self.store.write_count

        response = self.client.put("/users/update/u-2", headers=ADA, json={"name": "x", "firebaseId": "stolen"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "UNKNOWN_FIELD")
        self.assertEqual(response.json()["details"]["field"], "firebaseId")
        self.assertEqual(self.store.write_count, before)
        self.assertEqual(self.store.collections["users"]["u-2"]["name"], "User 02")

    def test_invalid_role_is_rejected(self) -> None:
        response = self.client.put("/users/update/u-2", headers=ADA, json={"role": "OWNER"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "INVALID_ENUM")

    def test_empty_or_null_role_is_rejected(self) -> None:
        for role in ("", None):
            with self.subTest(role=role):
                response = self.client.put("/users/update/u-2", headers=ADA, json={"role": role})

                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()["code"], "INVALID_ENUM")
                self.assertEqual(response.json()["details"], {"field": "role"})
        self.assertEqual(self.store.collections["users"]["u-2"]["role"], "JUNIOR")

    def test_non_string_set_operation_values_are_rejected(self) -> None:
        before = self.store.write_count
        for field_name in ("newFavorite", "removeFavorite", "notificationTokens"):
            for value in (5, ["tok"]):
                with self.subTest(field=field_name, value=value):
                    response = self.client.put("/users/update/u-2", headers=ADA, json={field_name: value})

                    self.assertEqual(response.status_code, 400)
                    self.assertEqual(response.json()["code"], "INVALID_VALUE")
                    self.assertEqual(response.json()["details"], {"field": field_name})
        self.assertEqual(self.store.write_count, before)
        self.assertEqual(self.client.get("/users/getOne/u-2", headers=ADA).status_code, 200)

    def test_malformed_image_payload_is_rejected(self) -> None:
        response = self.client.put("/users/update/u-2", headers=ADA, json={"image": {"blurHash": "x"}})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "INVALID_VALUE")

    def test_role_update_succeeds(self) -> None:
        response = self.client.put("/users/update/u-2", headers=ADA, json={"role": "CURATOR"})

        self.assertEqual(response.status_code, 200)
        self.assertIs(response.json(), True)
        self.assertEqual(self.store.collections["users"]["u-2"]["role"], "CURATOR")

    def test_update_missing_user_returns_404(self) -> None:
        response = self.client.put("/users/update/missing", headers=ADA, json={"name": "x"})

        self.assertEqual(response.status_code, 404)

    def test_storage_failure_returns_500_without_leaking_cause(self) -> None:
        self.store.failure_message = "mongo: connection refused on 10.0.0.3"

        # The principal lookup is the first storage call of the request.
        response = self.client.put("/users/update/u-2", headers=ADA, json={"name": "x"})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["code"], "PERSISTENCE_ERROR")
        self.assertNotIn("10.0.0.3", response.text)


class DeleteRouteTests(_UsersApiCase):
    def test_delete_is_soft(self) -> None:
        response = self.client.delete("/users/delete/u-2", headers=ADA)

        self.assertEqual(response.status_code, 200)
        self.assertIs(response.json(), True)
        fetched = self.client.get("/users/getOne/u-2", headers=ADA)
        self.assertEqual(fetched.status_code, 200)
        self.assertIs(fetched.json()["status"], False)

    def test_delete_missing_returns_404(self) -> None:
        response = self.client.delete("/users/delete/never-there", headers=ADA)

        self.assertEqual(response.status_code, 404)


class CreateRouteTests(_UsersApiCase):
    def test_create_registers_the_caller(self) -> None:
        response = self.client.post(
            "/users/create",
            headers=NEWCOMER,
            json={"name": "Linus", "image": {"url": "https://cdn/linus.png"}},
        )

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["firebaseId"], "fb-newcomer")
        self.assertEqual(body["role"], "JUNIOR")
        self.assertEqual(body["image"]["url"], "https://cdn/linus.png")
        me = self.client.get("/users/getAuthUser", headers=NEWCOMER)
        self.assertEqual(me.json()["_id"], body["_id"])

    def test_create_requires_name_and_image(self) -> None:
        cases = [
            ({"image": {"url": "u"}}, "MISSING_FIELD", "name"),
            ({"name": "", "image": {"url": "u"}}, "EMPTY_STRING", "name"),
            ({"name": "Linus", "image": None}, "NULL_FIELD", "image"),
            ({"name": "Linus"}, "MISSING_FIELD", "image"),
        ]
        for body, code, field in cases:
            with self.subTest(body=body):
                response = self.client.post("/users/create", headers=NEWCOMER, json=body)
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()["code"], code)
                self.assertEqual(response.json()["details"]["field"], field)

    def test_registration_cannot_choose_its_role(self) -> None:
        response = self.client.post(
            "/users/create",
            headers=NEWCOMER,
            json={"name": "Eve", "image": {"url": "https://cdn/eve.png"}, "role": "ADMIN"},
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["role"], "JUNIOR")
        self.assertEqual(self.provider.claims_calls[-1][1]["role"], "JUNIOR")

    def test_second_registration_conflicts(self) -> None:
        response = self.client.post(
            "/users/create",
            headers=ADA,
            json={"name": "Ada", "image": {"url": "u"}},
        )

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["code"], "ALREADY_REGISTERED")


if __name__ == "__main__":
    unittest.main()
