import json
from unittest.mock import patch, MagicMock
from uuid import uuid4

import requests
from django.test import TestCase, Client
from django.contrib.auth import get_user_model

from apps.identity.models import UserRole
from apps.seo.models import SavedKeyword, AnalyticsSnapshot


User = get_user_model()


def make_user(org_id, role=UserRole.STAFF):
    username = f"user_{uuid4().hex[:8]}"
    return User.objects.create_user(
        username=username,
        email=f"{username}@test.com",
        password="testpass123",
        org_id=org_id,
        role=role,
    )


class SavedKeywordApiTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.user = make_user(uuid4())
        self.client.force_login(self.user)

    def _save(self, **payload):
        return self.client.post("/api/saved-keywords/", data=json.dumps(payload), content_type="application/json")

    def test_save_and_duplicate(self):
        self.assertEqual(self._save(keyword="  ").status_code, 400)

        response = self._save(keyword="roof repair", volume=880, difficulty=31)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["data"]["category"], "idea")

        response = self._save(keyword="roof repair")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["detail"], "Keyword already saved by this user")

    def test_list_check_and_isolation(self):
        self._save(keyword="roof repair")
        self._save(keyword="roof leak", category="tracked")
        SavedKeyword.objects.create(user=make_user(uuid4()), keyword="someone else")

        data = self.client.get("/api/saved-keywords/", {"search": "roof", "limit": 1}).json()
        self.assertEqual(len(data["data"]), 1)
        self.assertEqual(data["pagination"]["total"], 2)
        self.assertTrue(data["pagination"]["hasMore"])

        data = self.client.get("/api/saved-keywords/", {"category": "tracked"}).json()
        self.assertEqual([k["keyword"] for k in data["data"]], ["roof leak"])

        check = self.client.get("/api/saved-keywords/check", {"keyword": "roof repair"}).json()
        self.assertTrue(check["isSaved"])
        self.assertEqual(self.client.get("/api/saved-keywords/check").status_code, 400)

    def test_update_and_delete(self):
        saved_id = self._save(keyword="roof repair").json()["data"]["id"]

        response = self.client.put(
            f"/api/saved-keywords/{saved_id}", data=json.dumps({"notes": "pitch"}), content_type="application/json"
        )
        self.assertEqual(response.json()["data"]["notes"], "pitch")

        self.assertEqual(self.client.delete(f"/api/saved-keywords/{saved_id}").status_code, 200)
        self.assertEqual(self.client.get(f"/api/saved-keywords/{saved_id}").status_code, 404)

    def test_bulk_save(self):
        self._save(keyword="existing")
        response = self.client.post(
            "/api/saved-keywords/bulk",
            data=json.dumps({"keywords": [{"keyword": "new one"}, {"keyword": "existing"}, {"keyword": ""}]}),
            content_type="application/json",
        )

        self.assertEqual(response.status_code, 201)
        data = response.json()["data"]
        self.assertEqual(data["summary"], {"total": 3, "saved": 1, "errors": 2})
        self.assertEqual(data["errors"][0], {"keyword": "existing", "error": "Already saved"})


class SnapshotApiTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.user = make_user(uuid4())
        self.client.force_login(self.user)

    def test_snapshot_lifecycle(self):
        response = self.client.post(
            "/api/analytics-snapshots/",
            data=json.dumps({"url": "https://acme.com", "mode": "domain", "snapshot": {"da": 21}}),
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 201)
        snapshot_id = response.json()["data"]["id"]

        listing = self.client.get("/api/analytics-snapshots/").json()
        self.assertEqual(listing["total"], 1)
        self.assertNotIn("snapshot_json", listing["data"][0])

        detail = self.client.get(f"/api/analytics-snapshots/{snapshot_id}").json()
        self.assertEqual(detail["data"]["snapshot"], {"da": 21})

        self.assertEqual(self.client.delete(f"/api/analytics-snapshots/{snapshot_id}").json(), {"success": True})
        self.assertEqual(self.client.delete(f"/api/analytics-snapshots/{snapshot_id}").status_code, 404)

    def test_other_users_snapshot_is_hidden(self):
        other = AnalyticsSnapshot.objects.create(user=make_user(uuid4()), url="x", mode="m", snapshot_json={})
        self.assertEqual(self.client.get(f"/api/analytics-snapshots/{other.id}").status_code, 404)


class RapidApiHealthTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.client.force_login(make_user(uuid4()))

    @patch("apps.seo.rapidapi_client.requests.get")
    def test_rate_limited_counts_as_healthy(self, get):
        get.return_value = MagicMock(status_code=429)
        data = self.client.get("/api/seo/seo-health").json()
        self.assertEqual(data["status"], "healthy")
        self.assertTrue(data["rapidApiConnected"])

    @patch("apps.seo.rapidapi_client.requests.get")
    def test_network_failure_is_503(self, get):
        get.side_effect = requests.ConnectionError("down")
        response = self.client.get("/api/seo/seo-health")
        self.assertEqual(response.status_code, 503)
        self.assertFalse(response.json()["rapidApiConnected"])

    @patch("apps.seo.rapidapi_client.requests.request")
    def test_proxy_errors_become_502(self, request):
        request.return_value = MagicMock(ok=False, status_code=500, reason="Server Error")
        response = self.client.get("/api/seo/url-metrics", {"url": "https://acme.com"})
        self.assertEqual(response.status_code, 502)
