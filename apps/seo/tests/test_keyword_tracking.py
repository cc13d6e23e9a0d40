import json
from datetime import timedelta
from unittest.mock import patch
from uuid import uuid4

from django.test import TestCase, Client
from django.contrib.auth import get_user_model
from django.utils import timezone

from apps.activity.models import Activity
from apps.clients.models import Client as ClientModel
from apps.identity.models import UserRole
from apps.seo import keyword_service
from apps.seo.models import KeywordTracking, KeywordRankHistory, SerpApiKey
from apps.seo.serpapi_client import ExternalServiceError


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


def serp_results(*links):
    return {
        "organic_results": [
            {"position": i + 1, "link": link, "title": f"Result {i + 1}", "snippet": "..."}
            for i, link in enumerate(links)
        ]
    }


class RankingUpdateTest(TestCase):
    def setUp(self):
        self.org_id = uuid4()
        self.user = make_user(self.org_id)
        self.acme = ClientModel.objects.create(org_id=self.org_id, name="Acme", website="https://acme.com")
        self.tracking = KeywordTracking.objects.create(
            org_id=self.org_id, user=self.user, client=self.acme,
            keyword="austin plumber", target_url="acme.com",
        )

    def test_first_rank_has_no_change(self):
        updated = keyword_service.update_ranking(self.tracking, 12)

        self.assertEqual(updated.current_rank, 12)
        self.assertIsNone(updated.previous_rank)
        self.assertIsNone(updated.rank_change)
        self.assertIsNotNone(updated.last_checked)
        self.assertEqual(KeywordRankHistory.objects.filter(keyword_tracking=self.tracking).count(), 1)

    def test_rank_change_is_previous_minus_current(self):
        keyword_service.update_ranking(self.tracking, 12)
        updated = keyword_service.update_ranking(self.tracking, 5)

        self.assertEqual(updated.previous_rank, 12)
        self.assertEqual(updated.rank_change, 7)
        self.assertTrue(
            Activity.objects.filter(org_id=self.org_id, type="keyword_rank_changed").exists()
        )

        updated = keyword_service.update_ranking(self.tracking, 9)
        self.assertEqual(updated.rank_change, -4)

    def test_lost_rank_keeps_previous_and_skips_history(self):
        keyword_service.update_ranking(self.tracking, 3)
        updated = keyword_service.update_ranking(self.tracking, None)

        self.assertIsNone(updated.current_rank)
        self.assertEqual(updated.previous_rank, 3)
        self.assertIsNone(updated.rank_change)
        self.assertEqual(KeywordRankHistory.objects.filter(keyword_tracking=self.tracking).count(), 1)

    def test_keywords_due_for_check(self):
        now = timezone.now()
        never = self.tracking
        daily_due = KeywordTracking.objects.create(
            org_id=self.org_id, user=self.user, client=self.acme, keyword="a", target_url="acme.com",
            check_frequency="daily", last_checked=now - timedelta(days=2),
        )
        KeywordTracking.objects.create(
            org_id=self.org_id, user=self.user, client=self.acme, keyword="b", target_url="acme.com",
            check_frequency="weekly", last_checked=now - timedelta(days=2),
        )
        KeywordTracking.objects.create(
            org_id=self.org_id, user=self.user, client=self.acme, keyword="c", target_url="acme.com",
            is_active=False,
        )

        due = set(keyword_service.keywords_due_for_check(now).values_list('id', flat=True))
        self.assertEqual(due, {never.id, daily_due.id})


class KeywordTrackingApiTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.org_id = uuid4()
        self.user = make_user(self.org_id)
        self.client.force_login(self.user)
        self.acme = ClientModel.objects.create(org_id=self.org_id, name="Acme", website="https://acme.com")
        SerpApiKey.objects.create(api_key="serp-key", count=0)

    def _create(self, **payload):
        return self.client.post(
            "/api/keyword-tracking/", data=json.dumps(payload), content_type="application/json"
        )

    def test_create_validates_and_rejects_duplicates(self):
        self.assertEqual(self._create(keyword="plumber").status_code, 400)

        response = self._create(client_id=self.acme.id, keyword="plumber", target_url="acme.com")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["data"]["check_frequency"], "weekly")

        response = self._create(client_id=self.acme.id, keyword="plumber", target_url="acme.com")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["detail"], "Keyword already tracked")

    def test_create_rejects_foreign_client(self):
        foreign = ClientModel.objects.create(org_id=uuid4(), name="Other", website="https://o.com")
        response = self._create(client_id=foreign.id, keyword="plumber", target_url="o.com")
        self.assertEqual(response.status_code, 400)

    def test_list_pagination(self):
        for word in ["alpha", "bravo", "charlie"]:
            self._create(client_id=self.acme.id, keyword=word, target_url="acme.com")

        data = self.client.get(
            "/api/keyword-tracking/", {"limit": 2, "offset": 0, "sort_by": "keyword", "sort_dir": "asc"}
        ).json()

        self.assertEqual([k["keyword"] for k in data["data"]], ["alpha", "bravo"])
        self.assertEqual(data["pagination"], {"total": 3, "limit": 2, "offset": 0, "hasMore": True})

    def test_update_requires_fields_and_delete(self):
        tracking_id = self._create(
            client_id=self.acme.id, keyword="plumber", target_url="acme.com"
        ).json()["data"]["id"]

        response = self.client.put(
            f"/api/keyword-tracking/{tracking_id}", data=json.dumps({}), content_type="application/json"
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.put(
            f"/api/keyword-tracking/{tracking_id}",
            data=json.dumps({"is_active": False}),
            content_type="application/json",
        )
        self.assertFalse(response.json()["data"]["is_active"])

        response = self.client.delete(f"/api/keyword-tracking/{tracking_id}")
        self.assertEqual(response.json()["data"], {"id": tracking_id})
        self.assertEqual(self.client.get(f"/api/keyword-tracking/{tracking_id}").status_code, 404)

    @patch("apps.seo.keyword_service.search_google")
    def test_check_ranking_stores_rank_and_history(self, search_google):
        search_google.return_value = serp_results("https://other.com", "https://www.ACME.com/plumbing")
        tracking_id = self._create(
            client_id=self.acme.id, keyword="plumber", target_url="acme.com"
        ).json()["data"]["id"]

        response = self.client.post(f"/api/keyword-tracking/{tracking_id}/check-ranking")

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["ranking_data"]["rank"], 2)
        self.assertEqual(data["keyword_tracking"]["current_rank"], 2)
        search_google.assert_called_once_with("plumber", "us", "serp-key")
        self.assertEqual(SerpApiKey.objects.get(api_key="serp-key").count, 1)

        history = self.client.get(f"/api/keyword-tracking/{tracking_id}/rank-history").json()
        entry = history["data"]["rank_history"][0]
        self.assertEqual(entry["rank_position"], 2)
        self.assertIn("Manual check on", entry["notes"])
        self.assertIn("Found at position 2", entry["notes"])

    @patch("apps.seo.keyword_service.search_google")
    def test_check_ranking_not_found(self, search_google):
        search_google.return_value = serp_results("https://other.com")
        tracking_id = self._create(
            client_id=self.acme.id, keyword="plumber", target_url="acme.com"
        ).json()["data"]["id"]

        data = self.client.post(f"/api/keyword-tracking/{tracking_id}/check-ranking").json()["data"]

        self.assertIsNone(data["ranking_data"]["rank"])
        self.assertEqual(data["ranking_data"]["raw_data"]["message"], "URL not found in top 100 results.")
        self.assertFalse(KeywordRankHistory.objects.exists())

    @patch("apps.seo.keyword_service.search_google")
    def test_failed_request_releases_reserved_call(self, search_google):
        search_google.side_effect = ExternalServiceError("SerpApi error: 500 - boom")
        tracking_id = self._create(
            client_id=self.acme.id, keyword="plumber", target_url="acme.com"
        ).json()["data"]["id"]

        response = self.client.post(f"/api/keyword-tracking/{tracking_id}/check-ranking")

        self.assertEqual(response.status_code, 502)
        self.assertEqual(SerpApiKey.objects.get(api_key="serp-key").count, 0)

    def test_check_ranking_without_keys(self):
        SerpApiKey.objects.all().delete()
        tracking_id = self._create(
            client_id=self.acme.id, keyword="plumber", target_url="acme.com"
        ).json()["data"]["id"]

        response = self.client.post(f"/api/keyword-tracking/{tracking_id}/check-ranking")
        self.assertEqual(response.status_code, 503)

    @patch("apps.seo.keyword_service.search_google")
    def test_bulk_check_reports_missing_ids(self, search_google):
        search_google.return_value = serp_results("https://acme.com")
        tracking_id = self._create(
            client_id=self.acme.id, keyword="plumber", target_url="acme.com"
        ).json()["data"]["id"]

        response = self.client.post(
            "/api/keyword-tracking/bulk-check",
            data=json.dumps({"ids": [tracking_id, 99999]}),
            content_type="application/json",
        )

        summary = response.json()["data"]["summary"]
        self.assertEqual(summary, {"total": 2, "successful": 1, "failed": 1})

        response = self.client.post(
            "/api/keyword-tracking/bulk-check", data=json.dumps({"ids": []}), content_type="application/json"
        )
        self.assertEqual(response.status_code, 400)
