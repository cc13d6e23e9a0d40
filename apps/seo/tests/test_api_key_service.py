import json
from datetime import timedelta
from uuid import uuid4

from django.test import TestCase, Client
from django.contrib.auth import get_user_model
from django.utils import timezone

from apps.identity.models import UserRole
from apps.seo import api_key_service
from apps.seo.api_key_service import NoAvailableApiKeyError, LIMIT
from apps.seo.models import SerpApiKey


User = get_user_model()


def make_user(org_id, role=UserRole.ADMIN):
    username = f"user_{uuid4().hex[:8]}"
    return User.objects.create_user(
        username=username,
        email=f"{username}@test.com",
        password="testpass123",
        org_id=org_id,
        role=role,
    )


def age(key: SerpApiKey, days: int):
    SerpApiKey.objects.filter(pk=key.pk).update(date_created=timezone.now() - timedelta(days=days))


class ReservationTest(TestCase):
    def test_keys_are_used_in_id_order(self):
        SerpApiKey.objects.create(api_key="first", count=10)
        SerpApiKey.objects.create(api_key="second", count=0)

        self.assertEqual(api_key_service.get_available_api_key(), "first")
        self.assertEqual(api_key_service.reserve_api_key(), "first")
        self.assertEqual(SerpApiKey.objects.get(api_key="first").count, 11)

    def test_reservation_skips_keys_that_cannot_afford_the_calls(self):
        SerpApiKey.objects.create(api_key="almost-full", count=LIMIT - 3)
        SerpApiKey.objects.create(api_key="fresh", count=0)

        self.assertEqual(api_key_service.reserve_api_key(9), "fresh")
        self.assertEqual(SerpApiKey.objects.get(api_key="almost-full").count, LIMIT - 3)
        self.assertEqual(SerpApiKey.objects.get(api_key="fresh").count, 9)

    def test_reservation_never_exceeds_limit(self):
        SerpApiKey.objects.create(api_key="only", count=LIMIT - 2)

        api_key_service.reserve_api_key()
        api_key_service.reserve_api_key()
        with self.assertRaises(NoAvailableApiKeyError):
            api_key_service.reserve_api_key()

        self.assertEqual(SerpApiKey.objects.get(api_key="only").count, LIMIT)
        self.assertIsNone(api_key_service.get_available_api_key())

    def test_expired_rows_are_not_candidates(self):
        key = SerpApiKey.objects.create(api_key="old", count=0)
        age(key, 31)

        with self.assertRaises(NoAvailableApiKeyError):
            api_key_service.reserve_api_key()

    def test_reserve_rejects_non_positive_calls(self):
        with self.assertRaises(ValueError):
            api_key_service.reserve_api_key(0)

    def test_release_gives_calls_back(self):
        SerpApiKey.objects.create(api_key="k", count=0)
        api_key_service.reserve_api_key(9)

        self.assertTrue(api_key_service.release_api_key("k", 4))
        self.assertEqual(SerpApiKey.objects.get(api_key="k").count, 5)
        self.assertFalse(api_key_service.release_api_key("missing", 1))

    def test_release_more_than_recorded_credits_nothing(self):
        SerpApiKey.objects.create(api_key="k", count=2)

        self.assertFalse(api_key_service.release_api_key("k", 3))
        self.assertEqual(SerpApiKey.objects.get(api_key="k").count, 2)


class UsageTest(TestCase):
    def test_increment_updates_newest_row_in_window(self):
        SerpApiKey.objects.create(api_key="k", count=5)
        api_key_service.increment_usage("k", 3)
        self.assertEqual(SerpApiKey.objects.get(api_key="k").count, 8)

    def test_increment_starts_new_window_for_aged_key(self):
        key = SerpApiKey.objects.create(api_key="k", count=200)
        age(key, 40)

        api_key_service.increment_usage("k", 2)

        rows = SerpApiKey.objects.filter(api_key="k").order_by('id')
        self.assertEqual([r.count for r in rows], [200, 2])

    def test_add_api_key_is_idempotent(self):
        self.assertTrue(api_key_service.add_api_key("new-key"))
        self.assertFalse(api_key_service.add_api_key("new-key"))
        with self.assertRaises(ValueError):
            api_key_service.add_api_key("  ")

    def test_usage_stats_status_and_order(self):
        for name, count in [("low", 5), ("limit", 249), ("medium", 150), ("high", 210)]:
            SerpApiKey.objects.create(api_key=name, count=count)

        stats = api_key_service.usage_stats()

        self.assertEqual([s.api_key for s in stats], ["limit", "high", "medium", "low"])
        self.assertEqual(
            [s.status for s in stats],
            ["LIMIT_REACHED", "HIGH_USAGE", "MEDIUM_USAGE", "LOW_USAGE"],
        )

    def test_cleanup_removes_only_expired_rows(self):
        SerpApiKey.objects.create(api_key="current", count=1)
        old = SerpApiKey.objects.create(api_key="old", count=1)
        age(old, 31)

        self.assertEqual(api_key_service.cleanup_old_records(), 1)
        self.assertEqual(list(SerpApiKey.objects.values_list('api_key', flat=True)), ["current"])


class KeyEndpointsTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.org_id = uuid4()

    def test_add_key_and_usage_stats(self):
        self.client.force_login(make_user(self.org_id))

        response = self.client.post(
            "/api/seo/add-key", data=json.dumps({"api_key": "abc"}), content_type="application/json"
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])

        response = self.client.post(
            "/api/seo/add-key", data=json.dumps({"api_key": "abc"}), content_type="application/json"
        )
        self.assertEqual(response.status_code, 409)

        stats = self.client.get("/api/seo/usage-stats").json()["stats"]
        self.assertEqual(stats[0]["api_key"], "abc")
        self.assertEqual(stats[0]["status"], "LOW_USAGE")

    def test_key_management_requires_admin(self):
        self.client.force_login(make_user(self.org_id, role=UserRole.MANAGER))
        response = self.client.post(
            "/api/seo/add-key", data=json.dumps({"api_key": "abc"}), content_type="application/json"
        )
        self.assertEqual(response.status_code, 403)

    def test_grid_sizes_is_public(self):
        data = self.client.get("/api/seo/grid-sizes").json()
        self.assertEqual(len(data["grid_sizes"]), 7)
        self.assertEqual(data["grid_sizes"][0]["size"], "0.7x0.7")
