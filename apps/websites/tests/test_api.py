"""
Tests for the website portfolio endpoints.
"""
import json
from uuid import uuid4

from django.test import TestCase, Client
from django.contrib.auth import get_user_model

from apps.identity.models import UserRole
from apps.activity.models import Activity
from apps.websites.models import Website


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


class WebsiteApiTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.org_id = uuid4()
        self.admin = make_user(self.org_id)
        self.client.force_login(self.admin)

    def _create(self, **overrides):
        payload = {"domain": "austinplumber.com", "niche": "plumbing", "monthly_revenue": "1500.00"}
        payload.update(overrides)
        return self.client.post("/api/websites/", data=json.dumps(payload), content_type="application/json")

    def test_create_website_logs_activity(self):
        """Creating a website returns 201 and writes a website_created entry."""
        response = self._create()

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data["domain"], "austinplumber.com")
        self.assertEqual(data["status"], "active")
        self.assertEqual(data["top_keywords"], [])

        activity = Activity.objects.get(type="website_created")
        self.assertEqual(activity.title, "New website added")
        self.assertEqual(activity.description, "Website austinplumber.com was added to the system")
        self.assertEqual(activity.website_id, data["id"])

    def test_create_validation(self):
        self.assertEqual(self._create(domain_authority=101).status_code, 422)
        self.assertEqual(self._create(status="archived").status_code, 422)
        self.assertEqual(self._create(monthly_revenue="-1").status_code, 422)

    def test_list_filter_search_and_sort(self):
        self._create(domain="a-roofing.com", niche="roofing", domain_authority=10)
        self._create(domain="b-plumbing.com", niche="plumbing", domain_authority=30)
        self._create(domain="c-plumbing.com", niche="plumbing", domain_authority=20, status="suspended")

        response = self.client.get("/api/websites/", {"search": "plumb", "sort_by": "domain_authority", "sort_dir": "asc"})
        data = response.json()
        self.assertIsNone(data["pagination"])
        self.assertEqual([w["domain"] for w in data["data"]], ["c-plumbing.com", "b-plumbing.com"])

        response = self.client.get("/api/websites/", {"status": "suspended"})
        self.assertEqual(len(response.json()["data"]), 1)

    def test_unknown_sort_falls_back(self):
        self._create(domain="first.com")
        self._create(domain="second.com")
        response = self.client.get("/api/websites/", {"sort_by": "password; drop", "sort_dir": "sideways"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"][0]["domain"], "second.com")

    def test_update_and_delete(self):
        website_id = self._create().json()["id"]

        response = self.client.put(
            f"/api/websites/{website_id}",
            data=json.dumps({"status": "inactive"}),
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "inactive")
        self.assertEqual(response.json()["niche"], "plumbing")

        response = self.client.delete(f"/api/websites/{website_id}")
        self.assertEqual(response.json(), {"message": "Website deleted successfully"})
        self.assertFalse(Website.objects.filter(id=website_id).exists())
        self.assertTrue(Activity.objects.filter(type="website_deleted").exists())

    def test_other_workspace_not_visible(self):
        other = Website.objects.create(org_id=uuid4(), domain="theirs.com")
        self.assertEqual(self.client.get(f"/api/websites/{other.id}").status_code, 404)
        self.assertEqual(self.client.delete(f"/api/websites/{other.id}").status_code, 404)

    def test_staff_cannot_create(self):
        self.client.force_login(make_user(self.org_id, role=UserRole.STAFF))
        self.assertEqual(self._create().status_code, 403)
