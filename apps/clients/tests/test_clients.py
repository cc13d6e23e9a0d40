import json
from uuid import uuid4

from django.test import TestCase, Client
from django.contrib.auth import get_user_model

from apps.identity.models import UserRole
from apps.clients.models import Client as ClientModel, ChecklistCompletion


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


class ClientApiTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.org_id = uuid4()
        self.user = make_user(self.org_id)
        self.client.force_login(self.user)

    def _create(self, **payload):
        return self.client.post("/api/clients/", data=json.dumps(payload), content_type="application/json")

    def test_create_requires_name_and_website(self):
        self.assertEqual(self._create(name="Acme").status_code, 422)
        self.assertEqual(self._create(website="https://acme.com").status_code, 422)

        response = self._create(name="Acme", website="https://acme.com", city="Austin")
        self.assertEqual(response.status_code, 201)
        self.assertFalse(response.json()["contacted"])

    def test_search_and_sort(self):
        ClientModel.objects.create(org_id=self.org_id, name="Zed Roofing", website="https://z.com", phone="555-0001")
        ClientModel.objects.create(org_id=self.org_id, name="Able Plumbing", website="https://a.com", email="able@a.com")
        ClientModel.objects.create(org_id=uuid4(), name="Foreign", website="https://f.com")

        data = self.client.get("/api/clients/", {"sort_by": "name", "sort_dir": "asc"}).json()
        self.assertEqual([c["name"] for c in data["data"]], ["Able Plumbing", "Zed Roofing"])

        data = self.client.get("/api/clients/", {"search": "555-0001"}).json()
        self.assertEqual([c["name"] for c in data["data"]], ["Zed Roofing"])

    def test_update_and_delete(self):
        client_id = self._create(name="Acme", website="https://acme.com").json()["id"]

        response = self.client.put(
            f"/api/clients/{client_id}",
            data=json.dumps({"contacted": True}),
            content_type="application/json",
        )
        self.assertTrue(response.json()["contacted"])

        response = self.client.delete(f"/api/clients/{client_id}")
        self.assertEqual(response.json(), {"message": "Client deleted successfully"})
        self.assertEqual(self.client.get(f"/api/clients/{client_id}").status_code, 404)


class ChecklistTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.org_id = uuid4()
        self.user = make_user(self.org_id)
        self.client.force_login(self.user)
        self.acme = ClientModel.objects.create(org_id=self.org_id, name="Acme", website="https://acme.com")
        self.base = f"/api/clients/{self.acme.id}/checklist"

    def _toggle(self, item_id, body=None):
        return self.client.put(
            f"{self.base}/{item_id}/toggle",
            data=json.dumps(body or {}),
            content_type="application/json",
        )

    def test_first_toggle_completes_then_flips(self):
        data = self._toggle("gmb-setup").json()["data"]
        self.assertTrue(data["is_completed"])
        self.assertIsNotNone(data["completed_at"])

        data = self._toggle("gmb-setup").json()["data"]
        self.assertFalse(data["is_completed"])
        self.assertIsNone(data["completed_at"])

    def test_toggle_with_explicit_value(self):
        data = self._toggle("citations", {"isCompleted": False}).json()["data"]
        self.assertFalse(data["is_completed"])
        data = self._toggle("citations", {"isCompleted": False}).json()["data"]
        self.assertFalse(data["is_completed"])

    def test_complete_incomplete_and_stats(self):
        self.client.put(f"{self.base}/a/complete")
        self.client.put(f"{self.base}/b/complete")
        self.client.put(f"{self.base}/c/incomplete")

        stats = self.client.get(f"{self.base}/stats").json()["data"]
        self.assertEqual(stats, {"total_items": 3, "completed_items": 2, "incomplete_items": 1})

        completed = self.client.get(f"{self.base}/completed").json()["data"]
        self.assertEqual([c["checklist_item_id"] for c in completed], ["a", "b"])

        checklist = self.client.get(self.base).json()["data"]
        self.assertEqual(set(checklist), {"a", "b", "c"})
        self.assertFalse(checklist["c"]["is_completed"])

    def test_reset(self):
        self._toggle("a")
        response = self.client.delete(f"{self.base}/reset")
        self.assertEqual(response.json()["message"], "Checklist reset successfully")
        self.assertFalse(ChecklistCompletion.objects.exists())

    def test_missing_client(self):
        response = self.client.get("/api/clients/99999/checklist")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "Client not found")

    def test_foreign_client(self):
        other = ClientModel.objects.create(org_id=uuid4(), name="Other", website="https://o.com")
        self.assertEqual(self.client.put(f"/api/clients/{other.id}/checklist/a/complete").status_code, 404)
