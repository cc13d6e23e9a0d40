import json
from uuid import uuid4

from django.test import TestCase, Client
from django.contrib.auth import get_user_model

from apps.identity.models import UserRole
from apps.activity.models import Activity
from apps.taskboard.models import Task
from apps.websites.models import Website


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


class TaskApiTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.org_id = uuid4()
        self.user = make_user(self.org_id)
        self.client.force_login(self.user)
        self.website = Website.objects.create(org_id=self.org_id, domain="dallasroofer.com")

    def _create(self, **payload):
        return self.client.post("/api/tasks/", data=json.dumps(payload), content_type="application/json")

    def test_create_defaults_and_activity(self):
        response = self._create(title="Write service pages", website_id=self.website.id)

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data["status"], "todo")
        self.assertEqual(data["priority"], "medium")
        self.assertEqual(data["website"], self.website.id)

        activity = Activity.objects.get(type="task_created")
        self.assertEqual(activity.description, 'Task "Write service pages" was created')
        self.assertEqual(activity.website, self.website)

    def test_create_with_foreign_website(self):
        other = Website.objects.create(org_id=uuid4(), domain="not-mine.com")
        self.assertEqual(self._create(title="x", website_id=other.id).status_code, 400)

    def test_title_required(self):
        self.assertEqual(self._create(description="no title").status_code, 422)

    def test_status_change_logged(self):
        task_id = self._create(title="Build citations").json()["id"]

        self.client.put(f"/api/tasks/{task_id}", data=json.dumps({"priority": "high"}), content_type="application/json")
        self.assertFalse(Activity.objects.filter(type="task_status_changed").exists())

        response = self.client.put(
            f"/api/tasks/{task_id}",
            data=json.dumps({"status": "in_progress"}),
            content_type="application/json",
        )
        self.assertEqual(response.json()["status"], "in_progress")
        activity = Activity.objects.get(type="task_status_changed")
        self.assertEqual(activity.description, 'Task "Build citations" status changed from todo to in_progress')

    def test_filters(self):
        Task.objects.create(org_id=self.org_id, title="Alpha", priority="high", assignee="Maria Lopez")
        Task.objects.create(org_id=self.org_id, title="Beta", description="fix schema", status="completed")
        Task.objects.create(org_id=self.org_id, title="Gamma", website=self.website)

        def titles(params):
            return [t["title"] for t in self.client.get("/api/tasks/", params).json()["data"]]

        self.assertEqual(titles({"priority": "high"}), ["Alpha"])
        self.assertEqual(titles({"assignee": "maria"}), ["Alpha"])
        self.assertEqual(titles({"status": "completed"}), ["Beta"])
        self.assertEqual(titles({"search": "schema"}), ["Beta"])
        self.assertEqual(titles({"website_id": self.website.id}), ["Gamma"])
        self.assertEqual(titles({"sort_by": "title", "sort_dir": "asc"}), ["Alpha", "Beta", "Gamma"])

    def test_delete(self):
        task_id = self._create(title="Old").json()["id"]
        self.assertEqual(self.client.delete(f"/api/tasks/{task_id}").status_code, 200)
        self.assertTrue(Activity.objects.filter(type="task_deleted").exists())
        self.assertEqual(self.client.delete(f"/api/tasks/{task_id}").status_code, 404)
