from django.test import TestCase, Client
from apps.organizations.models import Organization
from apps.identity.models import User, UserRole
import json


class OnboardingTests(TestCase):
    def setUp(self):
        self.client = Client()

    def _onboard(self, email="owner@acme-seo.com"):
        payload = {
            "organization": {
                "name": "Acme SEO",
                "settings": {"default_country": "us"}
            },
            "admin_user": {
                "username": "acme_owner",
                "email": email,
                "password": "StrongPassword123!",
                "name": "Acme Owner",
                "role": "VIEWER"
            }
        }
        return self.client.post(
            "/api/organizations/onboard",
            data=json.dumps(payload),
            content_type="application/json"
        )

    def test_onboard_organization_flow(self):
        """Onboarding creates the workspace and an ADMIN owner."""
        response = self._onboard()

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertIn("organization", data)
        self.assertIn("admin_user", data)

        org_id = data["organization"]["id"]
        user = User.objects.get(id=data["admin_user"]["id"])

        self.assertTrue(Organization.objects.filter(id=org_id).exists())
        self.assertEqual(user.role, UserRole.ADMIN)
        self.assertEqual(str(user.org_id), org_id)
        self.assertTrue(user.check_password("StrongPassword123!"))

    def test_onboard_duplicate_email_conflict(self):
        """A second onboarding with the same email is rejected and rolled back."""
        self.assertEqual(self._onboard().status_code, 200)

        response = self._onboard(email="OWNER@acme-seo.com")

        self.assertEqual(response.status_code, 409)
        self.assertEqual(Organization.objects.count(), 1)

    def test_add_user_to_organization(self):
        """An admin can add staff to their workspace."""
        data = self._onboard().json()
        admin_user = User.objects.get(id=data["admin_user"]["id"])
        self.client.force_login(admin_user)

        response = self.client.post(
            "/api/auth/users",
            data=json.dumps({
                "username": "staff_member",
                "email": "staff@acme-seo.com",
                "password": "StaffPassword123!",
                "name": "Staff Member",
                "role": "STAFF"
            }),
            content_type="application/json"
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["role"], "STAFF")
        self.assertEqual(str(body["org_id"]), data["organization"]["id"])

    def test_add_user_forbidden_for_staff(self):
        """Staff members cannot add users."""
        org = Organization.objects.create(name="Solo")
        staff_user = User.objects.create_user(
            username="staff_test",
            email="staff_test@test.com",
            password="testpass123",
            role=UserRole.STAFF,
            org_id=org.id
        )
        self.client.force_login(staff_user)

        response = self.client.post(
            "/api/auth/users",
            data=json.dumps({
                "username": "intruder",
                "email": "intruder@test.com",
                "password": "testpass123",
                "role": "ADMIN"
            }),
            content_type="application/json"
        )

        self.assertEqual(response.status_code, 403)
