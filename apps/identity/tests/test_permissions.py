from django.test import TestCase
from apps.identity.models import User, UserRole
from apps.identity.permissions import Permissions, ROLE_PERMISSIONS, get_user_permissions


class RolePermissionsTest(TestCase):
    def _user(self, role, **extra):
        return User.objects.create_user(
            username=f"user_{role.lower()}",
            email=f"{role.lower()}@test.com",
            password="testpass123",
            role=role,
            **extra
        )

    def test_admin_has_every_permission(self):
        admin = self._user(UserRole.ADMIN)
        perms = get_user_permissions(admin)
        self.assertIn(Permissions.SEO_MANAGE_KEYS, perms)
        self.assertIn(Permissions.ORGANIZATION_MANAGE, perms)

    def test_manager_cannot_manage_keys_or_users(self):
        perms = ROLE_PERMISSIONS[UserRole.MANAGER]
        self.assertIn(Permissions.WEBSITES_MANAGE, perms)
        self.assertNotIn(Permissions.SEO_MANAGE_KEYS, perms)
        self.assertNotIn(Permissions.IDENTITY_MANAGE_USER, perms)

    def test_staff_works_leads_but_not_websites(self):
        perms = ROLE_PERMISSIONS[UserRole.STAFF]
        self.assertIn(Permissions.LEADS_MANAGE, perms)
        self.assertIn(Permissions.TELEPHONY_CALL, perms)
        self.assertNotIn(Permissions.WEBSITES_MANAGE, perms)

    def test_viewer_is_read_only(self):
        viewer = self._user(UserRole.VIEWER)
        perms = get_user_permissions(viewer)
        self.assertIn(Permissions.LEADS_VIEW, perms)
        self.assertFalse(any(p.endswith('.manage') for p in perms))
