from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

from django.test import TestCase, Client as HttpClient
from django.contrib.auth import get_user_model
from django.utils import timezone

from apps.activity.services import log_activity, ActivityType
from apps.clients.models import Client
from apps.dashboard import services
from apps.identity.models import UserRole
from apps.leads.models import Lead
from apps.telephony.models import PhoneNumber
from apps.websites.models import Website, WebsiteStatus


User = get_user_model()


def make_user(org_id, role=UserRole.VIEWER):
    username = f"user_{uuid4().hex[:8]}"
    return User.objects.create_user(
        username=username,
        email=f"{username}@test.com",
        password="testpass123",
        org_id=org_id,
        role=role,
    )


def backdate(obj, days):
    type(obj).objects.filter(pk=obj.pk).update(created_at=timezone.now() - timedelta(days=days))


class FormattingTest(TestCase):
    def test_currency(self):
        self.assertEqual(services.format_currency(Decimal('12500.00')), "$12,500")
        self.assertEqual(services.format_currency(Decimal('1500.50')), "$1,500.50")
        self.assertEqual(services.format_currency(None), "$0")

    def test_percent_change(self):
        self.assertEqual(services.percent_change(1, 9), "+12.5%")
        self.assertEqual(services.percent_change(0, 10), "+0%")
        self.assertEqual(services.percent_change(3, 3), "+100%")
        self.assertEqual(services.percent_change(0, 0), "+0%")


class DashboardStatsTest(TestCase):
    def setUp(self):
        self.org_id = uuid4()
        self.user = make_user(self.org_id)
        self.client = HttpClient()
        self.client.force_login(self.user)

    def test_stats_are_org_scoped_with_changes(self):
        old_site = Website.objects.create(org_id=self.org_id, domain="old.com", monthly_revenue=Decimal('1000'))
        backdate(old_site, 60)
        Website.objects.create(org_id=self.org_id, domain="new.com", monthly_revenue=Decimal('500'))
        Website.objects.create(org_id=self.org_id, domain="off.com", monthly_revenue=Decimal('900'),
                               status=WebsiteStatus.INACTIVE)
        Website.objects.create(org_id=uuid4(), domain="other.com", monthly_revenue=Decimal('9999'))

        backdate(Lead.objects.create(org_id=self.org_id, name="Old lead"), 45)
        Lead.objects.create(org_id=self.org_id, name="New lead")
        Client.objects.create(org_id=self.org_id, name="Plumber", website="https://plumber.test")
        PhoneNumber.objects.create(user=self.user, phone_number="+15550001111", twilio_sid="PN1")
        PhoneNumber.objects.create(user=self.user, phone_number="+15550002222", twilio_sid="PN2", is_active=False)

        response = self.client.get("/api/dashboard/stats")

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["totalRevenue"], {"value": "$1,500", "change": "+50%", "label": "Total Revenue"})
        self.assertEqual(data["activeWebsites"]["value"], "2")
        self.assertEqual(data["activeWebsites"]["change"], "+1")
        self.assertEqual(data["totalLeads"]["value"], "2")
        self.assertEqual(data["totalLeads"]["change"], "+100%")
        self.assertEqual(data["activeClients"]["value"], "1")
        self.assertEqual(data["totalPhones"]["value"], "1")
        self.assertEqual(data["totalPhones"]["label"], "Phone Numbers")

    def test_requires_login(self):
        response = HttpClient().get("/api/dashboard/stats")

        self.assertEqual(response.status_code, 401)


class RecentActivityTest(TestCase):
    def setUp(self):
        self.org_id = uuid4()
        self.client = HttpClient()
        self.client.force_login(make_user(self.org_id))

    def test_recent_activity_feed(self):
        website = Website.objects.create(org_id=self.org_id, domain="plumbing.com")
        for i in range(3):
            log_activity(
                org_id=self.org_id,
                activity_type=ActivityType.LEAD_CREATED,
                title=f"Lead {i}",
                website=website,
            )
        log_activity(org_id=uuid4(), activity_type=ActivityType.LEAD_CREATED, title="Elsewhere")

        response = self.client.get("/api/dashboard/recent-activity?limit=2")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["total"], 2)
        first = body["data"][0]
        self.assertEqual(first["title"], "Lead 2")
        self.assertEqual(first["website"], "plumbing.com")
        self.assertEqual(first["timeAgo"], "Just now")
