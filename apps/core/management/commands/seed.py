from datetime import timedelta
from decimal import Decimal

from django.core.management import call_command
from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from apps.clients.models import Client
from apps.leads.models import Lead, LeadStatus
from apps.organizations.models import Organization
from apps.seo.models import KeywordTracking, SavedKeyword
from apps.taskboard.models import Task, TaskStatus, TaskPriority
from apps.websites.models import Website, WebsiteStatus

User = get_user_model()

DEMO_WORKSPACE = "Demo Rank & Rent"
DEMO_EMAIL = "demo@rankandrenttool.com"
DEMO_PASSWORD = "password123"

WEBSITES = [
    ("austinplumbingpros.com", "Plumbing", WebsiteStatus.ACTIVE, Decimal('1200.00'), 28),
    ("dallasroofingexperts.com", "Roofing", WebsiteStatus.ACTIVE, Decimal('1800.00'), 34),
    ("houstontreeservice.net", "Tree Service", WebsiteStatus.ACTIVE, Decimal('750.00'), 19),
    ("sanantoniopestcontrol.com", "Pest Control", WebsiteStatus.INACTIVE, Decimal('0.00'), 12),
]

LEADS = [
    ("Mike's Plumbing", "mike@mikesplumbing.test", "(512) 555-0143", LeadStatus.NEW, "Austin"),
    ("Lone Star Roofing", "office@lonestarroofing.test", "(214) 555-0198", LeadStatus.CONTACTED, "Dallas"),
    ("Green Leaf Arborists", "hello@greenleaf.test", "(713) 555-0112", LeadStatus.QUALIFIED, "Houston"),
    ("Bug Busters", None, "(210) 555-0177", LeadStatus.LOST, "San Antonio"),
]

CLIENTS = [
    ("Capital City Plumbing", "https://capitalcityplumbing.test", "Austin", 87, "austin plumber"),
    ("Big D Roofing Co", "https://bigdroofing.test", "Dallas", 142, "dallas roofer"),
]

TASKS = [
    ("Publish 3 service-area pages", TaskStatus.TODO, TaskPriority.HIGH, 3),
    ("Build citations for roofing site", TaskStatus.IN_PROGRESS, TaskPriority.MEDIUM, 7),
    ("Send monthly lead report", TaskStatus.COMPLETED, TaskPriority.LOW, -2),
]

SAVED_KEYWORDS = [
    ("emergency plumber austin", 32, 1900, "target"),
    ("roof repair dallas", 41, 2400, "target"),
    ("tree removal cost houston", 18, 880, "idea"),
]


class Command(BaseCommand):
    help = 'Seeds security questions and a demo rank-and-rent workspace.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clean',
            action='store_true',
            help='Delete the demo workspace before seeding',
        )
        parser.add_argument(
            '--questions',
            action='store_true',
            help='Seed predefined security questions only',
        )

    def handle(self, *args, **options):
        call_command('seed_questions', stdout=self.stdout)
        if options['questions']:
            return

        if options['clean']:
            self.stdout.write(self.style.WARNING('Removing demo workspace...'))
            self._clean_demo()

        with transaction.atomic():
            org = self._get_or_create_org()
            user = self._seed_user(org)
            websites = self._seed_websites(org, user)
            clients = self._seed_clients(org, user)
            self._seed_leads(org, user)
            self._seed_tasks(org, user, websites)
            self._seed_keywords(org, user, clients)

        self.stdout.write(self.style.SUCCESS('Seeding completed successfully.'))
        self.stdout.write(f' - Login: {DEMO_EMAIL} / {DEMO_PASSWORD}')

    def _clean_demo(self):
        org = Organization.objects.filter(name=DEMO_WORKSPACE).first()
        if org is None:
            return
        for model in (KeywordTracking, Task, Lead, Client, Website):
            model.objects.filter(org_id=org.id).delete()
        User.objects.filter(org_id=org.id, is_superuser=False).delete()
        org.delete()

    def _get_or_create_org(self):
        org, created = Organization.objects.get_or_create(
            name=DEMO_WORKSPACE,
            defaults={'settings': {'default_country': 'us'}},
        )
        self.stdout.write(f"{'Created' if created else 'Using existing'} Organization: {org.name}")
        return org

    def _seed_user(self, org):
        user = User.objects.filter(email=DEMO_EMAIL).first()
        if user:
            return user
        user = User.objects.create_user(
            username=DEMO_EMAIL,
            email=DEMO_EMAIL,
            password=DEMO_PASSWORD,
            name="Demo Owner",
            org_id=org.id,
            role='ADMIN',
            balance=Decimal('25.00'),
            free_minutes_last_reset=timezone.now(),
        )
        self.stdout.write(f' - Created {DEMO_EMAIL}')
        return user

    def _seed_websites(self, org, user):
        websites = []
        for domain, niche, status, revenue, authority in WEBSITES:
            website, _ = Website.objects.get_or_create(
                org_id=org.id,
                domain=domain,
                defaults={
                    'created_by': user,
                    'niche': niche,
                    'status': status,
                    'monthly_revenue': revenue,
                    'domain_authority': authority,
                },
            )
            websites.append(website)
        self.stdout.write(f' - {len(websites)} websites')
        return websites

    def _seed_clients(self, org, user):
        clients = []
        for name, url, city, reviews, _ in CLIENTS:
            client, _ = Client.objects.get_or_create(
                org_id=org.id,
                name=name,
                defaults={'created_by': user, 'website': url, 'city': city, 'reviews': reviews},
            )
            clients.append(client)
        self.stdout.write(f' - {len(clients)} clients')
        return clients

    def _seed_leads(self, org, user):
        for name, email, phone, status, city in LEADS:
            Lead.objects.get_or_create(
                org_id=org.id,
                company=name,
                defaults={
                    'created_by': user,
                    'name': name,
                    'email': email,
                    'phone': phone,
                    'status': status,
                    'city': city,
                    'contacted': status != LeadStatus.NEW,
                },
            )
        self.stdout.write(f' - {len(LEADS)} leads')

    def _seed_tasks(self, org, user, websites):
        today = timezone.now().date()
        for index, (title, status, priority, due_in) in enumerate(TASKS):
            Task.objects.get_or_create(
                org_id=org.id,
                title=title,
                defaults={
                    'created_by': user,
                    'website': websites[index % len(websites)],
                    'status': status,
                    'priority': priority,
                    'assignee': user.name,
                    'due_date': today + timedelta(days=due_in),
                },
            )
        self.stdout.write(f' - {len(TASKS)} tasks')

    def _seed_keywords(self, org, user, clients):
        for client, (*_, keyword) in zip(clients, CLIENTS):
            KeywordTracking.objects.get_or_create(
                org_id=org.id,
                client=client,
                keyword=keyword,
                defaults={'user': user, 'target_url': client.website},
            )
        for keyword, difficulty, volume, category in SAVED_KEYWORDS:
            SavedKeyword.objects.get_or_create(
                user=user,
                keyword=keyword,
                defaults={'difficulty': difficulty, 'volume': volume, 'category': category},
            )
        self.stdout.write(f' - {len(clients)} tracked and {len(SAVED_KEYWORDS)} saved keywords')
