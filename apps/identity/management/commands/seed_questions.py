from django.core.management.base import BaseCommand
from apps.identity.models import PredefinedQuestion

DEFAULT_QUESTIONS = [
    ("What was the name of your first pet?", "childhood"),
    ("What was the name of the street you grew up on?", "childhood"),
    ("What was your mother's maiden name?", "family"),
    ("What was the name of your elementary school?", "education"),
    ("What was your childhood nickname?", "childhood"),
    ("What was the make of your first car?", "personal"),
    ("What was your favorite teacher's name?", "education"),
    ("What city were you born in?", "personal"),
    ("What was your favorite food as a child?", "childhood"),
    ("What was the name of your first employer?", "work"),
]


class Command(BaseCommand):
    help = 'Seeds the predefined security questions used for password recovery'

    def add_arguments(self, parser):
        parser.add_argument(
            '--deactivate-others',
            action='store_true',
            help='Deactivate questions that are not in the default list',
        )

    def handle(self, *args, **options):
        created_count = 0
        for question, category in DEFAULT_QUESTIONS:
            _, created = PredefinedQuestion.objects.update_or_create(
                question=question,
                defaults={'category': category, 'is_active': True},
            )
            if created:
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f'Created question: {question}'))

        if options['deactivate_others']:
            questions = [q for q, _ in DEFAULT_QUESTIONS]
            deactivated = PredefinedQuestion.objects.exclude(question__in=questions).update(is_active=False)
            self.stdout.write(self.style.WARNING(f'Deactivated {deactivated} questions'))

        self.stdout.write(self.style.SUCCESS(
            f'Security questions ready ({created_count} new, {len(DEFAULT_QUESTIONS)} total)'
        ))
