"""
Tests for the authentication endpoints.

Covers:
1. Registration creates a workspace and signs the user in
2. Login by email, JWT cookies and Bearer access
3. Password change flows
4. Forgot / reset password through security questions
"""
import json
from uuid import uuid4

from django.test import TestCase, Client
from django.contrib.auth import get_user_model

from apps.activity.models import Activity
from apps.activity.services import ActivityType
from apps.identity.jwt_auth import create_access_token, ACCESS_COOKIE, REFRESH_COOKIE
from apps.identity.models import UserRole, PredefinedQuestion
from apps.identity.security_question_service import setup_questions
from apps.identity.dtos import QuestionAnswerIn
from apps.organizations.models import Organization


User = get_user_model()


class RegisterLoginTest(TestCase):
    def setUp(self):
        self.client = Client()

    def _post(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type='application/json')

    def test_register_creates_workspace_and_admin(self):
        """Registration should create an org, an ADMIN user and set cookies."""
        response = self._post('/api/auth/register', {
            'name': 'Jane Ranker',
            'email': 'Jane@Example.com',
            'password': 'secret1',
        })

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertTrue(data['token'])
        self.assertEqual(data['user']['email'], 'jane@example.com')
        self.assertEqual(data['user']['role'], UserRole.ADMIN)
        self.assertIn(ACCESS_COOKIE, response.cookies)
        self.assertIn(REFRESH_COOKIE, response.cookies)

        user = User.objects.get(email='jane@example.com')
        self.assertTrue(Organization.objects.filter(id=user.org_id).exists())
        self.assertEqual(user.free_minutes_remaining, 200)

    def test_register_duplicate_email(self):
        """Registering the same email twice should return 409."""
        payload = {'name': 'Jane', 'email': 'jane@example.com', 'password': 'secret1'}
        self.assertEqual(self._post('/api/auth/register', payload).status_code, 201)
        self.assertEqual(self._post('/api/auth/register', payload).status_code, 409)

    def test_register_short_password(self):
        response = self._post('/api/auth/register', {
            'name': 'Jane', 'email': 'jane@example.com', 'password': 'abc',
        })
        self.assertEqual(response.status_code, 400)

    def test_login_success_and_me_with_bearer(self):
        """Login returns a token usable as a Bearer header."""
        User.objects.create_user(
            username='owner', email='owner@example.com', password='testpass123',
            name='Owner', role=UserRole.ADMIN,
        )
        response = self._post('/api/auth/login', {
            'email': 'OWNER@example.com', 'password': 'testpass123',
        })
        self.assertEqual(response.status_code, 200)
        token = response.json()['token']

        me = Client().get('/api/auth/me', HTTP_AUTHORIZATION=f'Bearer {token}')
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()['email'], 'owner@example.com')

    def test_login_invalid_credentials(self):
        User.objects.create_user(username='owner', email='owner@example.com', password='testpass123')
        response = self._post('/api/auth/login', {'email': 'owner@example.com', 'password': 'wrong'})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['detail'], 'Invalid credentials')

    def test_login_inactive_user(self):
        User.objects.create_user(
            username='gone', email='gone@example.com', password='testpass123', is_active=False,
        )
        response = self._post('/api/auth/login', {'email': 'gone@example.com', 'password': 'testpass123'})
        self.assertEqual(response.status_code, 401)

    def test_me_requires_auth(self):
        self.assertEqual(self.client.get('/api/auth/me').status_code, 401)

    def test_me_with_cookie(self):
        user = User.objects.create_user(username='c', email='c@example.com', password='testpass123')
        self.client.cookies[ACCESS_COOKIE] = create_access_token(user.id, user.org_id)
        response = self.client.get('/api/auth/me')
        self.assertEqual(response.status_code, 200)

    def test_refresh_without_cookie(self):
        self.assertEqual(self._post('/api/auth/refresh', {}).status_code, 401)


class PasswordFlowTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(
            username='owner', email='owner@example.com', password='testpass123', role=UserRole.ADMIN,
        )
        self.q1 = PredefinedQuestion.objects.create(question='What was your first pet?', category='childhood')
        self.q2 = PredefinedQuestion.objects.create(question='What city were you born in?', category='personal')

    def _post(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type='application/json')

    def _setup_questions(self):
        setup_questions(self.user, [
            QuestionAnswerIn(predefined_question_id=self.q1.id, answer='Rex'),
            QuestionAnswerIn(predefined_question_id=self.q2.id, answer='Austin'),
        ])

    def test_change_password(self):
        """Change password with the correct current password."""
        self.client.force_login(self.user)
        response = self._post('/api/auth/change-password', {
            'currentPassword': 'testpass123', 'newPassword': 'brandnew123',
        })
        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('brandnew123'))

    def test_change_password_wrong_current(self):
        self.client.force_login(self.user)
        response = self._post('/api/auth/change-password', {
            'currentPassword': 'nope', 'newPassword': 'brandnew123',
        })
        self.assertEqual(response.status_code, 401)

    def test_change_password_blocked_when_questions_exist(self):
        self._setup_questions()
        self.client.force_login(self.user)
        response = self._post('/api/auth/change-password', {
            'currentPassword': 'testpass123', 'newPassword': 'brandnew123',
        })
        self.assertEqual(response.status_code, 400)

    def test_change_password_simple_length(self):
        self.client.force_login(self.user)
        response = self._post('/api/auth/change-password-simple', {'newPassword': 'short'})
        self.assertEqual(response.status_code, 400)

    def test_forgot_password_returns_questions(self):
        self._setup_questions()
        response = self._post('/api/auth/forgot-password', {'email': 'owner@example.com'})
        self.assertEqual(response.status_code, 200)
        questions = response.json()['questions']
        self.assertEqual([q['question'] for q in questions], [self.q1.question, self.q2.question])
        self.assertNotIn('answer_hash', questions[0])

    def test_forgot_password_unknown_email(self):
        response = self._post('/api/auth/forgot-password', {'email': 'nobody@example.com'})
        self.assertEqual(response.status_code, 404)

    def test_forgot_password_without_questions(self):
        response = self._post('/api/auth/forgot-password', {'email': 'owner@example.com'})
        self.assertEqual(response.status_code, 400)

    def test_reset_password_with_answers(self):
        """Answers are case and whitespace insensitive."""
        self._setup_questions()
        response = self._post('/api/auth/reset-password', {
            'email': 'owner@example.com',
            'newPassword': 'recovered123',
            'securityAnswers': ['  REX ', 'austin'],
        })
        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('recovered123'))

    def test_reset_password_wrong_answer(self):
        self._setup_questions()
        response = self._post('/api/auth/reset-password', {
            'email': 'owner@example.com',
            'newPassword': 'recovered123',
            'securityAnswers': ['Rex', 'Dallas'],
        })
        self.assertEqual(response.status_code, 400)

    def test_setup_questions_forgot_requires_two(self):
        response = self._post('/api/auth/setup-security-questions-forgot', {
            'email': 'owner@example.com',
            'questions': [{'predefined_question_id': self.q1.id, 'answer': 'Rex'}],
        })
        self.assertEqual(response.status_code, 400)

    def test_setup_questions_forgot_conflict(self):
        self._setup_questions()
        response = self._post('/api/auth/setup-security-questions-forgot', {
            'email': 'owner@example.com',
            'questions': [
                {'predefined_question_id': self.q1.id, 'answer': 'Rex'},
                {'predefined_question_id': self.q2.id, 'answer': 'Austin'},
            ],
        })
        self.assertEqual(response.status_code, 409)

    def test_setup_questions_forgot_is_recorded_in_feed(self):
        self.user.org_id = uuid4()
        self.user.save()

        response = self._post('/api/auth/setup-security-questions-forgot', {
            'email': 'owner@example.com',
            'questions': [
                {'predefined_question_id': self.q1.id, 'answer': 'Rex'},
                {'predefined_question_id': self.q2.id, 'answer': 'Austin'},
            ],
        })

        self.assertEqual(response.status_code, 201)
        entry = Activity.objects.get(org_id=self.user.org_id, type=ActivityType.SECURITY_QUESTIONS_SET)
        self.assertEqual(entry.performed_by_id, self.user.id)

        again = self._post('/api/auth/setup-security-questions-forgot', {
            'email': 'owner@example.com',
            'questions': [
                {'predefined_question_id': self.q1.id, 'answer': 'Cat'},
                {'predefined_question_id': self.q2.id, 'answer': 'Paris'},
            ],
        })
        self.assertEqual(again.status_code, 409)
