import json
from types import SimpleNamespace
from unittest.mock import patch, MagicMock
from uuid import uuid4

from django.test import TestCase, SimpleTestCase
from django.contrib.auth import get_user_model

from apps.clients.models import Client as ClientModel
from apps.core.backends import local_backend
from apps.core.backends.celery_backend import CeleryTaskService
from apps.core.backends.lambda_backend import LambdaTaskService, build_message
from apps.core.task_service import TaskService
from apps.seo.api_key_service import NoAvailableApiKeyError
from apps.seo.models import KeywordTracking


User = get_user_model()


@patch.dict("os.environ", {"TASK_BACKEND": "local"})
class LocalBackendTest(TestCase):
    def setUp(self):
        self.org_id = uuid4()
        user = User.objects.create_user(
            username=f"user_{uuid4().hex[:8]}", email=f"{uuid4().hex[:8]}@test.com",
            password="testpass123", org_id=self.org_id,
        )
        client = ClientModel.objects.create(org_id=self.org_id, name="Acme", website="https://acme.com")
        self.tracking = KeywordTracking.objects.create(
            org_id=self.org_id, user=user, client=client,
            keyword="austin plumber", target_url="acme.com",
        )

    def test_every_task_has_a_handler(self):
        for name in ("check_due_keywords", "check_keyword_ranking", "cleanup_serpapi_keys",
                     "reset_free_minutes", "renew_phone_numbers"):
            self.assertIn(name, local_backend.TASK_HANDLERS)

    @patch("apps.seo.keyword_service.check_ranking")
    def test_due_sweep_fans_out_per_keyword(self, mock_check):
        mock_check.return_value = (self.tracking, SimpleNamespace(rank=4))

        TaskService.check_due_keywords()

        mock_check.assert_called_once_with(self.org_id, self.tracking.id)

    @patch("apps.seo.keyword_service.check_ranking", side_effect=NoAvailableApiKeyError("pool empty"))
    def test_rank_check_without_keys_does_not_raise(self, mock_check):
        TaskService.check_keyword_ranking(self.tracking.id)

        mock_check.assert_called_once()

    @patch("apps.telephony.billing_service.reset_free_minutes", return_value=3)
    def test_reset_free_minutes(self, mock_reset):
        task_id = TaskService.reset_free_minutes()

        self.assertTrue(task_id)
        mock_reset.assert_called_once_with()

    @patch("apps.telephony.billing_service.renew_phone_numbers", return_value={'renewed': 1, 'deactivated': 0})
    def test_renew_phone_numbers(self, mock_renew):
        TaskService.renew_phone_numbers()

        mock_renew.assert_called_once_with()


class UnknownBackendTest(SimpleTestCase):
    @patch.dict("os.environ", {"TASK_BACKEND": "carrier-pigeon"})
    def test_unknown_backend(self):
        with self.assertRaises(ValueError):
            TaskService.cleanup_serpapi_keys()


class CeleryBackendTest(SimpleTestCase):
    @patch("apps.core.backends.celery_backend._get_celery_task")
    def test_payload_becomes_positional_args(self, mock_get):
        task = MagicMock()
        mock_get.return_value = task

        task_id = CeleryTaskService().send_task("check_keyword_ranking", {"keyword_id": 7}, delay_seconds=30)

        task.apply_async.assert_called_once_with(args=[7], countdown=30, task_id=task_id)

    def test_unmapped_task(self):
        with self.assertRaises(ValueError):
            CeleryTaskService().send_task("generate_report", {})


class LambdaBackendTest(SimpleTestCase):
    def test_message_body(self):
        body = json.loads(build_message("abc", "renew_phone_numbers", {}))

        self.assertEqual(body, {"task_id": "abc", "task_name": "renew_phone_numbers", "payload": {}})

    @patch.dict("os.environ", {"TASK_QUEUE_URL": "https://sqs.test/queue"})
    def test_send_clamps_delay(self):
        service = LambdaTaskService()
        service._sqs_client = MagicMock()
        service._sqs_client.send_message.return_value = {"MessageId": "m-1"}

        service.send_task("cleanup_serpapi_keys", {}, delay_seconds=5000)

        kwargs = service._sqs_client.send_message.call_args.kwargs
        self.assertEqual(kwargs["QueueUrl"], "https://sqs.test/queue")
        self.assertEqual(kwargs["DelaySeconds"], 900)

    @patch.dict("os.environ", {"TASK_QUEUE_URL": ""})
    def test_missing_queue_url(self):
        with self.assertRaises(RuntimeError):
            LambdaTaskService().send_task("cleanup_serpapi_keys", {})
