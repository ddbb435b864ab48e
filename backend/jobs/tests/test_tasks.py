from datetime import timedelta
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.utils import timezone

from jobs.models import Job
from jobs.tasks import escalate_broadcast_task, process_dispatch_timers_task

from .base import DispatchTestCase


@patch('jobs.tasks.escalate_broadcast_task.apply_async')
class DispatchTimerTests(DispatchTestCase):
	def setUp(self):
		super().setUp()
		self.make_provider('wide_area', km_north=8)
		past = timezone.now() - timedelta(minutes=1)
		self.post_quote = self.make_job(next_escalation_at=past)
		self.quick_book = self.make_job(job_type=Job.QUICK_BOOK, quick_book_deadline=past)

	def test_escalation_task_advances_stage(self, mock_apply):
		self.assertTrue(escalate_broadcast_task(self.post_quote.id, 2))
		self.assertEqual(Job.objects.get(id=self.post_quote.id).broadcast_stage, 2)

		# a duplicate delivery changes nothing
		self.assertFalse(escalate_broadcast_task(self.post_quote.id, 2))

	def test_periodic_task_runs_escalations_and_expiry(self, mock_apply):
		summary = process_dispatch_timers_task()

		self.assertEqual(summary, {'due': 1, 'advanced': 1, 'expired': 1})
		self.assertEqual(Job.objects.get(id=self.post_quote.id).broadcast_stage, 2)
		self.assertEqual(Job.objects.get(id=self.quick_book.id).status, Job.EXPIRED)

	def test_management_command(self, mock_apply):
		out = StringIO()
		call_command('process_dispatch_timers', stdout=out)

		self.assertIn('Advanced 1 of 1 due escalation(s); expired 1 quick-book job(s).', out.getvalue())
		self.assertEqual(Job.objects.get(id=self.quick_book.id).status, Job.EXPIRED)

	def test_management_command_can_skip_expiry(self, mock_apply):
		call_command('process_dispatch_timers', skip_expiry=True, stdout=StringIO())

		self.assertEqual(Job.objects.get(id=self.quick_book.id).status, Job.BROADCASTED)
		self.assertEqual(Job.objects.get(id=self.post_quote.id).broadcast_stage, 2)
