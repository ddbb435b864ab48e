from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.utils import timezone

from jobs.models import Job, JobBroadcast
from providers.models import Category
from realtime import gateway
from services.job_management import create_quick_book_job, create_post_quote_job
from services.matching import advance_broadcast_stage, process_due_escalations

from .base import DispatchTestCase, ORIGIN_LAT, ORIGIN_LON


class QuickBookBroadcastTests(DispatchTestCase):
	def setUp(self):
		super().setUp()
		self.near = self.make_provider('near', km_north=1, tier='tier_a')
		self.mid = self.make_provider('mid', km_north=3, tier='tier_b')
		self.far = self.make_provider('far', km_north=12, tier='tier_a')

	def create(self, **overrides):
		params = dict(
			customer=self.customer,
			category_id=self.category.id,
			title='Leaking tap',
			latitude=ORIGIN_LAT,
			longitude=ORIGIN_LON,
			address='MG Road',
			arrival_window=2,
		)
		params.update(overrides)
		with self.captureOnCommitCallbacks(execute=True):
			return create_quick_book_job(**params)

	def test_broadcasts_to_every_provider_in_radius(self):
		before = timezone.now()
		result = self.create()
		job = result.job

		self.assertEqual(job.status, Job.BROADCASTED)
		self.assertEqual(job.estimated_price, Decimal('100.00'))
		self.assertEqual(result.extra['providers_notified'], 2)
		self.assertGreaterEqual(job.quick_book_deadline, before + timedelta(hours=2))
		self.assertEqual(job.scheduled_at, job.quick_book_deadline)

		self.assertEqual(self.recipients('new_job'), {self.near.id, self.mid.id})
		self.assertEqual(
			set(JobBroadcast.objects.filter(job=job).values_list('provider_id', 'stage')),
			{(self.near.id, 1), (self.mid.id, 1)},
		)

	def test_stays_pending_when_nobody_is_nearby(self):
		empty = Category.objects.create(name='Roofing')
		result = self.create(category_id=empty.id)

		self.assertEqual(result.job.status, Job.PENDING)
		self.assertEqual(result.extra['providers_notified'], 0)
		self.assertEqual(len(self.events(self.customer, 'no_providers_available')), 1)
		self.assertEqual(self.recipients('new_job'), set())

	def test_pushes_wait_for_commit(self):
		with self.captureOnCommitCallbacks(execute=False) as callbacks:
			create_quick_book_job(
				customer=self.customer,
				category_id=self.category.id,
				title='Leaking tap',
				latitude=ORIGIN_LAT,
				longitude=ORIGIN_LON,
				address='MG Road',
				arrival_window=2,
			)

		self.assertTrue(callbacks)
		self.assertEqual(self.events(), [])


@patch('jobs.tasks.escalate_broadcast_task.apply_async')
class PostQuoteEscalationTests(DispatchTestCase):
	def setUp(self):
		super().setUp()
		self.tier_a_near = self.make_provider('tier_a_near', km_north=1, tier='tier_a')
		self.tier_b_near = self.make_provider('tier_b_near', km_north=2, tier='tier_b')
		self.tier_a_mid = self.make_provider('tier_a_mid', km_north=7, tier='tier_a')
		self.tier_b_far = self.make_provider('tier_b_far', km_north=40, tier='tier_b')

	def create(self):
		with self.captureOnCommitCallbacks(execute=True):
			return create_post_quote_job(
				customer=self.customer,
				category_id=self.category.id,
				title='Repaint bedroom',
				latitude=ORIGIN_LAT,
				longitude=ORIGIN_LON,
				address='MG Road',
			).job

	def advance(self, job, stage):
		with self.captureOnCommitCallbacks(execute=True):
			return advance_broadcast_stage(job.id, stage)

	def ledger(self, job):
		return dict(JobBroadcast.objects.filter(job=job).values_list('provider_id', 'stage'))

	def test_stage_one_reaches_nearby_tier_a_only(self, mock_apply):
		before = timezone.now()
		job = self.create()

		self.assertEqual(job.status, Job.BROADCASTED)
		self.assertEqual(job.broadcast_stage, 1)
		self.assertGreaterEqual(job.bidding_ends_at, before + timedelta(minutes=15))
		self.assertGreaterEqual(job.next_escalation_at, before + timedelta(minutes=5))
		self.assertEqual(self.recipients('new_job'), {self.tier_a_near.id})
		mock_apply.assert_called_once_with((job.id, 2), eta=job.next_escalation_at)

	def test_stages_widen_and_never_renotify(self, mock_apply):
		job = self.create()

		self.assertTrue(self.advance(job, 2))
		job.refresh_from_db()
		self.assertEqual(job.broadcast_stage, 2)
		self.assertIsNotNone(job.next_escalation_at)
		self.assertEqual(self.ledger(job), {
			self.tier_a_near.id: 1,
			self.tier_b_near.id: 2,
			self.tier_a_mid.id: 2,
		})
		mock_apply.assert_called_with((job.id, 3), eta=job.next_escalation_at)

		self.assertTrue(self.advance(job, 3))
		job.refresh_from_db()
		self.assertEqual(job.broadcast_stage, 3)
		self.assertIsNone(job.next_escalation_at)
		self.assertEqual(self.ledger(job)[self.tier_b_far.id], 3)

		# every provider heard about the job exactly once
		new_job_events = [user_id for user_id, payload in gateway.outbox if payload['type'] == 'new_job']
		self.assertEqual(sorted(new_job_events), sorted(self.ledger(job).keys()))

	def test_escalation_is_idempotent(self, mock_apply):
		job = self.create()
		self.assertTrue(self.advance(job, 2))
		version = Job.objects.get(id=job.id).version

		self.assertFalse(self.advance(job, 2))
		self.assertFalse(self.advance(job, 1))
		self.assertEqual(Job.objects.get(id=job.id).version, version)

	def test_escalation_after_booking_is_a_no_op(self, mock_apply):
		job = self.create()
		Job.objects.filter(id=job.id).update(status=Job.BOOKED, provider=self.tier_a_near, next_escalation_at=None)
		pushed = len(self.events())

		self.assertFalse(self.advance(job, 2))

		job.refresh_from_db()
		self.assertEqual(job.broadcast_stage, 1)
		self.assertEqual(len(self.events()), pushed)
		self.assertEqual(len(self.ledger(job)), 1)

	def test_escalation_of_missing_job_is_a_no_op(self, mock_apply):
		self.assertFalse(advance_broadcast_stage(999999, 2))

	def test_due_sweep_advances_only_overdue_jobs(self, mock_apply):
		overdue = self.create()
		later = self.create()
		now = timezone.now()
		Job.objects.filter(id=overdue.id).update(next_escalation_at=now - timedelta(seconds=1))
		Job.objects.filter(id=later.id).update(next_escalation_at=now + timedelta(minutes=5))

		with self.captureOnCommitCallbacks(execute=True):
			due, advanced = process_due_escalations(now=now)

		self.assertEqual((due, advanced), (1, 1))
		self.assertEqual(Job.objects.get(id=overdue.id).broadcast_stage, 2)
		self.assertEqual(Job.objects.get(id=later.id).broadcast_stage, 1)
