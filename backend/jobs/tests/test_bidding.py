from decimal import Decimal

from jobs.models import Job, Bid, Escrow
from services.bidding import submit_bid, rank_bids, withdraw_bid
from services.job_management import (
	DispatchValidationError,
	DuplicateBidError,
	InvalidTransitionError,
	NotFoundError,
	UnauthorizedError,
)

from .base import DispatchTestCase


class SubmitBidTests(DispatchTestCase):
	def setUp(self):
		super().setUp()
		self.alice = self.make_provider('alice', km_north=1, rating=4.5)
		self.bob = self.make_provider('bob', km_north=2, rating=4.9)
		self.job = self.make_job()

	def test_bid_is_recorded_and_customer_notified(self):
		with self.captureOnCommitCallbacks(execute=True):
			result = submit_bid(self.job.id, self.alice, Decimal('80.00'), 30, note='Can come today')

		self.assertFalse(result.auto_hired)
		self.assertEqual(result.bid.status, Bid.PENDING)
		self.assertEqual(result.bid.note, 'Can come today')
		events = self.events(self.customer, 'bid_received')
		self.assertEqual(len(events), 1)
		self.assertEqual(events[0]['bid']['id'], result.bid.id)

	def test_duplicate_bid_is_rejected(self):
		submit_bid(self.job.id, self.alice, Decimal('80.00'), 30)
		with self.assertRaises(DuplicateBidError):
			submit_bid(self.job.id, self.alice, Decimal('70.00'), 30)
		self.assertEqual(Bid.objects.filter(job=self.job, provider=self.alice).count(), 1)

	def test_price_and_eta_are_validated(self):
		for price, eta in [(0, 30), (Decimal('-5'), 30), ('abc', 30), (50, 14), (50, 481), (50, 'soon')]:
			with self.assertRaises(DispatchValidationError):
				submit_bid(self.job.id, self.alice, price, eta)
		self.assertFalse(Bid.objects.exists())

	def test_eta_bounds_are_inclusive(self):
		submit_bid(self.job.id, self.alice, 50, 15)
		submit_bid(self.job.id, self.bob, 50, 480)
		self.assertEqual(Bid.objects.filter(job=self.job).count(), 2)

	def test_closed_job_takes_no_bids(self):
		Job.objects.filter(id=self.job.id).update(status=Job.BOOKED)
		with self.assertRaises(InvalidTransitionError):
			submit_bid(self.job.id, self.alice, Decimal('80.00'), 30)

	def test_quick_book_job_takes_no_bids(self):
		job = self.make_job(job_type=Job.QUICK_BOOK)
		with self.assertRaises(InvalidTransitionError):
			submit_bid(job.id, self.alice, Decimal('80.00'), 30)

	def test_missing_job(self):
		with self.assertRaises(NotFoundError):
			submit_bid(999999, self.alice, Decimal('80.00'), 30)


class AutoHireTests(DispatchTestCase):
	def setUp(self):
		super().setUp()
		self.alice = self.make_provider('alice', km_north=1)
		self.bob = self.make_provider('bob', km_north=2)
		self.job = self.make_job(accept_price=Decimal('100.00'))

	def test_bid_at_accept_price_hires_immediately(self):
		submit_bid(self.job.id, self.bob, Decimal('150.00'), 60)

		with self.captureOnCommitCallbacks(execute=True):
			result = submit_bid(self.job.id, self.alice, Decimal('100.00'), 30)

		self.assertTrue(result.auto_hired)
		self.assertEqual(result.bid.status, Bid.ACCEPTED)
		self.assertEqual(result.job.status, Job.BOOKED)
		self.assertEqual(result.job.provider_id, self.alice.id)
		self.assertEqual(result.job.final_price, Decimal('100.00'))
		self.assertEqual(result.escrow.status, Escrow.HELD)
		self.assertEqual(Bid.objects.get(provider=self.bob).status, Bid.REJECTED)

		self.assertEqual(self.events(self.customer, 'job_booked')[0]['auto_hired'], True)
		self.assertEqual(self.events(self.customer, 'bid_received'), [])

	def test_bid_above_accept_price_waits_for_customer(self):
		result = submit_bid(self.job.id, self.alice, Decimal('100.01'), 30)

		self.assertFalse(result.auto_hired)
		self.job.refresh_from_db()
		self.assertEqual(self.job.status, Job.BROADCASTED)
		self.assertIsNone(self.job.provider_id)

	def test_no_auto_hire_without_accept_price(self):
		job = self.make_job(accept_price=None)
		result = submit_bid(job.id, self.alice, Decimal('1.00'), 30)
		self.assertFalse(result.auto_hired)

	def test_later_bid_after_auto_hire_is_refused(self):
		submit_bid(self.job.id, self.alice, Decimal('90.00'), 30)
		with self.assertRaises(InvalidTransitionError):
			submit_bid(self.job.id, self.bob, Decimal('80.00'), 30)


class RankBidsTests(DispatchTestCase):
	def setUp(self):
		super().setUp()
		self.job = self.make_job()

	def bid(self, username, price, rating):
		provider = self.make_provider(username, rating=rating)
		return Bid.objects.create(job=self.job, provider=provider, price=Decimal(price), estimated_eta=30)

	def test_orders_by_price_then_rating_then_age(self):
		pricey = self.bid('pricey', '150.00', 5.0)
		cheap_low_rated = self.bid('cheap_low', '80.00', 3.0)
		cheap_top_rated = self.bid('cheap_top', '80.00', 4.8)
		cheap_top_later = self.bid('cheap_top_later', '80.00', 4.8)
		withdrawn = self.bid('withdrawn', '10.00', 5.0)
		Bid.objects.filter(id=withdrawn.id).update(status=Bid.WITHDRAWN)

		ranked = rank_bids(self.job.id)

		self.assertEqual(
			[b.id for b in ranked],
			[cheap_top_rated.id, cheap_top_later.id, cheap_low_rated.id, pricey.id],
		)
		self.assertEqual([b.rank for b in ranked], [1, 2, 3, 4])
		self.assertEqual(ranked[0].provider_rating, 4.8)

	def test_ranking_is_read_only(self):
		self.bid('only', '80.00', 4.0)
		rank_bids(self.job.id)
		self.assertEqual(list(Bid.objects.values_list('status', flat=True)), [Bid.PENDING])

	def test_missing_job(self):
		with self.assertRaises(NotFoundError):
			rank_bids(999999)


class WithdrawBidTests(DispatchTestCase):
	def setUp(self):
		super().setUp()
		self.alice = self.make_provider('alice')
		self.bob = self.make_provider('bob')
		self.job = self.make_job()
		self.bid = Bid.objects.create(job=self.job, provider=self.alice, price=Decimal('80.00'), estimated_eta=30)

	def test_withdraw_own_pending_bid(self):
		with self.captureOnCommitCallbacks(execute=True):
			bid = withdraw_bid(self.bid.id, self.alice)

		self.assertEqual(bid.status, Bid.WITHDRAWN)
		self.assertEqual(len(self.events(self.customer, 'bid_withdrawn')), 1)
		self.assertEqual(rank_bids(self.job.id), [])

	def test_cannot_withdraw_someone_elses_bid(self):
		with self.assertRaises(UnauthorizedError):
			withdraw_bid(self.bid.id, self.bob)

	def test_cannot_withdraw_after_booking(self):
		Job.objects.filter(id=self.job.id).update(status=Job.BOOKED)
		with self.assertRaises(InvalidTransitionError):
			withdraw_bid(self.bid.id, self.alice)
