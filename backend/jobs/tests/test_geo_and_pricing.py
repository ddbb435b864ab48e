from decimal import Decimal

from django.test import SimpleTestCase

from common.utils import calculate_distance
from jobs.models import PriceHistory
from providers.models import Category
from services.matching import find_candidates
from services.pricing import percentile, get_price_guidance, DEFAULT_GUIDANCE

from .base import DispatchTestCase, ORIGIN_LAT, ORIGIN_LON


class DistanceTests(SimpleTestCase):
	def test_identical_points_are_zero_apart(self):
		self.assertEqual(calculate_distance(12.9716, 77.5946, 12.9716, 77.5946), 0.0)

	def test_distance_is_symmetric(self):
		there = calculate_distance(12.9716, 77.5946, 13.0827, 80.2707)
		back = calculate_distance(13.0827, 80.2707, 12.9716, 77.5946)
		self.assertAlmostEqual(there, back, places=9)

	def test_pole_to_pole(self):
		self.assertAlmostEqual(calculate_distance(90, 0, -90, 0), 20015.09, delta=0.01)

	def test_one_degree_of_latitude(self):
		self.assertAlmostEqual(calculate_distance(0, 0, 1, 0), 111.19, delta=0.01)


class PercentileTests(SimpleTestCase):
	def test_interpolates_between_ranks(self):
		values = [10, 20, 30, 40]
		self.assertAlmostEqual(percentile(values, 10), 13.0)
		self.assertAlmostEqual(percentile(values, 50), 25.0)
		self.assertAlmostEqual(percentile(values, 90), 37.0)

	def test_extremes(self):
		values = [10, 20, 30, 40]
		self.assertEqual(percentile(values, 0), 10.0)
		self.assertEqual(percentile(values, 100), 40.0)

	def test_single_value(self):
		self.assertEqual(percentile([75], 10), 75.0)
		self.assertEqual(percentile([75], 90), 75.0)

	def test_empty_sequence_is_rejected(self):
		with self.assertRaises(ValueError):
			percentile([], 50)


class PriceGuidanceTests(DispatchTestCase):
	def test_defaults_without_history(self):
		self.assertEqual(get_price_guidance(self.category.id), DEFAULT_GUIDANCE)

	def test_guidance_from_history(self):
		for price in ['40.00', '10.00', '30.00', '20.00']:
			PriceHistory.objects.create(category=self.category, price=Decimal(price))

		guidance = get_price_guidance(self.category.id)

		self.assertEqual(guidance['data_points'], 4)
		self.assertAlmostEqual(guidance['p10'], 13.0)
		self.assertAlmostEqual(guidance['p50'], 25.0)
		self.assertAlmostEqual(guidance['p90'], 37.0)


class FindCandidatesTests(DispatchTestCase):
	def setUp(self):
		super().setUp()
		self.near = self.make_provider('near', km_north=1, tier='tier_a')
		self.mid = self.make_provider('mid', km_north=4, tier='tier_b')
		self.far = self.make_provider('far', km_north=25, tier='tier_a')
		self.offline = self.make_provider('offline', km_north=1, available=False)

	def test_radius_and_ordering(self):
		candidates = find_candidates(ORIGIN_LAT, ORIGIN_LON, 5, self.category.id)

		self.assertEqual([p.user_id for p in candidates], [self.near.id, self.mid.id])
		self.assertAlmostEqual(candidates[0].distance_km, 1.0, delta=0.01)

	def test_tier_filter(self):
		candidates = find_candidates(ORIGIN_LAT, ORIGIN_LON, 5, self.category.id, tier='tier_a')
		self.assertEqual([p.user_id for p in candidates], [self.near.id])

	def test_no_radius_means_everyone_available(self):
		candidates = find_candidates(ORIGIN_LAT, ORIGIN_LON, None, self.category.id)
		self.assertEqual([p.user_id for p in candidates], [self.near.id, self.mid.id, self.far.id])

	def test_other_categories_and_unlocated_providers_are_skipped(self):
		electrical = Category.objects.create(name='Electrical')
		electrician = self.make_provider('electrician', km_north=1, category=electrical)
		unlocated = self.make_provider('unlocated', km_north=1)
		unlocated.provider_profile.latitude = None
		unlocated.provider_profile.save()

		ids = [p.user_id for p in find_candidates(ORIGIN_LAT, ORIGIN_LON, 5, self.category.id)]

		self.assertNotIn(unlocated.id, ids)
		self.assertEqual(ids, [self.near.id, self.mid.id])
		self.assertEqual(
			[p.user_id for p in find_candidates(ORIGIN_LAT, ORIGIN_LON, 5, electrical.id)],
			[electrician.id],
		)
