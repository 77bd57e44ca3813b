from django.test import SimpleTestCase

from common.utils.fares import estimate_eta_minutes, km_to_miles
from common.utils.geo import (
	Location,
	calculate_distance,
	decode_geohash,
	encode_geohash,
	geohash_query_bounds,
	wrap_longitude,
)

from .factories import PICKUP, offset


def _covered(bounds, key):
	return any(start <= key <= end for start, end in bounds)


class GeohashTests(SimpleTestCase):
	def test_encode_known_value(self):
		self.assertEqual(encode_geohash(57.64911, 10.40744, 11), 'u4pruydqqvj')
		self.assertEqual(encode_geohash(57.64911, 10.40744), 'u4pruydqqv')

	def test_decode_returns_cell_center(self):
		center = decode_geohash('u4pruydqqvj')
		self.assertAlmostEqual(center.latitude, 57.64911, places=4)
		self.assertAlmostEqual(center.longitude, 10.40744, places=4)

	def test_encode_rejects_out_of_range(self):
		with self.assertRaises(ValueError):
			encode_geohash(91, 0)
		with self.assertRaises(ValueError):
			encode_geohash(0, 181)

	def test_decode_rejects_invalid_character(self):
		with self.assertRaises(ValueError):
			decode_geohash('u4a')

	def test_wrap_longitude(self):
		self.assertEqual(wrap_longitude(10.0), 10.0)
		self.assertAlmostEqual(wrap_longitude(181.0), -179.0)
		self.assertAlmostEqual(wrap_longitude(-181.0), 179.0)


class QueryBoundsTests(SimpleTestCase):
	def test_bounds_cover_points_on_the_rim(self):
		bounds = geohash_query_bounds(PICKUP[0], PICKUP[1], 50_000)
		self.assertTrue(bounds)
		for bearing in range(0, 360, 15):
			point = offset(PICKUP, 49.9, bearing)
			self.assertTrue(_covered(bounds, encode_geohash(*point)), bearing)

	def test_small_radius_still_matches_full_precision_keys(self):
		bounds = geohash_query_bounds(PICKUP[0], PICKUP[1], 1)
		self.assertTrue(_covered(bounds, encode_geohash(*PICKUP)))

	def test_bounds_wrap_across_the_antimeridian(self):
		bounds = geohash_query_bounds(0.0, 179.9, 50_000)
		self.assertTrue(_covered(bounds, encode_geohash(0.0, -179.9)))

	def test_bounds_near_a_pole_span_all_longitudes(self):
		bounds = geohash_query_bounds(89.9, 0.0, 50_000)
		self.assertTrue(_covered(bounds, encode_geohash(89.95, 120.0)))
		self.assertTrue(_covered(bounds, encode_geohash(89.95, -120.0)))

	def test_bounds_are_deduplicated(self):
		bounds = geohash_query_bounds(PICKUP[0], PICKUP[1], 5_000)
		self.assertEqual(len(bounds), len(set(bounds)))

	def test_negative_radius_rejected(self):
		with self.assertRaises(ValueError):
			geohash_query_bounds(0, 0, -1)


class DistanceTests(SimpleTestCase):
	def test_london_to_paris(self):
		distance = calculate_distance(51.5074, -0.1278, 48.8566, 2.3522)
		self.assertAlmostEqual(distance, 343.5, delta=2)

	def test_offset_helper_agrees_with_haversine(self):
		point = offset(PICKUP, 12.0, 70)
		self.assertAlmostEqual(calculate_distance(*PICKUP, *point), 12.0, places=3)

	def test_location_validation(self):
		with self.assertRaises(ValueError):
			Location(-91, 0)
		self.assertTrue(Location(0, 0).is_unset)
		self.assertFalse(Location(*PICKUP).is_unset)


class FareTests(SimpleTestCase):
	def test_km_to_miles(self):
		self.assertAlmostEqual(km_to_miles(1.609344), 1.0)

	def test_eta_rounds_up(self):
		self.assertEqual(estimate_eta_minutes(10), 24)
		self.assertEqual(estimate_eta_minutes(1), 3)
