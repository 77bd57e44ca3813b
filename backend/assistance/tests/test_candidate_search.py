from asgiref.sync import async_to_sync
from django.test import TestCase

from common.utils.geo import Location
from drivers.services import update_driver_availability
from services.matching import find_closest_driver

from .factories import PICKUP, make_driver, offset

find_closest = async_to_sync(find_closest_driver)


class FindClosestDriverTests(TestCase):
	def setUp(self):
		self.pickup = Location(*PICKUP)

	def test_returns_nearest_driver(self):
		far = make_driver('far', offset(PICKUP, 8, 200))
		near = make_driver('near', offset(PICKUP, 2, 45))
		make_driver('middle', offset(PICKUP, 5, 300))

		candidate = find_closest(self.pickup, 50)

		self.assertEqual(candidate.driver_id, near.id)
		self.assertAlmostEqual(candidate.distance_km, 2, places=2)
		self.assertNotEqual(candidate.driver_id, far.id)

	def test_excluded_drivers_are_never_returned(self):
		near = make_driver('near', offset(PICKUP, 1, 0))
		next_best = make_driver('next_best', offset(PICKUP, 3, 90))

		candidate = find_closest(self.pickup, 50, [near.id])
		self.assertEqual(candidate.driver_id, next_best.id)

		self.assertIsNone(find_closest(self.pickup, 50, [near.id, next_best.id]))

	def test_drivers_outside_radius_are_ignored(self):
		make_driver('outside', offset(PICKUP, 60, 10))
		self.assertIsNone(find_closest(self.pickup, 50))

		inside = make_driver('inside', offset(PICKUP, 49, 10))
		self.assertEqual(find_closest(self.pickup, 50).driver_id, inside.id)

	def test_radius_boundary_is_inclusive(self):
		outside = make_driver('just_outside', offset(PICKUP, 50 + 1e-3, 120))
		self.assertIsNone(find_closest(self.pickup, 50))

		inside = make_driver('just_inside', offset(PICKUP, 50 - 1e-3, 300))
		candidate = find_closest(self.pickup, 50)
		self.assertEqual(candidate.driver_id, inside.id)
		self.assertLessEqual(candidate.distance_km, 50)

		self.assertIsNone(find_closest(self.pickup, 50, [inside.id]))
		self.assertNotEqual(candidate.driver_id, outside.id)

	def test_unavailable_drivers_are_ignored(self):
		driver = make_driver('offline', offset(PICKUP, 1, 0), is_available=False)
		self.assertIsNone(driver.geohash)
		self.assertIsNone(find_closest(self.pickup, 50))

		update_driver_availability(driver, True)
		self.assertEqual(find_closest(self.pickup, 50).driver_id, driver.id)

	def test_every_driver_inside_radius_is_reachable(self):
		drivers = [
			make_driver(f'ring_{bearing}', offset(PICKUP, 45, bearing))
			for bearing in range(0, 360, 40)
		]
		ids = [driver.id for driver in drivers]

		for driver in drivers:
			others = [driver_id for driver_id in ids if driver_id != driver.id]
			candidate = find_closest(self.pickup, 50, others)
			self.assertIsNotNone(candidate, driver.user.username)
			self.assertEqual(candidate.driver_id, driver.id)

	def test_matching_across_the_antimeridian(self):
		driver = make_driver('dateline', (0.0, -179.9))
		candidate = find_closest(Location(0.0, 179.9), 50)
		self.assertEqual(candidate.driver_id, driver.id)

	def test_no_drivers_at_all(self):
		self.assertIsNone(find_closest(self.pickup, 50))
