from django.test import TestCase

from accounts.models import User
from common.utils.geo import encode_geohash
from drivers.models import Driver
from drivers import services
from services.claims.exceptions import DriverNotFoundError, InvalidLocationError


class DriverAvailabilityTests(TestCase):
	def setUp(self):
		self.user = User.objects.create_user(
			username='tow_one',
			password='driver1234',
			role='driver',
			phone_number='5125550101'
		)
		self.driver = Driver.objects.create(user=self.user, license_plate='TX-1001')

	def test_new_driver_is_offline_without_key(self):
		self.assertFalse(self.driver.is_available)
		self.assertIsNone(self.driver.geohash)

	def test_going_online_with_location_sets_key(self):
		services.update_driver_availability(self.driver, True, 30.2672, -97.7431)

		self.driver.refresh_from_db()
		self.assertTrue(self.driver.is_available)
		self.assertEqual(self.driver.geohash, encode_geohash(30.2672, -97.7431))
		self.assertIsNotNone(self.driver.last_location_update)

	def test_going_online_without_location_fails(self):
		with self.assertRaises(InvalidLocationError):
			services.update_driver_availability(self.driver, True)

		self.driver.refresh_from_db()
		self.assertFalse(self.driver.is_available)

	def test_unset_location_is_rejected(self):
		with self.assertRaises(InvalidLocationError):
			services.update_driver_availability(self.driver, True, 0, 0)

	def test_going_offline_clears_key(self):
		services.update_driver_availability(self.driver, True, 30.2672, -97.7431)
		services.update_driver_availability(self.driver, False)

		self.driver.refresh_from_db()
		self.assertIsNone(self.driver.geohash)
		self.assertEqual(self.driver.current_latitude, 30.2672)

	def test_location_update_moves_key(self):
		services.update_driver_availability(self.driver, True, 30.2672, -97.7431)
		services.update_driver_location(self.driver, 30.3072, -97.7560)

		self.driver.refresh_from_db()
		self.assertEqual(self.driver.geohash, encode_geohash(30.3072, -97.7560))

	def test_out_of_range_location_is_rejected(self):
		with self.assertRaises(InvalidLocationError):
			services.update_driver_location(self.driver, 100, 0)

	def test_trip_takes_driver_off_market_and_back(self):
		services.update_driver_availability(self.driver, True, 30.2672, -97.7431)

		services.set_driver_on_trip(self.driver, True)
		self.driver.refresh_from_db()
		self.assertFalse(self.driver.is_available)
		self.assertIsNone(self.driver.geohash)

		services.set_driver_on_trip(self.driver, False)
		self.driver.refresh_from_db()
		self.assertTrue(self.driver.is_available)
		self.assertIsNotNone(self.driver.geohash)

	def test_trip_end_keys_the_latest_stored_position(self):
		services.update_driver_availability(self.driver, True, 30.2672, -97.7431)
		stale = Driver.objects.get(pk=self.driver.pk)
		services.update_driver_location(self.driver, 30.3072, -97.7560)

		services.set_driver_on_trip(stale, False)

		self.driver.refresh_from_db()
		self.assertEqual(self.driver.current_latitude, 30.3072)
		self.assertEqual(self.driver.geohash, encode_geohash(30.3072, -97.7560))
		self.assertEqual(stale.current_longitude, -97.7560)

	def test_driver_lookup_for_user(self):
		self.assertEqual(services.get_driver_for_user(self.user), self.driver)

		commuter = User.objects.create_user(username='rider', password='pass1234')
		with self.assertRaises(DriverNotFoundError):
			services.get_driver_for_user(commuter)
