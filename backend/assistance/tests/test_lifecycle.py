from datetime import timedelta
from decimal import Decimal

from unittest.mock import patch

from django.test import TestCase, TransactionTestCase
from django.utils import timezone

from assistance.models import AssistanceRequest, Trip
from common.utils.fares import BASE_TOW_PRICE
from services import claims
from services import request_management as lifecycle
from services.claims.exceptions import (
	ActiveRequestExistsError,
	InvalidLocationError,
	InvalidTripTransitionError,
	ServiceUnavailableError,
	TripNotFoundError,
)

from .factories import DROPOFF, PICKUP, make_driver, make_request, make_user, offset


def _create(requester, **overrides):
	fields = {
		'pickup_latitude': PICKUP[0],
		'pickup_longitude': PICKUP[1],
		'dropoff_latitude': DROPOFF[0],
		'dropoff_longitude': DROPOFF[1],
		'pickup_address': 'Congress Ave',
	}
	fields.update(overrides)
	return lifecycle.create_assistance_request(requester, **fields)


class CreateRequestTests(TestCase):
	def setUp(self):
		self.commuter = make_user('commuter')

	def test_create_claims_the_nearest_driver(self):
		near = make_driver('near', offset(PICKUP, 1, 0))
		make_driver('far', offset(PICKUP, 10, 0))

		with self.captureOnCommitCallbacks(execute=True):
			result = _create(self.commuter)

		request = AssistanceRequest.objects.get(pk=result.request.id)
		self.assertEqual(request.status, 'claimed')
		self.assertEqual(request.claimed_by_driver_id, near.id)
		self.assertGreater(request.expires_at, timezone.now() + timedelta(minutes=9))

	def test_create_without_drivers_keeps_searching(self):
		with self.captureOnCommitCallbacks(execute=True):
			result = _create(self.commuter)

		result.request.refresh_from_db()
		self.assertEqual(result.request.status, 'searching')

	def test_reserved_service_types_are_rejected(self):
		with self.assertRaises(ServiceUnavailableError):
			_create(self.commuter, service_type='jump_start')
		self.assertFalse(AssistanceRequest.objects.exists())

	def test_unset_location_is_rejected(self):
		with self.assertRaises(InvalidLocationError):
			_create(self.commuter, pickup_latitude=0, pickup_longitude=0)

	def test_one_active_request_per_commuter(self):
		_create(self.commuter)
		with self.assertRaises(ActiveRequestExistsError):
			_create(self.commuter)

	def test_new_request_allowed_after_cancel(self):
		first = _create(self.commuter)
		lifecycle.cancel_request(self.commuter, first.request.id)

		second = _create(self.commuter)
		self.assertNotEqual(first.request.id, second.request.id)


class ClaimActionTests(TestCase):
	def setUp(self):
		self.commuter = make_user('commuter')
		self.d1 = make_driver('d1', offset(PICKUP, 1, 0))
		self.d2 = make_driver('d2', offset(PICKUP, 3, 90))
		self.request = make_request(self.commuter)
		claims.claim(self.request.id, self.d1.id)

	def test_accept_creates_trip_and_takes_driver_off_market(self):
		result = lifecycle.accept_claimed_request(self.d1, self.request.id)

		trip = Trip.objects.get(request=self.request)
		self.assertEqual(result.trip, trip)
		self.assertEqual(trip.status, 'en_route')
		self.assertEqual(trip.driver, self.d1)
		self.assertEqual(trip.commuter, self.commuter)
		self.assertEqual(trip.estimated_price, BASE_TOW_PRICE)
		self.assertAlmostEqual(trip.distance_km, 4.6, delta=0.5)

		self.d1.refresh_from_db()
		self.assertTrue(self.d1.is_actively_driving)
		self.assertFalse(self.d1.is_available)
		self.assertIsNone(self.d1.geohash)

		self.request.refresh_from_db()
		self.assertEqual(self.request.status, 'accepted')
		self.assertEqual(self.request.matched_driver_id, self.d1.id)

	def test_accept_by_wrong_driver_creates_nothing(self):
		with self.assertRaises(claims.WrongClaimantError):
			lifecycle.accept_claimed_request(self.d2, self.request.id)
		self.assertFalse(Trip.objects.exists())

	def test_accept_after_expiry_creates_nothing(self):
		AssistanceRequest.objects.filter(pk=self.request.pk).update(
			claim_expires_at=timezone.now() - timedelta(seconds=1)
		)
		with self.assertRaises(claims.ClaimExpiredError):
			lifecycle.accept_claimed_request(self.d1, self.request.id)
		self.assertFalse(Trip.objects.exists())

	def test_decline_rematches_next_driver(self):
		with self.captureOnCommitCallbacks(execute=True):
			lifecycle.decline_claimed_request(self.d1, self.request.id)

		self.request.refresh_from_db()
		self.assertEqual(self.request.status, 'claimed')
		self.assertEqual(self.request.claimed_by_driver_id, self.d2.id)
		self.assertEqual(self.request.notified_driver_ids, [self.d1.id, self.d2.id])

	def test_claiming_driver_can_cancel(self):
		result = lifecycle.cancel_claimed_request(self.d1, self.request.id, 'Vehicle broke down')

		self.assertEqual(result.request.status, 'cancelled')
		self.request.refresh_from_db()
		self.assertEqual(self.request.status, 'cancelled')
		self.assertEqual(self.request.cancellation_reason, 'Vehicle broke down')
		self.assertIsNone(self.request.claimed_by_driver_id)
		self.assertIsNone(self.request.claim_expires_at)

	def test_only_the_claiming_driver_can_cancel(self):
		with self.assertRaises(claims.WrongClaimantError):
			lifecycle.cancel_claimed_request(self.d2, self.request.id)

		claims.decline(self.request.id, self.d1.id)
		with self.assertRaises(claims.WrongStateError):
			lifecycle.cancel_claimed_request(self.d1, self.request.id)

		self.request.refresh_from_db()
		self.assertEqual(self.request.status, 'searching')

	def test_live_query_helpers(self):
		self.assertEqual(
			[r.id for r in lifecycle.claimed_requests_for_driver(self.d1.id)],
			[self.request.id],
		)
		self.assertEqual(lifecycle.claimed_requests_for_driver(self.d2.id), [])
		self.assertEqual(lifecycle.searching_requests(), [])

		claims.decline(self.request.id, self.d1.id)
		self.assertEqual([r.id for r in lifecycle.searching_requests()], [self.request.id])


class PublishFailureTests(TransactionTestCase):
	"""A live-query push that fails after commit must not undo the caller's result."""

	def setUp(self):
		self.commuter = make_user('commuter')
		self.driver = make_driver('d1', offset(PICKUP, 1, 0))
		self.request = make_request(self.commuter)
		publisher = patch(
			'realtime.live_queries.publish_request_change',
			side_effect=ConnectionError('redis down'),
		)
		self.mock_publish = publisher.start()
		self.addCleanup(publisher.stop)

	def test_claim_returns_after_failed_publish(self):
		request = claims.claim(self.request.id, self.driver.id)

		self.assertEqual(request.status, 'claimed')
		self.assertEqual(self.mock_publish.call_count, 1)
		self.request.refresh_from_db()
		self.assertEqual(self.request.claimed_by_driver_id, self.driver.id)

	def test_accept_returns_trip_after_failed_publish(self):
		claims.claim(self.request.id, self.driver.id)

		result = lifecycle.accept_claimed_request(self.driver, self.request.id)

		self.assertEqual(result.request.status, 'accepted')
		self.assertEqual(Trip.objects.get(request=self.request), result.trip)
		self.assertEqual(self.mock_publish.call_count, 2)


class TripTests(TestCase):
	def setUp(self):
		self.commuter = make_user('commuter')
		self.driver = make_driver('driver', offset(PICKUP, 1, 0))
		request = make_request(self.commuter)
		claims.claim(request.id, self.driver.id)
		self.trip = lifecycle.accept_claimed_request(self.driver, request.id).trip

	def test_forward_status_flow(self):
		for status in ('arrived', 'in_progress', 'completed'):
			lifecycle.update_trip_status(self.driver, self.trip.id, status)

		self.trip.refresh_from_db()
		self.assertEqual(self.trip.status, 'completed')
		self.assertIsNotNone(self.trip.arrival_time)
		self.assertIsNotNone(self.trip.started_at)
		self.assertIsNotNone(self.trip.completion_time)
		self.assertEqual(self.trip.final_price, Decimal('75.00'))

		self.driver.refresh_from_db()
		self.assertEqual(self.driver.total_trips, 1)
		self.assertFalse(self.driver.is_actively_driving)
		self.assertTrue(self.driver.is_available)
		self.assertIsNotNone(self.driver.geohash)

	def test_skipping_a_status_is_rejected(self):
		with self.assertRaises(InvalidTripTransitionError):
			lifecycle.update_trip_status(self.driver, self.trip.id, 'completed')

	def test_completed_trip_is_final(self):
		for status in ('arrived', 'in_progress', 'completed'):
			lifecycle.update_trip_status(self.driver, self.trip.id, status)
		with self.assertRaises(InvalidTripTransitionError):
			lifecycle.update_trip_status(self.driver, self.trip.id, 'cancelled')

	def test_cancel_trip_frees_driver(self):
		lifecycle.update_trip_status(self.driver, self.trip.id, 'cancelled')

		self.driver.refresh_from_db()
		self.assertTrue(self.driver.is_available)
		self.assertEqual(self.driver.total_trips, 0)

	def test_other_driver_cannot_touch_trip(self):
		other = make_driver('other', offset(PICKUP, 2, 0))
		with self.assertRaises(TripNotFoundError):
			lifecycle.update_trip_status(other, self.trip.id, 'arrived')

	def test_path_log_appends_points(self):
		first = offset(PICKUP, 0.5, 0)
		second = offset(PICKUP, 0.2, 0)
		lifecycle.record_trip_location(self.driver, self.trip.id, *first)
		result = lifecycle.record_trip_location(self.driver, self.trip.id, *second)

		self.assertEqual(result.extra, {'points': 2})
		self.trip.refresh_from_db()
		self.assertEqual([p['latitude'] for p in self.trip.driver_path], [first[0], second[0]])
		self.driver.refresh_from_db()
		self.assertAlmostEqual(self.driver.current_latitude, second[0])

	def test_current_trip(self):
		self.assertEqual(lifecycle.get_current_trip(self.driver), self.trip)
		lifecycle.update_trip_status(self.driver, self.trip.id, 'cancelled')
		self.assertIsNone(lifecycle.get_current_trip(self.driver))
