from unittest.mock import patch

from asgiref.sync import async_to_sync, sync_to_async
from django.test import TestCase

from services import claims
from services.matching import attempt_match

from .factories import PICKUP, make_driver, make_request, make_user, offset

match = async_to_sync(attempt_match)


class AttemptMatchTests(TestCase):
	def setUp(self):
		self.commuter = make_user('commuter')
		self.request = make_request(self.commuter)

	def test_decline_chain_walks_drivers_by_distance(self):
		d1 = make_driver('d1', offset(PICKUP, 1, 30))
		d2 = make_driver('d2', offset(PICKUP, 3, 200))

		self.assertEqual(match(self.request.id).driver_id, d1.id)
		self.request.refresh_from_db()
		self.assertEqual(self.request.status, 'claimed')
		self.assertEqual(self.request.claimed_by_driver_id, d1.id)

		claims.decline(self.request.id, d1.id)
		self.assertEqual(match(self.request.id).driver_id, d2.id)
		self.request.refresh_from_db()
		self.assertEqual(self.request.claimed_by_driver_id, d2.id)
		self.assertEqual(self.request.notified_driver_ids, [d1.id, d2.id])

		claims.decline(self.request.id, d2.id)
		self.assertIsNone(match(self.request.id))
		self.request.refresh_from_db()
		self.assertEqual(self.request.status, 'searching')
		self.assertIsNone(self.request.claimed_by_driver_id)
		self.assertEqual(self.request.notified_driver_ids, [d1.id, d2.id])

	def test_no_drivers_leaves_request_searching(self):
		make_driver('far_away', offset(PICKUP, 80, 0))

		self.assertIsNone(match(self.request.id))
		self.request.refresh_from_db()
		self.assertEqual(self.request.status, 'searching')
		self.assertEqual(self.request.notified_driver_ids, [])

	def test_claimed_request_is_skipped(self):
		d1 = make_driver('d1', offset(PICKUP, 1, 30))
		make_driver('d2', offset(PICKUP, 2, 30))
		claims.claim(self.request.id, d1.id)

		self.assertIsNone(match(self.request.id))
		self.request.refresh_from_db()
		self.assertEqual(self.request.claimed_by_driver_id, d1.id)
		self.assertEqual(self.request.notified_driver_ids, [d1.id])

	def test_cancelled_request_is_skipped(self):
		make_driver('d1', offset(PICKUP, 1, 30))
		claims.cancel(self.request.id)

		self.assertIsNone(match(self.request.id))
		self.request.refresh_from_db()
		self.assertEqual(self.request.status, 'cancelled')

	def test_missing_request_raises(self):
		with self.assertRaises(claims.RequestNotFoundError):
			match(999999)

	def test_lost_claim_race_is_benign(self):
		d1 = make_driver('d1', offset(PICKUP, 1, 30))

		def claimed_elsewhere(request_id, driver_id):
			raise claims.AlreadyClaimedOrGoneError('taken')

		with patch('services.matching.orchestrator.claim_async', sync_to_async(claimed_elsewhere)):
			self.assertIsNone(match(self.request.id))

		self.request.refresh_from_db()
		self.assertEqual(self.request.status, 'searching')
		self.assertNotIn(d1.id, self.request.notified_driver_ids)
