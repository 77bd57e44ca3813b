from datetime import timedelta
from unittest.mock import patch

from django.db import OperationalError
from django.db.models import F
from django.test import TestCase
from django.utils import timezone

from assistance.models import AssistanceRequest
from services import claims
from services.claims import transactions
from services.claims.exceptions import NO_LONGER_AVAILABLE

from .factories import PICKUP, make_driver, make_request, make_user, offset

real_load_request = transactions.load_request


class ClaimTransactionTests(TestCase):
	def setUp(self):
		self.commuter = make_user('commuter')
		self.driver_a = make_driver('driver_a', offset(PICKUP, 1, 0))
		self.driver_b = make_driver('driver_b', offset(PICKUP, 2, 90))
		self.request = make_request(self.commuter)

	def _reload(self):
		self.request.refresh_from_db()
		return self.request

	def test_claim_sets_claim_fields(self):
		now = timezone.now()
		claims.claim(self.request.id, self.driver_a.id, now=now)

		request = self._reload()
		self.assertEqual(request.status, 'claimed')
		self.assertEqual(request.claimed_by_driver_id, self.driver_a.id)
		self.assertEqual(request.claim_expires_at, now + timedelta(seconds=30))
		self.assertEqual(request.notified_driver_ids, [self.driver_a.id])
		self.assertEqual(request.version, 1)

	def test_claim_of_claimed_request_fails(self):
		claims.claim(self.request.id, self.driver_a.id)

		with self.assertRaises(claims.AlreadyClaimedOrGoneError):
			claims.claim(self.request.id, self.driver_b.id)

		request = self._reload()
		self.assertEqual(request.claimed_by_driver_id, self.driver_a.id)
		self.assertEqual(request.notified_driver_ids, [self.driver_a.id])

	def test_claim_missing_request(self):
		with self.assertRaises(claims.RequestNotFoundError):
			claims.claim(999999, self.driver_a.id)

	def test_corrupt_notified_list_is_rejected(self):
		AssistanceRequest.objects.filter(pk=self.request.pk).update(notified_driver_ids=['x'])
		with self.assertRaises(claims.RequestNotFoundError):
			claims.claim(self.request.id, self.driver_a.id)

	def test_concurrent_claims_only_one_wins(self):
		raced = []

		def racing_load(request_id):
			request = real_load_request(request_id)
			if not raced:
				raced.append(True)
				# driver B commits between our read and our write
				AssistanceRequest.objects.filter(pk=request_id).update(
					status='claimed',
					claimed_by_driver_id=self.driver_b.id,
					claim_expires_at=timezone.now() + timedelta(seconds=30),
					notified_driver_ids=[self.driver_b.id],
					version=F('version') + 1,
				)
			return request

		with patch('services.claims.transactions.load_request', side_effect=racing_load):
			with self.assertRaises(claims.AlreadyClaimedOrGoneError):
				claims.claim(self.request.id, self.driver_a.id)

		request = self._reload()
		self.assertEqual(request.claimed_by_driver_id, self.driver_b.id)
		self.assertEqual(request.notified_driver_ids, [self.driver_b.id])

	def test_decline_releases_claim_and_keeps_notified(self):
		claims.claim(self.request.id, self.driver_a.id)
		claims.decline(self.request.id, self.driver_a.id)

		request = self._reload()
		self.assertEqual(request.status, 'searching')
		self.assertIsNone(request.claimed_by_driver_id)
		self.assertIsNone(request.claim_expires_at)
		self.assertEqual(request.notified_driver_ids, [self.driver_a.id])

	def test_decline_by_other_driver_fails(self):
		claims.claim(self.request.id, self.driver_a.id)
		with self.assertRaises(claims.WrongClaimantError):
			claims.decline(self.request.id, self.driver_b.id)
		self.assertEqual(self._reload().claimed_by_driver_id, self.driver_a.id)

	def test_accept_within_window(self):
		now = timezone.now()
		claims.claim(self.request.id, self.driver_a.id, now=now)
		claims.accept(self.request.id, self.driver_a.id, now=now + timedelta(seconds=29))

		request = self._reload()
		self.assertEqual(request.status, 'accepted')
		self.assertEqual(request.matched_driver_id, self.driver_a.id)
		self.assertIsNotNone(request.accepted_at)

	def test_accept_after_window_fails(self):
		now = timezone.now()
		claims.claim(self.request.id, self.driver_a.id, now=now)

		with self.assertRaises(claims.ClaimExpiredError) as ctx:
			claims.accept(self.request.id, self.driver_a.id, now=now + timedelta(seconds=30))

		self.assertEqual(ctx.exception.user_message, NO_LONGER_AVAILABLE)
		self.assertEqual(self._reload().status, 'claimed')

	def test_accept_by_other_driver_fails(self):
		claims.claim(self.request.id, self.driver_a.id)
		with self.assertRaises(claims.WrongClaimantError):
			claims.accept(self.request.id, self.driver_b.id)

	def test_accept_of_searching_request_fails(self):
		with self.assertRaises(claims.WrongStateError):
			claims.accept(self.request.id, self.driver_a.id)

	def test_expire_reset_is_noop_before_deadline(self):
		now = timezone.now()
		claims.claim(self.request.id, self.driver_a.id, now=now)

		self.assertFalse(claims.expire_reset(self.request.id, now=now + timedelta(seconds=10)))
		self.assertEqual(self._reload().status, 'claimed')

	def test_expire_reset_after_deadline(self):
		now = timezone.now()
		claims.claim(self.request.id, self.driver_a.id, now=now)

		self.assertTrue(claims.expire_reset(self.request.id, now=now + timedelta(seconds=30)))
		request = self._reload()
		self.assertEqual(request.status, 'searching')
		self.assertIsNone(request.claimed_by_driver_id)
		self.assertEqual(request.notified_driver_ids, [self.driver_a.id])

	def test_expire_reset_is_noop_after_accept(self):
		now = timezone.now()
		claims.claim(self.request.id, self.driver_a.id, now=now)
		claims.accept(self.request.id, self.driver_a.id, now=now + timedelta(seconds=5))

		self.assertFalse(claims.expire_reset(self.request.id, now=now + timedelta(minutes=5)))
		self.assertEqual(self._reload().status, 'accepted')

	def test_accept_loses_race_to_expiry(self):
		now = timezone.now()
		claims.claim(self.request.id, self.driver_a.id, now=now)
		raced = []

		def racing_load(request_id):
			request = real_load_request(request_id)
			if not raced:
				raced.append(True)
				claims.expire_reset(request_id, now=now + timedelta(seconds=31))
			return request

		with patch('services.claims.transactions.load_request', side_effect=racing_load):
			with self.assertRaises(claims.WrongStateError):
				claims.accept(self.request.id, self.driver_a.id, now=now + timedelta(seconds=29))

		request = self._reload()
		self.assertEqual(request.status, 'searching')
		self.assertIsNone(request.matched_driver_id)

	def test_expiry_loses_race_to_accept(self):
		now = timezone.now()
		claims.claim(self.request.id, self.driver_a.id, now=now)
		raced = []

		def racing_load(request_id):
			request = real_load_request(request_id)
			if not raced:
				raced.append(True)
				claims.accept(request_id, self.driver_a.id, now=now + timedelta(seconds=29))
			return request

		with patch('services.claims.transactions.load_request', side_effect=racing_load):
			changed = claims.expire_reset(self.request.id, now=now + timedelta(seconds=31))

		self.assertFalse(changed)
		request = self._reload()
		self.assertEqual(request.status, 'accepted')
		self.assertEqual(request.matched_driver_id, self.driver_a.id)

	def test_cancel_clears_claim(self):
		claims.claim(self.request.id, self.driver_a.id)
		claims.cancel(self.request.id, reason='changed my mind', requester_id=self.commuter.id)

		request = self._reload()
		self.assertEqual(request.status, 'cancelled')
		self.assertIsNone(request.claimed_by_driver_id)
		self.assertIsNone(request.claim_expires_at)
		self.assertEqual(request.cancellation_reason, 'changed my mind')

	def test_cancel_by_stranger_looks_like_missing_request(self):
		stranger = make_user('stranger')
		with self.assertRaises(claims.RequestNotFoundError):
			claims.cancel(self.request.id, requester_id=stranger.id)

	def test_cancel_terminal_request_fails(self):
		claims.cancel(self.request.id)
		with self.assertRaises(claims.WrongStateError):
			claims.cancel(self.request.id)

	def test_conflicting_writes_exhaust_retries(self):
		with patch('services.claims.transactions._commit', return_value=False) as mock_commit:
			with self.assertRaises(claims.TransientStoreError):
				claims.claim(self.request.id, self.driver_a.id)

		self.assertEqual(mock_commit.call_count, 3)
		self.assertEqual(self._reload().status, 'searching')

	def test_database_errors_are_retried(self):
		with patch('services.claims.transactions._commit', side_effect=OperationalError('locked')) as mock_commit:
			with self.assertRaises(claims.TransientStoreError):
				claims.claim(self.request.id, self.driver_a.id)

		self.assertEqual(mock_commit.call_count, 3)

	def test_array_union_is_idempotent(self):
		self.assertEqual(claims.array_union([1, 2], 2), [1, 2])
		self.assertEqual(claims.array_union([1, 2], 3), [1, 2, 3])
		self.assertEqual(claims.array_union(None, 4), [4])
