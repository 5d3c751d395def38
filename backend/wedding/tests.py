"""
Tests for the Wedding Site

Focus areas:
1. Like toggle correctness (one like per session, counter == ledger)
2. Race resolution and transaction rollback
3. Guest session fingerprints
4. HTTP contract of the guest API
"""

import threading
from io import StringIO
from dataclasses import FrozenInstanceError
from unittest.mock import call, patch

from django.contrib import admin
from django.core.management import call_command
from django.db import connection, OperationalError
from django.db.models import ProtectedError
from django.test import (
    SimpleTestCase,
    TestCase,
    TransactionTestCase,
    RequestFactory,
    override_settings,
)
from django.conf import settings
from rest_framework.test import APITestCase

from .admin import PhotoAdmin, PhotoLikeAdmin
from .counters import adjust_like_count, read_like_count
from .exceptions import EntityNotFound, DuplicateKey, LikeNotFound, TransactionConflict
from .ledger import LikeLedger
from .queries import get_wedding_details
from .models import (
    Photo, PhotoComment, PhotoLike, PlaylistSong, SiteMetadata, SongLike, WeddingDetails,
)
from .services import (
    ToggleResult,
    toggle_like,
    toggle_photo_like,
    toggle_song_like,
    delete_photo,
    delete_song,
    approve_photo,
    is_transaction_conflict,
)
from .session import derive_session_key, session_key_from_request, get_session_key


def make_photo(**kwargs):
    fields = {
        'filename': 'wedding/photo',
        'original_name': 'IMG_0001.jpg',
        'url': 'https://example.com/photo.jpg',
        'thumbnail_url': 'https://example.com/photo_thumb.jpg',
        'approved': True,
    }
    fields.update(kwargs)
    return Photo.objects.create(**fields)


def make_song(**kwargs):
    fields = {
        'title': 'September',
        'artist': 'Earth, Wind & Fire',
        'suggestion': 'Everyone dances to this one',
    }
    fields.update(kwargs)
    return PlaylistSong.objects.create(**fields)


def fixed_fingerprint(request):
    return 'fixed-session'


class LockedDatabase(Exception):
    """Stand-in for a driver error carrying a PostgreSQL SQLSTATE."""
    pgcode = '40001'


# ============================================================================
# SESSION FINGERPRINTS
# ============================================================================

class SessionFingerprintTestCase(SimpleTestCase):

    def setUp(self):
        self.factory = RequestFactory()

    def test_same_inputs_same_key(self):
        key1 = derive_session_key('10.0.0.1', 'Mozilla/5.0 (iPhone)')
        key2 = derive_session_key('10.0.0.1', 'Mozilla/5.0 (iPhone)')
        self.assertEqual(key1, key2)
        self.assertEqual(len(key1), 64)

    def test_different_browser_different_key(self):
        self.assertNotEqual(
            derive_session_key('10.0.0.1', 'Mozilla/5.0 (iPhone)'),
            derive_session_key('10.0.0.1', 'Mozilla/5.0 (Android)')
        )

    def test_different_address_different_key(self):
        self.assertNotEqual(
            derive_session_key('10.0.0.1', 'Mozilla/5.0'),
            derive_session_key('10.0.0.2', 'Mozilla/5.0')
        )

    def test_missing_user_agent_uses_sentinel(self):
        self.assertEqual(
            derive_session_key('10.0.0.1', None),
            derive_session_key('10.0.0.1', 'unknown')
        )
        self.assertEqual(
            derive_session_key('10.0.0.1', ''),
            derive_session_key('10.0.0.1', None)
        )

    def test_request_fingerprint(self):
        request = self.factory.post(
            '/api/photos/1/like',
            REMOTE_ADDR='10.0.0.7',
            HTTP_USER_AGENT='Phone A'
        )
        self.assertEqual(
            session_key_from_request(request),
            derive_session_key('10.0.0.7', 'Phone A')
        )

    def test_forwarded_for_ignored_by_default(self):
        request = self.factory.post(
            '/api/photos/1/like',
            REMOTE_ADDR='10.0.0.7',
            HTTP_USER_AGENT='Phone A',
            HTTP_X_FORWARDED_FOR='203.0.113.5'
        )
        self.assertEqual(
            session_key_from_request(request),
            derive_session_key('10.0.0.7', 'Phone A')
        )

    @override_settings(TRUST_X_FORWARDED_FOR=True)
    def test_forwarded_for_first_hop_when_trusted(self):
        request = self.factory.post(
            '/api/photos/1/like',
            REMOTE_ADDR='10.0.0.7',
            HTTP_USER_AGENT='Phone A',
            HTTP_X_FORWARDED_FOR='203.0.113.5, 10.0.0.7'
        )
        self.assertEqual(
            session_key_from_request(request),
            derive_session_key('203.0.113.5', 'Phone A')
        )

    @override_settings(LIKE_SESSION_FINGERPRINT='wedding.tests.fixed_fingerprint')
    def test_fingerprint_function_is_configurable(self):
        request = self.factory.post('/api/photos/1/like')
        self.assertEqual(get_session_key(request), 'fixed-session')


# ============================================================================
# LEDGER AND COUNTERS
# ============================================================================

class LikeLedgerTestCase(TestCase):

    def setUp(self):
        self.ledger = LikeLedger(PhotoLike, 'photo')
        self.photo = make_photo()
        self.other_photo = make_photo(original_name='IMG_0002.jpg')

    def test_insert_and_exists(self):
        self.assertFalse(self.ledger.exists(self.photo.id, 'sess-A'))
        self.ledger.insert(self.photo.id, 'sess-A')
        self.assertTrue(self.ledger.exists(self.photo.id, 'sess-A'))
        self.assertFalse(self.ledger.exists(self.other_photo.id, 'sess-A'))

    def test_duplicate_insert_rejected(self):
        """Second insert for the same pair must fail, not silently succeed."""
        self.ledger.insert(self.photo.id, 'sess-A')
        with self.assertRaises(DuplicateKey):
            self.ledger.insert(self.photo.id, 'sess-A')

        # Transaction still usable after the violation
        self.assertEqual(self.ledger.count_for_entity(self.photo.id), 1)

    def test_remove(self):
        self.ledger.insert(self.photo.id, 'sess-A')
        self.ledger.remove(self.photo.id, 'sess-A')
        self.assertFalse(self.ledger.exists(self.photo.id, 'sess-A'))

    def test_remove_missing_raises(self):
        with self.assertRaises(LikeNotFound):
            self.ledger.remove(self.photo.id, 'sess-A')

    def test_delete_all_for_entity(self):
        for session_key in ['sess-A', 'sess-B', 'sess-C']:
            self.ledger.insert(self.photo.id, session_key)
        self.ledger.insert(self.other_photo.id, 'sess-A')

        removed = self.ledger.delete_all_for_entity(self.photo.id)

        self.assertEqual(removed, 3)
        self.assertEqual(self.ledger.count_for_entity(self.photo.id), 0)
        self.assertEqual(self.ledger.count_for_entity(self.other_photo.id), 1)


class LikeCounterTestCase(TestCase):

    def setUp(self):
        self.photo = make_photo()

    def test_increment_and_decrement(self):
        adjust_like_count(Photo, self.photo.id, +1)
        adjust_like_count(Photo, self.photo.id, +1)
        self.assertEqual(read_like_count(Photo, self.photo.id), 2)

        adjust_like_count(Photo, self.photo.id, -1)
        self.assertEqual(read_like_count(Photo, self.photo.id), 1)

    def test_never_negative(self):
        """Decrementing past zero is floored, not an error."""
        adjust_like_count(Photo, self.photo.id, -1)
        adjust_like_count(Photo, self.photo.id, -1)

        self.photo.refresh_from_db()
        self.assertEqual(self.photo.like_count, 0)

    def test_invalid_delta(self):
        with self.assertRaises(ValueError):
            adjust_like_count(Photo, self.photo.id, 2)

    def test_missing_entity(self):
        with self.assertRaises(EntityNotFound):
            adjust_like_count(Photo, self.photo.id + 1000, +1)

    def test_read_missing_entity_is_zero(self):
        self.assertEqual(read_like_count(Photo, self.photo.id + 1000), 0)


# ============================================================================
# TOGGLE
# ============================================================================

class LikeToggleTestCase(TestCase):
    """
    These tests verify that:
    1. Each toggle flips exactly one (entity, session) pair
    2. like_count always equals the number of ledger rows
    3. Races resolve without duplicates or negative counts
    """

    def setUp(self):
        self.photo = make_photo()
        self.song = make_song()

    def assertCounterMatchesLedger(self, photo):
        photo.refresh_from_db()
        self.assertEqual(photo.like_count, PhotoLike.objects.filter(photo=photo).count())

    def test_literal_example(self):
        self.assertEqual(toggle_like('photo', self.photo.id, 'sess-A'), ToggleResult(True, 1))
        self.assertEqual(toggle_like('photo', self.photo.id, 'sess-B'), ToggleResult(True, 2))
        self.assertEqual(toggle_like('photo', self.photo.id, 'sess-A'), ToggleResult(False, 1))

    def test_result_is_immutable_value(self):
        result = toggle_photo_like(self.photo.id, 'sess-A')

        self.assertEqual(result.as_dict(), {'liked': True, 'likes': 1})
        self.assertEqual(repr(result), 'ToggleResult(liked=True, likes=1)')
        with self.assertRaises(FrozenInstanceError):
            result.likes = 5

    def test_even_and_odd_toggle_counts(self):
        """Even toggles return to the start; odd toggles add exactly one like."""
        for times in range(1, 7):
            photo = make_photo(original_name=f'IMG_{times}.jpg')
            # Someone else already likes it
            toggle_photo_like(photo.id, 'other-guest')

            for _ in range(times):
                result = toggle_photo_like(photo.id, 'sess-X')

            expected_liked = times % 2 == 1
            self.assertEqual(result.liked, expected_liked)
            self.assertEqual(result.likes, 1 + (1 if expected_liked else 0))
            self.assertCounterMatchesLedger(photo)

    def test_counter_matches_ledger_after_mixed_sequence(self):
        sessions = [f'sess-{i}' for i in range(6)]
        for step in range(20):
            toggle_photo_like(self.photo.id, sessions[(step * 7) % len(sessions)])

        self.assertCounterMatchesLedger(self.photo)

    def test_song_likes(self):
        self.assertEqual(toggle_song_like(self.song.id, 'sess-A'), ToggleResult(True, 1))
        self.assertTrue(SongLike.objects.filter(song=self.song, session_key='sess-A').exists())
        self.assertEqual(toggle_song_like(self.song.id, 'sess-A'), ToggleResult(False, 0))
        self.assertFalse(SongLike.objects.exists())

    def test_photo_and_song_ledgers_are_separate(self):
        song = make_song(title='Dancing Queen')
        toggle_photo_like(self.photo.id, 'sess-A')
        toggle_song_like(song.id, 'sess-A')

        self.assertEqual(PhotoLike.objects.count(), 1)
        self.assertEqual(SongLike.objects.count(), 1)

    def test_missing_entity(self):
        with self.assertRaises(EntityNotFound):
            toggle_photo_like(self.photo.id + 1000, 'sess-A')
        self.assertFalse(PhotoLike.objects.exists())

    def test_invalid_kind(self):
        with self.assertRaises(ValueError):
            toggle_like('comment', self.photo.id, 'sess-A')

    def test_duplicate_key_resolved_as_liked(self):
        """
        Simulates the losing side of a double-click: the existence check
        saw no like, but the other request committed one first.
        """
        toggle_photo_like(self.photo.id, 'sess-A')

        with patch.object(LikeLedger, 'exists', side_effect=[False, True]):
            result = toggle_photo_like(self.photo.id, 'sess-A')

        self.assertEqual(result, ToggleResult(True, 1))
        self.assertEqual(PhotoLike.objects.filter(photo=self.photo).count(), 1)
        self.assertCounterMatchesLedger(self.photo)

    def test_like_not_found_resolved_as_unliked(self):
        """The other request of the same session already removed the like."""
        with patch.object(LikeLedger, 'exists', side_effect=[True, False]):
            result = toggle_photo_like(self.photo.id, 'sess-A')

        self.assertEqual(result, ToggleResult(False, 0))
        self.assertCounterMatchesLedger(self.photo)

    def test_failed_counter_rolls_back_ledger(self):
        """Insert without increment must never be visible."""
        with patch('wedding.services.adjust_like_count', side_effect=RuntimeError('boom')):
            with self.assertRaises(RuntimeError):
                toggle_photo_like(self.photo.id, 'sess-A')

        self.assertFalse(PhotoLike.objects.exists())
        self.assertCounterMatchesLedger(self.photo)

    @override_settings(LIKE_TOGGLE_MAX_ATTEMPTS=3)
    def test_conflict_is_retried(self):
        side_effect = [TransactionConflict('could not serialize access'), ToggleResult(True, 1)]
        with patch('wedding.services._apply_toggle', side_effect=side_effect) as apply_toggle:
            result = toggle_photo_like(self.photo.id, 'sess-A')

        self.assertEqual(result, ToggleResult(True, 1))
        self.assertEqual(apply_toggle.call_count, 2)
        # Same session key on every attempt
        for call in apply_toggle.call_args_list:
            self.assertEqual(call.args[1:], (self.photo.id, 'sess-A'))

    @override_settings(LIKE_TOGGLE_MAX_ATTEMPTS=3, LIKE_TOGGLE_RETRY_BACKOFF=0.25)
    def test_conflict_retries_back_off(self):
        side_effect = [
            TransactionConflict('database is locked'),
            TransactionConflict('database is locked'),
            ToggleResult(True, 1),
        ]
        with patch('wedding.services._apply_toggle', side_effect=side_effect):
            with patch('wedding.services.time.sleep') as sleep:
                toggle_photo_like(self.photo.id, 'sess-A')

        # Growing wait before each retry, none after success
        self.assertEqual(sleep.call_args_list, [call(0.25), call(0.5)])

    @override_settings(LIKE_TOGGLE_MAX_ATTEMPTS=3)
    def test_conflict_retries_are_bounded(self):
        locked = OperationalError('database is locked')
        with patch('wedding.services.adjust_like_count', side_effect=locked) as adjust:
            with patch('wedding.services.time.sleep') as sleep:
                with self.assertRaises(TransactionConflict):
                    toggle_photo_like(self.photo.id, 'sess-A')

        self.assertEqual(adjust.call_count, 3)
        # No wait after the last attempt
        self.assertEqual(sleep.call_count, 2)
        # Every attempt rolled back
        self.assertFalse(PhotoLike.objects.exists())
        self.assertCounterMatchesLedger(self.photo)


class TransactionConflictDetectionTestCase(SimpleTestCase):

    def test_postgres_serialization_failure(self):
        exc = OperationalError('could not serialize access due to concurrent update')
        exc.__cause__ = LockedDatabase()
        self.assertTrue(is_transaction_conflict(exc))

    def test_sqlite_lock(self):
        self.assertTrue(is_transaction_conflict(OperationalError('database is locked')))

    def test_other_operational_error(self):
        self.assertFalse(is_transaction_conflict(OperationalError('server closed the connection')))


# ============================================================================
# DELETION
# ============================================================================

class EntityDeletionTestCase(TestCase):

    def setUp(self):
        self.photo = make_photo()
        self.other_photo = make_photo(original_name='IMG_0002.jpg')
        for session_key in ['sess-A', 'sess-B']:
            toggle_photo_like(self.photo.id, session_key)
        toggle_photo_like(self.other_photo.id, 'sess-A')
        PhotoComment.objects.create(photo=self.photo, author='Anna', text='Lovely')

    def test_delete_photo_removes_likes_and_comments(self):
        removed = delete_photo(self.photo.id)

        self.assertEqual(removed, 2)
        self.assertFalse(Photo.objects.filter(id=self.photo.id).exists())
        self.assertFalse(PhotoLike.objects.filter(photo_id=self.photo.id).exists())
        self.assertFalse(PhotoComment.objects.filter(photo_id=self.photo.id).exists())
        # Other photos untouched
        self.assertEqual(PhotoLike.objects.filter(photo=self.other_photo).count(), 1)

    def test_direct_delete_with_likes_is_refused(self):
        with self.assertRaises(ProtectedError):
            self.photo.delete()

    def test_delete_missing_photo(self):
        with self.assertRaises(EntityNotFound):
            delete_photo(self.photo.id + 1000)

    def test_delete_song(self):
        song = make_song()
        toggle_song_like(song.id, 'sess-A')

        self.assertEqual(delete_song(song.id), 1)
        self.assertFalse(PlaylistSong.objects.filter(id=song.id).exists())
        self.assertFalse(SongLike.objects.exists())

    def test_approve_photo(self):
        pending = make_photo(approved=False)
        approve_photo(pending.id)
        pending.refresh_from_db()
        self.assertTrue(pending.approved)

        with self.assertRaises(EntityNotFound):
            approve_photo(pending.id + 1000)

    def test_admin_delete_goes_through_ledger(self):
        PhotoAdmin(Photo, admin.site).delete_model(None, self.photo)
        self.assertFalse(Photo.objects.filter(id=self.photo.id).exists())
        self.assertFalse(PhotoLike.objects.filter(photo_id=self.photo.id).exists())

    def test_admin_bulk_delete_is_all_or_nothing(self):
        deleted = []

        def fail_on_second(photo_id):
            if deleted:
                raise EntityNotFound('photo', photo_id)
            deleted.append(photo_id)
            return delete_photo(photo_id)

        queryset = Photo.objects.filter(id__in=[self.photo.id, self.other_photo.id])
        with patch('wedding.admin.delete_photo', side_effect=fail_on_second):
            with self.assertRaises(EntityNotFound):
                PhotoAdmin(Photo, admin.site).delete_queryset(None, queryset)

        # The photo deleted before the failure is back, with its likes
        self.assertEqual(len(deleted), 1)
        self.assertEqual(Photo.objects.filter(id__in=[self.photo.id, self.other_photo.id]).count(), 2)
        self.assertEqual(PhotoLike.objects.count(), 3)

    def test_admin_bulk_delete(self):
        queryset = Photo.objects.filter(id__in=[self.photo.id, self.other_photo.id])
        PhotoAdmin(Photo, admin.site).delete_queryset(None, queryset)

        self.assertFalse(Photo.objects.exists())
        self.assertFalse(PhotoLike.objects.exists())

    def test_admin_cannot_delete_single_likes(self):
        self.assertFalse(PhotoLikeAdmin(PhotoLike, admin.site).has_delete_permission(None))


# ============================================================================
# REAL CONCURRENCY (file-backed SQLite test database or PostgreSQL)
# ============================================================================

class ConcurrentToggleTestCase(TransactionTestCase):
    """
    Toggles from several threads, each with its own connection.
    A barrier releases them at the same moment.
    """

    def setUp(self):
        self.photo = make_photo()

    def _run_concurrently(self, session_keys):
        barrier = threading.Barrier(len(session_keys))
        results = []
        errors = []

        def worker(session_key):
            try:
                barrier.wait()
                results.append(toggle_photo_like(self.photo.id, session_key))
            except Exception as exc:
                errors.append(exc)
            finally:
                connection.close()

        threads = [threading.Thread(target=worker, args=(key,)) for key in session_keys]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        return results

    def test_distinct_sessions(self):
        results = self._run_concurrently(['sess-A', 'sess-B', 'sess-C'])

        self.assertTrue(all(result.liked for result in results))
        self.photo.refresh_from_db()
        self.assertEqual(self.photo.like_count, 3)
        self.assertEqual(PhotoLike.objects.filter(photo=self.photo).count(), 3)

    def test_many_distinct_sessions(self):
        self._run_concurrently([f'sess-{i}' for i in range(10)])

        self.photo.refresh_from_db()
        self.assertEqual(self.photo.like_count, 10)

    def test_same_session_double_click(self):
        self._run_concurrently(['sess-A', 'sess-A'])

        self.photo.refresh_from_db()
        ledger_count = PhotoLike.objects.filter(photo=self.photo).count()
        self.assertIn(self.photo.like_count, (0, 1))
        self.assertEqual(self.photo.like_count, ledger_count)


# ============================================================================
# HTTP API
# ============================================================================

class LikeApiTestCase(APITestCase):

    def setUp(self):
        self.photo = make_photo()
        self.song = make_song()

    def like(self, path, address='10.0.0.1', user_agent='Phone A'):
        return self.client.post(path, REMOTE_ADDR=address, HTTP_USER_AGENT=user_agent)

    def test_photo_like_toggle(self):
        url = f'/api/photos/{self.photo.id}/like'

        response = self.like(url, user_agent='sess-A')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'liked': True, 'likes': 1})

        response = self.like(url, user_agent='sess-B')
        self.assertEqual(response.json(), {'liked': True, 'likes': 2})

        response = self.like(url, user_agent='sess-A')
        self.assertEqual(response.json(), {'liked': False, 'likes': 1})

    def test_same_browser_other_network_is_another_guest(self):
        url = f'/api/photos/{self.photo.id}/like'
        self.like(url, address='10.0.0.1')
        response = self.like(url, address='10.0.0.2')
        self.assertEqual(response.json(), {'liked': True, 'likes': 2})

    def test_song_like_toggle(self):
        url = f'/api/playlist/{self.song.id}/like'
        self.assertEqual(self.like(url).json(), {'liked': True, 'likes': 1})
        self.assertEqual(self.like(url).json(), {'liked': False, 'likes': 0})

    def test_missing_photo_is_404(self):
        response = self.like(f'/api/photos/{self.photo.id + 1000}/like')
        self.assertEqual(response.status_code, 404)
        self.assertIn('error', response.json())

    def test_conflict_after_retries_is_503(self):
        with patch('wedding.views.toggle_like', side_effect=TransactionConflict('busy')):
            response = self.like(f'/api/photos/{self.photo.id}/like')
        self.assertEqual(response.status_code, 503)

    def test_gallery_shows_settled_count(self):
        self.like(f'/api/photos/{self.photo.id}/like')
        response = self.client.get('/api/photos')
        self.assertEqual(response.json()[0]['likes'], 1)


class PhotoApiTestCase(APITestCase):

    def setUp(self):
        self.approved = make_photo(original_name='approved.jpg')
        self.pending = make_photo(original_name='pending.jpg', approved=False)
        PhotoComment.objects.create(photo=self.approved, author='Anna', text='Nice')
        PhotoComment.objects.create(photo=self.approved, author='Petr', text='Great')

    def photo_payload(self, **kwargs):
        payload = {
            'filename': 'wedding/new',
            'original_name': 'IMG_9999.jpg',
            'url': 'https://example.com/new.jpg',
            'thumbnail_url': 'https://example.com/new_thumb.jpg',
        }
        payload.update(kwargs)
        return payload

    def test_list_all(self):
        response = self.client.get('/api/photos')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()), 2)

    def test_list_filtered(self):
        approved = self.client.get('/api/photos', {'approved': 'true'}).json()
        pending = self.client.get('/api/photos', {'approved': 'false'}).json()

        self.assertEqual([photo['id'] for photo in approved], [self.approved.id])
        self.assertEqual([photo['id'] for photo in pending], [self.pending.id])
        self.assertEqual(approved[0]['comment_count'], 2)

    def test_list_limit(self):
        response = self.client.get('/api/photos', {'limit': 1})
        self.assertEqual(len(response.json()), 1)

        response = self.client.get('/api/photos', {'limit': 1, 'offset': 1})
        self.assertEqual(len(response.json()), 1)

    def test_save_photo_approved_when_not_moderated(self):
        response = self.client.post('/api/photos/save', self.photo_payload(), format='json')
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.json()['approved'])
        self.assertEqual(response.json()['likes'], 0)

    def test_save_photo_pending_when_moderated(self):
        self.client.patch('/api/wedding-details', {'moderate_uploads': True}, format='json')

        response = self.client.post('/api/photos/save', self.photo_payload(), format='json')
        self.assertEqual(response.status_code, 201)
        self.assertFalse(response.json()['approved'])

    def test_save_photo_rejected_when_uploads_closed(self):
        self.client.patch('/api/wedding-details', {'allow_uploads': False}, format='json')
        response = self.client.post('/api/photos/save', self.photo_payload(), format='json')
        self.assertEqual(response.status_code, 403)

    def test_save_photo_invalid(self):
        response = self.client.post('/api/photos/save', {'filename': 'x'}, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('url', response.json()['details'])

    def test_like_count_not_writable(self):
        response = self.client.post(
            '/api/photos/save',
            self.photo_payload(likes=500, like_count=500),
            format='json'
        )
        self.assertEqual(response.json()['likes'], 0)

    def test_delete_photo(self):
        toggle_photo_like(self.approved.id, 'sess-A')

        response = self.client.delete(f'/api/photos/{self.approved.id}')
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Photo.objects.filter(id=self.approved.id).exists())
        self.assertFalse(PhotoLike.objects.exists())

    def test_delete_missing_photo(self):
        response = self.client.delete(f'/api/photos/{self.approved.id + 1000}')
        self.assertEqual(response.status_code, 404)

    def test_approve_photo(self):
        response = self.client.patch(f'/api/photos/{self.pending.id}/approve')
        self.assertEqual(response.status_code, 200)
        self.pending.refresh_from_db()
        self.assertTrue(self.pending.approved)

    def test_comments(self):
        url = f'/api/photos/{self.approved.id}/comments'

        response = self.client.post(url, {'author': ' Eva ', 'text': 'Gorgeous\x07'}, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['author'], 'Eva')
        self.assertEqual(response.json()['text'], 'Gorgeous')

        comments = self.client.get(url).json()
        self.assertEqual([comment['author'] for comment in comments], ['Anna', 'Petr', 'Eva'])

    def test_comment_requires_author_and_text(self):
        url = f'/api/photos/{self.approved.id}/comments'
        response = self.client.post(url, {'author': 'Eva'}, format='json')
        self.assertEqual(response.status_code, 400)

        response = self.client.post(url, {'author': '   ', 'text': 'Hi'}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_comment_on_missing_photo(self):
        url = f'/api/photos/{self.approved.id + 1000}/comments'
        response = self.client.post(url, {'author': 'Eva', 'text': 'Hi'}, format='json')
        self.assertEqual(response.status_code, 404)


class PlaylistApiTestCase(APITestCase):

    def setUp(self):
        self.song = make_song()
        self.hidden = make_song(title='Hidden', approved=False)

    def test_list_approved_only(self):
        response = self.client.get('/api/playlist')
        self.assertEqual(response.status_code, 200)
        self.assertEqual([song['id'] for song in response.json()], [self.song.id])

    def test_suggest_song(self):
        response = self.client.post(
            '/api/playlist',
            {'title': 'Dancing Queen', 'artist': 'ABBA', 'suggestion': 'For the aunts'},
            format='json'
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['likes'], 0)
        self.assertTrue(response.json()['approved'])

    def test_suggest_song_requires_title(self):
        response = self.client.post('/api/playlist', {'suggestion': 'x'}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_delete_song(self):
        toggle_song_like(self.song.id, 'sess-A')
        response = self.client.delete(f'/api/playlist/{self.song.id}')
        self.assertEqual(response.status_code, 200)
        self.assertFalse(SongLike.objects.exists())

        response = self.client.delete(f'/api/playlist/{self.song.id}')
        self.assertEqual(response.status_code, 404)


class WeddingDetailsApiTestCase(APITestCase):

    def test_defaults_created_on_first_read(self):
        response = self.client.get('/api/wedding-details')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['couple_names'], settings.WEDDING_DEFAULTS['couple_names'])
        self.assertTrue(response.json()['allow_uploads'])
        self.assertEqual(WeddingDetails.objects.count(), 1)

        self.client.get('/api/wedding-details')
        self.assertEqual(WeddingDetails.objects.count(), 1)

    def test_losing_first_read_reuses_existing_row(self):
        """
        Two first reads both saw no row; the second one reaches the
        create after the first one already inserted.
        """
        existing = WeddingDetails.objects.create(
            pk=1, couple_names='Jana & Tomas', wedding_date='2025-10-11T14:00:00Z', venue='Mill',
        )
        with patch('django.db.models.query.QuerySet.first', return_value=None):
            details = get_wedding_details()

        self.assertEqual(details.pk, existing.pk)
        self.assertEqual(details.couple_names, 'Jana & Tomas')
        self.assertEqual(WeddingDetails.objects.count(), 1)

    def test_partial_update(self):
        response = self.client.patch('/api/wedding-details', {'venue': 'Old Post Office'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['venue'], 'Old Post Office')

    def test_invalid_update(self):
        response = self.client.patch('/api/wedding-details', {'wedding_date': 'soon'}, format='json')
        self.assertEqual(response.status_code, 400)


class SiteMetadataApiTestCase(APITestCase):

    def setUp(self):
        SiteMetadata.objects.create(meta_key='hero_title', meta_value='We are getting married!')
        SiteMetadata.objects.create(
            meta_key='rsvp_open', meta_value='true', meta_type='boolean', category='rsvp',
        )

    def test_list(self):
        response = self.client.get('/api/metadata')
        self.assertEqual(response.status_code, 200)
        self.assertEqual([entry['meta_key'] for entry in response.json()], ['hero_title', 'rsvp_open'])

    def test_list_filtered_by_key(self):
        response = self.client.get('/api/metadata', {'key': 'rsvp_open'})
        self.assertEqual(len(response.json()), 1)
        self.assertEqual(response.json()[0]['meta_type'], 'boolean')

    def test_get_by_key(self):
        response = self.client.get('/api/metadata/hero_title')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['meta_value'], 'We are getting married!')
        self.assertEqual(response.json()['category'], 'general')

        self.assertEqual(self.client.get('/api/metadata/missing').status_code, 404)

    def test_post_creates(self):
        response = self.client.post(
            '/api/metadata',
            {'meta_key': 'dress_code', 'meta_value': 'Smart casual'},
            format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['meta_type'], 'string')
        self.assertTrue(SiteMetadata.objects.filter(meta_key='dress_code').exists())

    def test_post_existing_key_replaces_value(self):
        response = self.client.post(
            '/api/metadata',
            {'meta_key': 'hero_title', 'meta_value': 'See you there'},
            format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['meta_value'], 'See you there')
        self.assertEqual(SiteMetadata.objects.filter(meta_key='hero_title').count(), 1)

    def test_post_invalid(self):
        response = self.client.post('/api/metadata', {'meta_value': 'no key'}, format='json')
        self.assertEqual(response.status_code, 400)

        response = self.client.post(
            '/api/metadata', {'meta_key': 'x', 'meta_type': 'date'}, format='json'
        )
        self.assertEqual(response.status_code, 400)

    def test_patch(self):
        response = self.client.patch('/api/metadata/rsvp_open', {'meta_value': 'false'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['meta_value'], 'false')
        self.assertEqual(response.json()['category'], 'rsvp')

        response = self.client.patch('/api/metadata/missing', {'meta_value': '1'}, format='json')
        self.assertEqual(response.status_code, 404)

    def test_delete(self):
        response = self.client.delete('/api/metadata/hero_title')
        self.assertEqual(response.status_code, 200)
        self.assertFalse(SiteMetadata.objects.filter(meta_key='hero_title').exists())

        self.assertEqual(self.client.delete('/api/metadata/hero_title').status_code, 404)


class SeedDataTestCase(TestCase):

    def test_seeded_counters_match_ledger(self):
        call_command(
            'seed_data', guests=4, photos=3, songs=2, comments=5,
            stdout=StringIO()
        )

        self.assertEqual(Photo.objects.count(), 3)
        self.assertEqual(PhotoComment.objects.count(), 5)
        for photo in Photo.objects.all():
            self.assertEqual(photo.like_count, PhotoLike.objects.filter(photo=photo).count())
            self.assertEqual(photo.like_count, 2)
        for song in PlaylistSong.objects.all():
            self.assertEqual(song.like_count, SongLike.objects.filter(song=song).count())

    def test_clear(self):
        call_command('seed_data', guests=2, photos=2, songs=1, comments=1, stdout=StringIO())
        call_command('seed_data', '--clear', guests=2, photos=1, songs=1, comments=0, stdout=StringIO())

        self.assertEqual(Photo.objects.count(), 1)
        self.assertEqual(PlaylistSong.objects.count(), 1)
