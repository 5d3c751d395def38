"""
Management command to seed the database with sample data.

Usage: python manage.py seed_data
"""

import random
from datetime import timedelta
from django.core.management.base import BaseCommand
from django.utils import timezone

from wedding.models import Photo, PhotoComment, PhotoLike, PlaylistSong, SongLike
from wedding.queries import get_wedding_details
from wedding.services import toggle_photo_like, toggle_song_like, delete_photo, delete_song
from wedding.session import derive_session_key


class Command(BaseCommand):
    help = 'Seed the database with sample photos, songs, comments and likes'

    def add_arguments(self, parser):
        parser.add_argument(
            '--guests',
            type=int,
            default=10,
            help='Number of guest sessions that like things'
        )
        parser.add_argument(
            '--photos',
            type=int,
            default=12,
            help='Number of photos to create'
        )
        parser.add_argument(
            '--songs',
            type=int,
            default=8,
            help='Number of playlist songs to create'
        )
        parser.add_argument(
            '--comments',
            type=int,
            default=30,
            help='Number of photo comments to create'
        )
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before seeding'
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            for photo_id in list(Photo.objects.values_list('id', flat=True)):
                delete_photo(photo_id)
            for song_id in list(PlaylistSong.objects.values_list('id', flat=True)):
                delete_song(song_id)

        get_wedding_details()

        sessions = self._guest_sessions(options['guests'])

        self.stdout.write('Creating photos...')
        photos = self._create_photos(options['photos'])

        self.stdout.write('Creating songs...')
        songs = self._create_songs(options['songs'])

        self.stdout.write('Creating comments...')
        comments = self._create_comments(photos, options['comments'])

        self.stdout.write('Creating likes...')
        self._create_likes(sessions, photos, songs)

        self.stdout.write(self.style.SUCCESS(
            f'Successfully created:\n'
            f'  - {len(photos)} photos\n'
            f'  - {len(songs)} songs\n'
            f'  - {len(comments)} comments\n'
            f'  - {PhotoLike.objects.count()} photo likes, {SongLike.objects.count()} song likes'
        ))

    def _guest_sessions(self, count):
        # Same derivation as real requests, one fake phone per guest
        return [
            derive_session_key(f'192.168.1.{i + 10}', f'SeedBrowser/{i + 1}.0')
            for i in range(count)
        ]

    def _create_photos(self, count):
        photos = []
        guests = ['Anna', 'Tomas', 'Eva', 'Petr', 'Lucie', None]
        for i in range(count):
            photo = Photo.objects.create(
                filename=f'seed/photo-{i + 1}',
                original_name=f'IMG_{1000 + i}.jpg',
                url=f'https://picsum.photos/seed/wedding{i + 1}/1600/1200',
                thumbnail_url=f'https://picsum.photos/seed/wedding{i + 1}/400/300',
                approved=random.random() < 0.8,
                author_name=random.choice(guests),
                is_photo_booth=random.random() < 0.2,
                uploaded_at=timezone.now() - timedelta(minutes=random.randint(0, 600)),
            )
            photos.append(photo)
        return photos

    def _create_songs(self, count):
        songs = []
        catalogue = [
            ("September", "Earth, Wind & Fire"),
            ("Dancing Queen", "ABBA"),
            ("Uptown Funk", "Mark Ronson ft. Bruno Mars"),
            ("Shut Up and Dance", "Walk the Moon"),
            ("I Wanna Dance with Somebody", "Whitney Houston"),
            ("Mr. Brightside", "The Killers"),
            ("Perfect", "Ed Sheeran"),
            ("Can't Stop the Feeling!", "Justin Timberlake"),
            ("Don't Stop Me Now", "Queen"),
            ("Signed, Sealed, Delivered", "Stevie Wonder"),
        ]
        reasons = [
            "Everyone will be on the dance floor.",
            "This was playing when they met!",
            "A classic for the late night set.",
            "Perfect for the first dance.",
        ]
        for i in range(count):
            title, artist = catalogue[i % len(catalogue)]
            song = PlaylistSong.objects.create(
                title=title,
                artist=artist,
                suggestion=random.choice(reasons),
                submitted_at=timezone.now() - timedelta(minutes=random.randint(0, 600)),
            )
            songs.append(song)
        return songs

    def _create_comments(self, photos, count):
        comments = []
        if not photos:
            return comments
        texts = [
            "Beautiful!",
            "What a moment.",
            "Look at those smiles!",
            "Best party ever.",
            "Who took this? Amazing shot.",
        ]
        authors = ['Anna', 'Tomas', 'Eva', 'Petr', 'Lucie', 'Grandma']
        for _ in range(count):
            comments.append(PhotoComment.objects.create(
                photo=random.choice(photos),
                author=random.choice(authors),
                text=random.choice(texts),
            ))
        return comments

    def _create_likes(self, sessions, photos, songs):
        # Every like goes through the toggle so counters match the ledger
        for photo in photos:
            for session_key in random.sample(sessions, k=len(sessions) // 2):
                toggle_photo_like(photo.id, session_key)

        for song in songs:
            for session_key in random.sample(sessions, k=len(sessions) // 3):
                toggle_song_like(song.id, session_key)
