import logging

from django.core.management.base import BaseCommand
from django.db import transaction

from social.coordinator import purge_media_after_commit
from social.models import Story

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Delete stories older than SOCIAL_STORY_TTL and purge their media"

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help="Only report how many stories would be deleted",
        )

    def handle(self, *args, **options):
        expired = Story.objects.expired()

        if options['dry_run']:
            self.stdout.write(f"{expired.count()} expired stories")
            return

        with transaction.atomic():
            stories = list(expired.values_list('pk', 'images'))
            media_ids = [media_id for _, images in stories for media_id in images]
            Story.objects.filter(pk__in=[pk for pk, _ in stories]).delete()
            purge_media_after_commit(media_ids)

        logger.info(f"Purged {len(stories)} expired stories, {len(media_ids)} image(s) queued for deletion")
        self.stdout.write(self.style.SUCCESS(f"Deleted {len(stories)} expired stories"))
