"""Keep venue ratings in sync with their reviews."""

from django.db.models.signals import post_delete, post_save  # type: ignore
from django.dispatch import receiver  # type: ignore

from .models import Review
from .services import recalculate_venue_rating


@receiver([post_save, post_delete], sender=Review)
def venue_rating_updater(sender, instance: Review, **kwargs) -> None:
    recalculate_venue_rating(instance.venue_id)
