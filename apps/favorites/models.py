"""Model definition for favorites.

The ``Favorite`` model represents a bookmark created by a user for a
particular venue. Duplicate favorites are prevented via a unique
constraint.
"""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Favorite(models.Model):
    """A user's favorite venue."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="favorites"
    )
    venue = models.ForeignKey(
        "venues.Venue", on_delete=models.CASCADE, related_name="favorited_by"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Favorite")
        verbose_name_plural = _("Favorites")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["user", "venue"], name="unique_favorite_venue"),
        ]

    def __str__(self) -> str:
        return f"Favorite venue {self.venue_id} by user {self.user_id}"
