from django.contrib import admin  # type: ignore

from .models import Favorite


@admin.register(Favorite)
class FavoriteAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "venue", "created_at")
    raw_id_fields = ("user", "venue")
