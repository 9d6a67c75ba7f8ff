from django.apps import AppConfig  # type: ignore


class ReviewsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.reviews"

    def ready(self) -> None:  # pragma: no cover - import side effects
        from . import signals  # noqa: F401
