"""URL routing for uploads; the health check is mounted at the site root."""

from django.urls import path  # type: ignore

from .views import FileUploadView

urlpatterns = [
    path("", FileUploadView.as_view(), name="file-upload"),
]
