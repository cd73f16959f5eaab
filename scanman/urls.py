from django.urls import path

from .views import ScanView

app_name = "scanman"

urlpatterns = [
    path("scan/", ScanView.as_view(), name="scan"),
]
