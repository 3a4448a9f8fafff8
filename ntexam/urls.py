from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/payments/", include("payments.urls")),
    path("api/registrations/", include("registrations.urls")),
]

handler404 = "ntexam.views.error_404_view"
handler500 = "ntexam.views.error_500_view"
