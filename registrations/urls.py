from django.urls import path

from . import views

app_name = "registrations"
urlpatterns = [
    path("send-welcome", views.send_welcome_view, name="send_welcome"),
]
