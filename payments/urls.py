from django.urls import path
from . import views
app_name = "payments"
urlpatterns = [
    path("create-order", views.create_order_view, name="create_order"),
    path("verify", views.verify_payment_view, name="verify"),
]
