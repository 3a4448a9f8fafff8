from django.contrib import admin
from .models import Registration

@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = ("id", "full_name", "gender", "fees", "payment_status", "is_paid", "paid_at", "created_at")
    search_fields = ("id", "full_name", "email", "contact_number", "razorpay_order_id", "razorpay_payment_id")
    list_filter = ("payment_status", "is_paid", "gender", "exam_center", "created_at")
    # Payment columns are written by the Razorpay flow only
    readonly_fields = ("created_at",) + tuple(sorted(Registration.PAYMENT_FIELDS))
