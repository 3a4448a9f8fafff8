import uuid

from django.db import models

from .fees import fee_for_category


def _new_registration_id() -> str:
    return uuid.uuid4().hex


class Registration(models.Model):
    PAYMENT_STATUS_CHOICES = [
        ("", "Not started"),
        ("created", "Created"),
        ("paid", "Paid"),
        ("failed", "Failed"),
    ]
    # Columns the payment flow is allowed to write; everything else belongs to the student.
    PAYMENT_FIELDS = frozenset({
        "payment_status",
        "is_paid",
        "paid_at",
        "razorpay_order_id",
        "razorpay_payment_id",
        "razorpay_signature",
    })

    id = models.CharField(max_length=64, primary_key=True, default=_new_registration_id, editable=False)

    # personal
    full_name = models.CharField(max_length=128, blank=True, default="")
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=16, blank=True, default="")
    contact_number = models.CharField(max_length=16, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    address = models.CharField(max_length=256, blank=True, default="")
    city = models.CharField(max_length=64, blank=True, default="")
    state = models.CharField(max_length=64, blank=True, default="")
    postal_code = models.CharField(max_length=16, blank=True, default="")

    # school
    school_name = models.CharField(max_length=128, blank=True, default="")
    school_address = models.CharField(max_length=256, blank=True, default="")
    school_city = models.CharField(max_length=64, blank=True, default="")
    school_state = models.CharField(max_length=64, blank=True, default="")
    school_postal_code = models.CharField(max_length=16, blank=True, default="")
    class_grade = models.CharField(max_length=16, blank=True, default="")
    roll_number = models.CharField(max_length=32, blank=True, default="")

    # exam
    subjects = models.JSONField(default=list, blank=True)
    exam_center = models.CharField(max_length=128, blank=True, default="")
    exam_date = models.DateField(null=True, blank=True)

    # parent
    parent_name = models.CharField(max_length=128, blank=True, default="")
    parent_contact_number = models.CharField(max_length=16, blank=True, default="")
    parent_email = models.EmailField(blank=True, default="")
    terms_accepted = models.BooleanField(default=False)

    # payment
    fees = models.IntegerField(null=True, blank=True)  # whole rupees
    payment_status = models.CharField(
        max_length=16, choices=PAYMENT_STATUS_CHOICES, blank=True, default="", db_index=True
    )
    is_paid = models.BooleanField(default=False)
    razorpay_order_id = models.CharField(max_length=64, blank=True, default="", db_index=True)
    razorpay_payment_id = models.CharField(max_length=64, blank=True, default="")
    razorpay_signature = models.CharField(max_length=256, blank=True, default="")
    paid_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "registrations"
        ordering = ("-created_at",)

    def __str__(self):
        return f"{self.id} {self.full_name or '-'} ({self.payment_status or 'unpaid'})"

    def resolved_fee(self) -> int:
        """Stored fee when it is a positive number, otherwise the category default."""
        if isinstance(self.fees, int) and not isinstance(self.fees, bool) and self.fees > 0:
            return self.fees
        return fee_for_category(self.gender)
