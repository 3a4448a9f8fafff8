from django.db import migrations, models

import registrations.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Registration",
            fields=[
                ("id", models.CharField(default=registrations.models._new_registration_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ("full_name", models.CharField(blank=True, default="", max_length=128)),
                ("date_of_birth", models.DateField(blank=True, null=True)),
                ("gender", models.CharField(blank=True, default="", max_length=16)),
                ("contact_number", models.CharField(blank=True, default="", max_length=16)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("address", models.CharField(blank=True, default="", max_length=256)),
                ("city", models.CharField(blank=True, default="", max_length=64)),
                ("state", models.CharField(blank=True, default="", max_length=64)),
                ("postal_code", models.CharField(blank=True, default="", max_length=16)),
                ("school_name", models.CharField(blank=True, default="", max_length=128)),
                ("school_address", models.CharField(blank=True, default="", max_length=256)),
                ("school_city", models.CharField(blank=True, default="", max_length=64)),
                ("school_state", models.CharField(blank=True, default="", max_length=64)),
                ("school_postal_code", models.CharField(blank=True, default="", max_length=16)),
                ("class_grade", models.CharField(blank=True, default="", max_length=16)),
                ("roll_number", models.CharField(blank=True, default="", max_length=32)),
                ("subjects", models.JSONField(blank=True, default=list)),
                ("exam_center", models.CharField(blank=True, default="", max_length=128)),
                ("exam_date", models.DateField(blank=True, null=True)),
                ("parent_name", models.CharField(blank=True, default="", max_length=128)),
                ("parent_contact_number", models.CharField(blank=True, default="", max_length=16)),
                ("parent_email", models.EmailField(blank=True, default="", max_length=254)),
                ("terms_accepted", models.BooleanField(default=False)),
                ("fees", models.IntegerField(blank=True, null=True)),
                ("payment_status", models.CharField(blank=True, choices=[("", "Not started"), ("created", "Created"), ("paid", "Paid"), ("failed", "Failed")], db_index=True, default="", max_length=16)),
                ("is_paid", models.BooleanField(default=False)),
                ("razorpay_order_id", models.CharField(blank=True, db_index=True, default="", max_length=64)),
                ("razorpay_payment_id", models.CharField(blank=True, default="", max_length=64)),
                ("razorpay_signature", models.CharField(blank=True, default="", max_length=256)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "registrations",
                "ordering": ("-created_at",),
            },
        ),
    ]
