from django import forms


class CreateOrderForm(forms.Form):
    """Body of ``POST /api/payments/create-order``."""

    registrationId = forms.CharField(max_length=64)


class VerifyPaymentForm(forms.Form):
    """Body of ``POST /api/payments/verify``, as echoed by Razorpay checkout.

    Gateway strings are kept exactly as received; they are stored for audit.
    """

    registrationId = forms.CharField(max_length=64)
    razorpay_order_id = forms.CharField(max_length=64, strip=False)
    razorpay_payment_id = forms.CharField(max_length=64, strip=False)
    razorpay_signature = forms.CharField(max_length=256, strip=False)
