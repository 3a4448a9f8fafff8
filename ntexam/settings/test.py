from .base import *

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

ALLOWED_HOSTS = ['testserver']

CORS_ALLOWED_ORIGINS = ['http://localhost:5173', 'https://ntexam.in', 'https://www.ntexam.in']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
DEFAULT_FROM_EMAIL = 'NTExam <noreply@ntexam.in>'
WELCOME_FROM_EMAIL = ''

RAZORPAY_USE_LIVE = False
RAZORPAY_KEY_ID_TEST = 'rzp_test_key'
RAZORPAY_KEY_SECRET_TEST = 'test-razorpay-secret'
RAZORPAY_KEY_ID_LIVE = ''
RAZORPAY_KEY_SECRET_LIVE = ''
RAZORPAY_BASE_URL = 'https://api.razorpay.com'
RAZORPAY_EXPOSE_EXPECTED_SIGNATURE = True

SESSION_TOKEN_SECRET = 'test-session-secret-for-hs256-signing'
SESSION_TOKEN_MINUTES = 30
