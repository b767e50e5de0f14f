from .settings import *

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}

LAUNDRY_DAILY_CAPACITY = 3
LAUNDRY_PROCESSING_DURATION_MS = 60 * 60 * 1000
LAUNDRY_STANDARD_DELIVERY_FEE_CENTAVOS = 3000
LAUNDRY_EVENTS_CALLBACK_URL = ''

LOGGING['loggers']['bookings']['level'] = 'CRITICAL'
LOGGING['loggers']['payments']['level'] = 'CRITICAL'
