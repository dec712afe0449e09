import os

_defaults = {
    "SERVICE_NAME": "order-service",
    "USER_SERVICE_URL": "http://fake-users",
    "USER_SERVICE_TIMEOUT": "5",
    "SEED_CATALOG": "true",
    "LOG_LEVEL": "INFO",
}

for k, v in _defaults.items():
    os.environ.setdefault(k, v)
