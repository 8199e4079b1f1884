# App version
APP_VERSION = "0.3.0"

SERVICE_NAME = "freight-mileage"

# Versioned prefix for every public route except /health and /metrics
API_PREFIX = "/v1"
