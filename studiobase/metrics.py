"""
Prometheus metrics for Studiobase.

Registered on the default registry and exposed with the HTTP metrics
at /metrics.
"""
from prometheus_client import Counter

# Webhook reconciliation
webhook_events_total = Counter(
    'studiobase_webhook_events_total',
    'Payment webhook events by kind and outcome',
    ['kind', 'outcome'],
)

# Deduplication
duplicate_uploads_total = Counter(
    'studiobase_duplicate_uploads_total',
    'Uploads rejected because their content hash already exists',
    ['entity'],
)
