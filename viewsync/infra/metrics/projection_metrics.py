# viewsync/infra/metrics/projection_metrics.py
"""
Projection Metrics

Prometheus metrics for derived-view reconciliation:
- chat summary updates by side and outcome
- offer rating rebuilds
- cascade deletion progress and failures
- push notification outcomes
- event processor dispatch
"""

from prometheus_client import Counter, Histogram

# ============================================================================
# Chat Summary Views
# ============================================================================

chat_summary_updates_total = Counter(
    'viewsync_chat_summary_updates_total',
    'Chat summary copy updates by side (sender/receiver/unread/profile) and outcome',
    ['side', 'outcome']
)

# ============================================================================
# Offer Ratings
# ============================================================================

offer_rating_rebuilds_total = Counter(
    'viewsync_offer_rating_rebuilds_total',
    'Offer rating list rebuilds by outcome',
    ['outcome']
)

# ============================================================================
# Cascade Deletion
# ============================================================================

cascade_documents_deleted_total = Counter(
    'viewsync_cascade_documents_deleted_total',
    'Documents removed by cascade deletion, per branch',
    ['branch']
)

cascade_branch_failures_total = Counter(
    'viewsync_cascade_branch_failures_total',
    'Cascade branches aborted by a failing batch',
    ['branch']
)

cascade_blob_deletions_total = Counter(
    'viewsync_cascade_blob_deletions_total',
    'Blob deletions attempted during cascade, by outcome',
    ['outcome']
)

# ============================================================================
# Notifications
# ============================================================================

notifications_total = Counter(
    'viewsync_notifications_total',
    'Push notifications by outcome (sent/failed/skipped)',
    ['outcome']
)

# ============================================================================
# Event Processor
# ============================================================================

events_processed_total = Counter(
    'viewsync_events_processed_total',
    'Document events dispatched to handlers',
    ['handler', 'status']
)

event_handler_duration_seconds = Histogram(
    'viewsync_event_handler_duration_seconds',
    'Handler execution time in seconds',
    ['handler'],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)
