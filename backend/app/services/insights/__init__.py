"""Platform insight sync: metrics fetch, feature extraction and pattern scoring."""

from app.services.insights.features import (
    analyze_content_features,
    analyze_post_timing,
    calculate_engagement_rate,
    classify_performance,
)
from app.services.insights.metrics_client import PlatformMetricsClient
from app.services.insights.patterns import pattern_priority, recalculate_pattern_priorities
from app.services.insights.sync_service import (
    SUPPORTED_PLATFORMS,
    InsightSyncService,
    PostSyncResult,
    SyncSummary,
)

__all__ = [
    "InsightSyncService",
    "PlatformMetricsClient",
    "PostSyncResult",
    "SUPPORTED_PLATFORMS",
    "SyncSummary",
    "analyze_content_features",
    "analyze_post_timing",
    "calculate_engagement_rate",
    "classify_performance",
    "pattern_priority",
    "recalculate_pattern_priorities",
]
