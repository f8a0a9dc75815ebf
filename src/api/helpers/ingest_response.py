"""Response building for create-from-URL endpoints."""
from dataclasses import asdict

from schemas.bookmark import BookmarkResponse
from schemas.ingest import ExtractBookmarkResponse, ExtractedMetadataResponse, IngestInsights
from services.enrichment import IngestSource
from services.ingest_service import IngestResult


def build_ingest_response(result: IngestResult, source: IngestSource) -> ExtractBookmarkResponse:
    """Shape a front-door result as the JSON returned to web and bot callers."""
    insights = result.enrichment.insights or {}
    return ExtractBookmarkResponse(
        bookmark=BookmarkResponse.model_validate(result.bookmark),
        tags=result.tag_names,
        summary=result.summary,
        insights=IngestInsights(
            extracted_metadata=ExtractedMetadataResponse(**asdict(result.metadata)),
            source=source,
            degraded_extraction=result.metadata.degraded,
            degraded_enrichment=result.enrichment.degraded,
            domain_analysis=insights.get("domain_analysis"),
            content_type=insights.get("content_type"),
            user_context=insights.get("user_context"),
        ),
    )
