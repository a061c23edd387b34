from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse

from app.core.exceptions import ScrapeError
from app.models.common import ErrorResponse, InstructionResponse
from app.models.metadata.schemas import MetadataRecord
from app.repositories.cache import fetch_cache
from app.services.scraper.service import ScrapeService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["metadata"])

SOURCE_URL = "https://github.com/tijnjh/echoscrape"


# ---------------------------------------------------------------------------
# Dependency
# ---------------------------------------------------------------------------


def _get_service() -> ScrapeService:
    """FastAPI dependency that builds a ``ScrapeService`` on the shared cache."""
    return ScrapeService(fetch_cache)


# ---------------------------------------------------------------------------
# GET /
# ---------------------------------------------------------------------------


@router.get("/", response_model=InstructionResponse, summary="Usage instructions")
async def index(request: Request) -> InstructionResponse:
    return InstructionResponse(
        instruction=f"Go to {request.base_url}{{your-url}}",
        source=SOURCE_URL,
    )


# ---------------------------------------------------------------------------
# GET /{target}
# ---------------------------------------------------------------------------


@router.get(
    "/{target:path}",
    response_model=MetadataRecord,
    response_model_exclude_none=True,
    responses={
        307: {"description": "Redirect to the favicon (``?favicon`` mode)"},
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    summary="Scrape link-preview metadata for a URL",
)
async def get_metadata(
    target: str,
    request: Request,
    service: ScrapeService = Depends(_get_service),
) -> MetadataRecord | RedirectResponse:
    """Scrape *target* and return its metadata.

    With a ``favicon`` query parameter oEmbed is skipped and the response
    redirects to the favicon; a page without one gets its metadata instead.

    - **200** — metadata record, absent fields omitted
    - **307** — favicon redirect
    - **400** — page could not be fetched or parsed
    - **403** — target is a loopback or private address
    - **422** — target is not a valid URL
    """
    logger.info("Scrape requested for %s", target)

    favicon_mode = "favicon" in request.query_params
    try:
        if favicon_mode:
            record = await service.scrape(target, include_oembed=False)
        else:
            record = await service.scrape(target)
    except ScrapeError as exc:
        logger.warning("GET /%s failed: %s", target, exc)
        raise HTTPException(status_code=exc.status_code, detail=str(exc))

    if favicon_mode and record.favicon:
        logger.info("Redirecting %s to its favicon %s", target, record.favicon)
        return RedirectResponse(record.favicon)

    logger.info("Responding with metadata for %s", target)
    return record
