"""REST endpoints for search, suggestions and trending topics."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from socialsearch.domain.search import policy, schemas
from socialsearch.domain.search.service import SearchService, resolve_store
from socialsearch.infra.auth import RequestIdentity, get_request_identity
from socialsearch.settings import settings

router = APIRouter(tags=["search"])


def _as_http_error(exc: Exception) -> HTTPException:
	if isinstance(exc, policy.SearchRateLimitError):
		return HTTPException(
			status_code=exc.status_code,
			detail=exc.detail,
			headers={"Retry-After": str(exc.retry_after)},
		)
	if isinstance(exc, policy.SearchPolicyError):
		return HTTPException(status_code=exc.status_code, detail=exc.detail)
	return HTTPException(status_code=400, detail=str(exc))


async def get_search_service(identity: RequestIdentity = Depends(get_request_identity)) -> SearchService:
	store = await resolve_store()
	return SearchService(store, identity)


async def _enforce_rate_limit(identity: RequestIdentity, kind: str) -> None:
	user_id: Optional[str] = identity.current_user_id()
	if user_id is None:
		return
	try:
		await policy.enforce_rate_limit(user_id, kind=kind, limit=settings.search_rate_per_minute)
	except policy.SearchPolicyError as exc:
		raise _as_http_error(exc) from exc


@router.get("/search", response_model=schemas.SearchResponse)
async def search_endpoint(
	query: schemas.SearchQuery = Depends(),
	identity: RequestIdentity = Depends(get_request_identity),
	service: SearchService = Depends(get_search_service),
) -> schemas.SearchResponse:
	await _enforce_rate_limit(identity, "search")
	items = await service.search(query)
	return schemas.SearchResponse(q=query.q, items=items)


@router.get("/search/suggestions", response_model=schemas.SuggestionResponse)
async def suggestions_endpoint(
	query: schemas.SuggestionQuery = Depends(),
	identity: RequestIdentity = Depends(get_request_identity),
	service: SearchService = Depends(get_search_service),
) -> schemas.SuggestionResponse:
	await _enforce_rate_limit(identity, "search:suggest")
	return schemas.SuggestionResponse(items=await service.get_suggestions(query.q))


@router.get("/search/trending", response_model=schemas.TrendingResponse)
async def trending_endpoint(
	query: schemas.TrendingQuery = Depends(),
	identity: RequestIdentity = Depends(get_request_identity),
	service: SearchService = Depends(get_search_service),
) -> schemas.TrendingResponse:
	await _enforce_rate_limit(identity, "search:trending")
	return schemas.TrendingResponse(items=await service.get_trending_topics(query.limit))
