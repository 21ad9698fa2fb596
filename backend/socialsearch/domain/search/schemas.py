"""Pydantic schemas for Search & Trending APIs."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from socialsearch.domain.search.models import DateRange, SearchType, SortBy


class SearchQuery(BaseModel):
	q: str = Field(default="", max_length=120, description="Raw user input")
	type: SearchType = SearchType.ALL
	sort_by: SortBy = SortBy.RELEVANCE
	date_range: DateRange = DateRange.ALL
	verified_only: bool = False
	limit: int = Field(default=20, ge=1, le=50)

	def normalized_query(self) -> str:
		return self.q.strip()


class SuggestionQuery(BaseModel):
	q: str = Field(default="", max_length=120)


class TrendingQuery(BaseModel):
	limit: int = Field(default=10, ge=1, le=50)


class UserSummary(BaseModel):
	id: str
	username: Optional[str] = None
	display_name: Optional[str] = None
	avatar: Optional[str] = None
	verified: bool = False
	followers_count: int = 0


class AuthorSummary(BaseModel):
	username: Optional[str] = None
	display_name: Optional[str] = None
	avatar: Optional[str] = None
	verified: bool = False


class PostSummary(BaseModel):
	id: str
	content: Optional[str] = None
	author_id: str
	created_at: datetime
	likes_count: int = 0
	comments_count: int = 0
	visibility: str
	author: Optional[AuthorSummary] = None


class HashtagSummary(BaseModel):
	tag: str
	post_count: int = Field(..., ge=0)
	trending_score: float = Field(..., ge=0.0, le=1.0)


class UserResult(BaseModel):
	id: str
	type: Literal["user"] = "user"
	relevance_score: float = Field(..., ge=0.0, le=1.0)
	user: UserSummary


class PostResult(BaseModel):
	id: str
	type: Literal["post"] = "post"
	relevance_score: float = Field(..., ge=0.0, le=1.0)
	post: PostSummary


class HashtagResult(BaseModel):
	id: str
	type: Literal["hashtag"] = "hashtag"
	relevance_score: float = Field(..., ge=0.0, le=1.0)
	hashtag: HashtagSummary


SearchResult = Annotated[Union[UserResult, PostResult, HashtagResult], Field(discriminator="type")]


class SearchSuggestion(BaseModel):
	id: str
	text: str
	type: Literal["user", "hashtag"]
	avatar: Optional[str] = None


class TrendingTopic(BaseModel):
	id: str
	hashtag: str
	post_count: int = Field(..., ge=0)
	growth_rate: float = Field(..., ge=0.0, le=1.0)
	category: Optional[str] = None


class SearchResponse(BaseModel):
	q: str
	items: list[SearchResult]


class SuggestionResponse(BaseModel):
	items: list[SearchSuggestion]


class TrendingResponse(BaseModel):
	items: list[TrendingTopic]
