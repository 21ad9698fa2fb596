"""Custom exceptions for search & trending operations."""

from __future__ import annotations


class SearchError(Exception):
	"""Base class for search errors."""

	def __init__(self, detail: str, *, status_code: int = 400) -> None:
		super().__init__(detail)
		self.detail = detail
		self.status_code = status_code


class StoreUnavailableError(SearchError):
	"""Raised by a store when its backend cannot answer a query."""

	def __init__(self, detail: str = "store_unavailable", *, status_code: int = 503) -> None:
		super().__init__(detail, status_code=status_code)
