"""Search domain exports."""

from .service import SearchService, forget_store, reset_memory_state, resolve_store, seed_memory_store

__all__ = [
	"SearchService",
	"resolve_store",
	"forget_store",
	"seed_memory_store",
	"reset_memory_state",
]
