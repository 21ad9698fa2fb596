"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from socialsearch import __version__
from socialsearch.api import search
from socialsearch.api.errors import install_error_handlers
from socialsearch.domain.search.service import forget_store
from socialsearch.infra import postgres
from socialsearch.obs import init as obs_init
from socialsearch.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	try:
		yield
	finally:
		await postgres.close_pool()
		forget_store()


app = FastAPI(title="Social Search", version=__version__, lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins or ())
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["GET"],
	allow_headers=["*"],
)
obs_init(app)

app.include_router(search.router)
