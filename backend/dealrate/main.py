"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dealrate.api import ops, posts, ratings, users
from dealrate.api.errors import install_error_handlers
from dealrate.infra import postgres
from dealrate.obs import init as obs_init
from dealrate.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	try:
		yield
	finally:
		await postgres.close_pool()


app = FastAPI(title="Deal Rate API", lifespan=lifespan)

if settings.cors_allow_origins:
	app.add_middleware(
		CORSMiddleware,
		allow_origins=list(settings.cors_allow_origins),
		allow_credentials=True,
		allow_methods=["GET", "POST"],
		allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
	)

obs_init(app)
install_error_handlers(app)

app.include_router(posts.router)
app.include_router(ratings.router)
app.include_router(users.router)
app.include_router(ops.router)
