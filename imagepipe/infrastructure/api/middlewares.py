from __future__ import annotations

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from imagepipe.config import Settings

_DEV_ORIGINS = (
    "http://localhost:3000",
    "http://localhost:5173",  # Vite default
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
)


def add_default_middlewares(app: FastAPI, settings: Settings) -> None:
    if settings.cors_origins:
        allowed_origins = list(settings.cors_origins)
    elif settings.env in ("development", "staging"):
        allowed_origins = list(_DEV_ORIGINS)
    else:
        allowed_origins = ["*"]

    # Browsers reject credentials with a wildcard origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=allowed_origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
