"""
CORS Configuration

Configures Cross-Origin Resource Sharing settings per environment.
"""

import os
from dataclasses import dataclass, field, replace
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


@dataclass
class CORSConfig:
    """CORS configuration settings."""

    allowed_origins: List[str] = field(default_factory=list)

    # Browser clients send the auth-token cookie
    allow_credentials: bool = True

    allowed_methods: List[str] = field(default_factory=lambda: [
        "GET", "POST", "PUT", "DELETE", "OPTIONS"
    ])

    allowed_headers: List[str] = field(default_factory=lambda: [
        "Accept",
        "Accept-Language",
        "Content-Type",
        "Content-Language",
        "Authorization",
        "X-Request-ID",
    ])

    # Content-Disposition carries the export filename
    expose_headers: List[str] = field(default_factory=lambda: [
        "X-Request-ID",
        "Content-Disposition",
    ])

    # Seconds
    max_age: int = 3600


CORS_CONFIGS = {
    "development": CORSConfig(
        allowed_origins=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ],
    ),
    "staging": CORSConfig(
        allowed_origins=[
            "https://staging.shelfkeeper.example.com",
        ],
    ),
    "production": CORSConfig(
        allowed_origins=[
            "https://shelfkeeper.example.com",
            "https://app.shelfkeeper.example.com",
        ],
        max_age=7200,
    ),
}


def get_cors_config(environment: Optional[str] = None) -> CORSConfig:
    """
    Get CORS configuration for the environment.

    Origins listed in CORS_ALLOWED_ORIGINS (comma separated) are added.
    """
    if environment is None:
        environment = os.getenv("SHELFKEEPER_ENV", "development")

    base = CORS_CONFIGS.get(environment, CORS_CONFIGS["development"])
    config = replace(base, allowed_origins=list(base.allowed_origins))

    extra_origins = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if extra_origins:
        config.allowed_origins.extend(
            origin.strip() for origin in extra_origins.split(",") if origin.strip()
        )

    return config


def setup_cors(app: FastAPI, config: Optional[CORSConfig] = None) -> None:
    """
    Configure CORS middleware for the FastAPI application.

    Args:
        app: FastAPI application instance.
        config: CORS configuration. If None, loads from environment.
    """
    if config is None:
        config = get_cors_config()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=config.allow_credentials,
        allow_methods=config.allowed_methods,
        allow_headers=config.allowed_headers,
        expose_headers=config.expose_headers,
        max_age=config.max_age,
    )
