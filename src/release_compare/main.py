"""FastAPI application exposing release comparisons as JSON.

Routes:
- GET /health - Health check for load balancers and monitoring
- GET /versions - Published versions and the default base/compare pair
- GET /compare - Release summaries, dependency diff and release notes
- GET /compare/pull-requests - PRs merged for one dependency between releases
- GET /release-notes/{version} - Release notes for one version

One ReleaseComparer is created at startup, so the snapshot cache lives
exactly as long as the process.

To run locally:
    uvicorn release_compare.main:app --reload --port 8000

Then visit http://localhost:8000/docs for the interactive API docs.
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from release_compare import __version__
from release_compare.comparison import ReleaseComparer
from release_compare.config import load_config
from release_compare.exceptions import FetchFailure
from release_compare.logging_config import get_logger, setup_logging
from release_compare.schemas import ComparisonReport, PullRequestView, ReleaseNote

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Application Lifespan (startup/shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the comparer (and with it the session cache) once at startup."""
    config = load_config()
    setup_logging(package=config.package_name)
    app.state.comparer = ReleaseComparer(config=config)
    logger.info("service_started", registry=config.registry_url)
    yield


# ---------------------------------------------------------------------------
# FastAPI App
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Release Compare",
    description="Compare dependencies, merged pull requests and release notes "
    "between two published CLI releases",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class TimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        start = time.time()
        with structlog.contextvars.bound_contextvars(
            method=request.method, path=request.url.path
        ):
            response = await call_next(request)
            duration = time.time() - start
            response.headers["X-Process-Time"] = f"{duration:.2f}s"
            logger.info(
                "request_handled",
                status_code=response.status_code,
                duration=round(duration, 3),
            )
        return response


app.add_middleware(TimingMiddleware)


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


@app.exception_handler(FetchFailure)
async def fetch_failure_handler(request: Request, exc: FetchFailure) -> JSONResponse:
    """Registry or release notes failures surface as 502 Bad Gateway."""
    logger.error("upstream_error", url=exc.url, error=str(exc))
    return JSONResponse(
        status_code=502,
        content={"error": "upstream_error", "detail": str(exc)},
    )


@app.exception_handler(httpx.HTTPError)
async def search_error_handler(request: Request, exc: httpx.HTTPError) -> JSONResponse:
    """Errors from the pull request search propagate as raw httpx errors."""
    logger.error("search_error", error=str(exc))
    return JSONResponse(
        status_code=502,
        content={"error": "search_error", "detail": str(exc)},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"error": "validation_error", "detail": str(exc)},
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def _comparer(request: Request) -> ReleaseComparer:
    return request.app.state.comparer


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}


@app.get("/versions")
async def list_versions(request: Request) -> dict[str, Any]:
    """Published versions (newest first), dist-tags and the default pair."""
    index = await _comparer(request).load_index()
    base, compare = index.default_selection()
    return {
        "name": index.name,
        "versions": index.versions,
        "dist_tags": index.dist_tags,
        "default_base": base,
        "default_compare": compare,
    }


@app.get("/compare", response_model=ComparisonReport)
async def compare_releases(
    request: Request,
    base: str | None = None,
    compare: str | None = None,
) -> ComparisonReport:
    """Compare two releases; missing versions fall back to the default pair."""
    comparer = _comparer(request)
    if base is None or compare is None:
        index = await comparer.load_index()
        default_base, default_compare = index.default_selection()
        base = base or default_base
        compare = compare or default_compare
    return await comparer.compare(base, compare)


@app.get("/compare/pull-requests", response_model=PullRequestView)
async def compare_pull_requests(
    request: Request,
    package: str,
    base: str,
    compare: str,
    hide_author: list[str] | None = Query(default=None),
) -> PullRequestView:
    """Pull requests merged into ``package``'s repository between releases."""
    return await _comparer(request).pull_requests(
        package, base, compare, hidden_authors=hide_author or ()
    )


@app.get("/release-notes/{version}", response_model=ReleaseNote)
async def release_notes(version: str, request: Request) -> ReleaseNote:
    return await _comparer(request).release_note(version)
