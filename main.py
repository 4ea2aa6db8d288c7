"""
Main API module for the Affiliate Platform.

Responsibilities:
    - Expose REST endpoints for creating affiliate links and listing them with stats
    - Redirect `/go?code=...` to the link target and record the click out of band
    - Import conversion CSVs into per-affiliate running totals
    - Shared-password login for the dashboard

Architecture:
    - App Factory pattern (create_app) for test isolation and DI.
    - One storage backend per app, injected into every service; in-memory by
      default, PostgreSQL when configured.
    - Core errors are mapped to HTTP responses in one place (exception handlers).

LLM Prompt Example:
    "Explain how a FastAPI redirect endpoint can answer immediately while a
    background worker records the click, and why a failed write must never
    change the redirect."
"""

import contextlib
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from auth.schemas import LoginRequest, LoginResponse
from auth.service import verify_password
from affiliate_platform.analytics.aggregator import AnalyticsAggregator, parse_day
from affiliate_platform.analytics.click_recorder import ClickRecorder
from affiliate_platform.config import settings
from affiliate_platform.conversions.csv_reader import read_conversion_rows
from affiliate_platform.conversions.merger import ConversionMerger
from affiliate_platform.errors import AllocationExhausted, StorageError, ValidationError
from affiliate_platform.manager.link_store import LinkStore
from affiliate_platform.models import AffiliateLink
from affiliate_platform.storage.base import BaseStorage
from affiliate_platform.storage.storage_factory import get_storage


class LinkCreateRequest(BaseModel):
    """Request payload for creating a new affiliate link."""
    target_url: Optional[str] = None
    affiliate_id: Optional[str] = None


def _client_ip(request: Request) -> Optional[str]:
    """First X-Forwarded-For hop when behind a proxy, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def create_app(storage: Optional[BaseStorage] = None) -> FastAPI:
    """
    Factory function to build and configure a new FastAPI app instance.

    Args:
        storage: backend to use; chosen by `get_storage()` from the
            environment when omitted.

    Returns:
        FastAPI: application with its own storage, link store, click
        recorder, aggregator and conversion merger.
    """
    log = logging.getLogger("affiliate")
    if not logging.getLogger().handlers:
        logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO))

    # ----------------------------------------------------------------
    # Per-app instances (isolated for tests, swappable for production)
    # ----------------------------------------------------------------
    storage = storage if storage is not None else get_storage()
    link_store = LinkStore(storage)
    click_recorder = ClickRecorder(storage)
    aggregator = AnalyticsAggregator(storage)
    merger = ConversionMerger(storage)
    log.info("Affiliate storage backend: %s", type(storage).__name__)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        click_recorder.shutdown()
        storage.close()

    app = FastAPI(
        title="Affiliate Platform",
        description="Affiliate link shortener with click and conversion analytics",
        docs_url="/docs",
        lifespan=lifespan,
    )
    app.state.storage = storage
    app.state.link_store = link_store
    app.state.click_recorder = click_recorder
    app.state.aggregator = aggregator
    app.state.merger = merger

    # ----------------------------------------------------------------
    # Error mapping
    # ----------------------------------------------------------------
    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"success": False, "message": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        # Malformed payloads are client input errors, reported like ValidationError.
        errors = exc.errors()
        if errors:
            field = ".".join(str(p) for p in errors[0].get("loc", ()) if p != "body")
            detail = f"{field}: {errors[0].get('msg', 'invalid value')}" if field else errors[0].get("msg", "Invalid request")
        else:
            detail = "Invalid request"
        return JSONResponse(status_code=400, content={"success": False, "message": detail})

    @app.exception_handler(AllocationExhausted)
    async def _allocation_exhausted(request: Request, exc: AllocationExhausted):
        log.error("link creation failed: %s", exc)
        return JSONResponse(status_code=503, content={"success": False, "message": str(exc)})

    @app.exception_handler(StorageError)
    async def _storage_error(request: Request, exc: StorageError):
        log.error("storage failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"success": False, "message": "Internal Server Error"})

    def _link_payload(link: AffiliateLink) -> Dict[str, Any]:
        payload = link.to_dict()
        payload["full_link"] = link_store.full_link(link)
        return payload

    # Health check
    @app.get("/health")
    def health():
        return {"status": "ok"}

    # ----------------------------------------------------------------
    # Routes
    # ----------------------------------------------------------------
    @app.post("/api/links", status_code=201)
    def create_link(req: LinkCreateRequest) -> Dict[str, Any]:
        """
        Create an affiliate link with a freshly allocated code.

        Returns:
            dict: {"success": True, "link": {id, target_url, unique_code,
            affiliate_id, full_link}}
        """
        link = link_store.create(req.target_url, req.affiliate_id)
        return {"success": True, "link": _link_payload(link)}

    @app.get("/api/links")
    def list_links() -> List[Dict[str, Any]]:
        """Every link with today's (UTC) unique clicks and its affiliate's conversions."""
        today = datetime.now(timezone.utc).date()
        rows = []
        for link in link_store.list_all():
            try:
                stats = aggregator.link_stats(link, today)
            except StorageError as e:
                log.error("Error fetching analytics for link %s: %s", link.id, e)
                stats = {"unique_clicks": 0, "total_conversions": 0}
            row = _link_payload(link)
            row["unique_clicks_today"] = stats["unique_clicks"]
            row["total_conversions"] = stats["total_conversions"]
            rows.append(row)
        return rows

    @app.get("/api/links/{link_id}/stats")
    def link_stats(
        link_id: int,
        date: Optional[str] = Query(None, description="Calendar date YYYY-MM-DD (default: today, UTC)."),
    ) -> Dict[str, Any]:
        day = parse_day(date) if date else datetime.now(timezone.utc).date()
        link = link_store.get(link_id)
        if link is None:
            raise HTTPException(status_code=404, detail="Link not found")
        stats = aggregator.link_stats(link, day)
        return {"link_id": link.id, "date": day.isoformat(), **stats}

    @app.get("/go")
    def go(request: Request, code: Optional[str] = Query(None)) -> RedirectResponse:
        """
        Resolve a code and redirect.

        Found -> 302 to the target, then the click is handed to the recorder
        (the response never waits for it). NotFound -> 302 to the fallback.
        """
        link = link_store.resolve(code) if code else None
        if link is None:
            log.info("unknown code %r; redirecting to fallback", code)
            return RedirectResponse(url=f"{settings.ERROR_REDIRECT_URL}?error=invalid_code", status_code=302)

        response = RedirectResponse(url=link.target_url, status_code=302)
        click_recorder.record(link.id, _client_ip(request))
        return response

    @app.post("/api/login", response_model=LoginResponse)
    def login(req: LoginRequest):
        try:
            ok = verify_password(req.password)
        except RuntimeError as e:
            log.error("Authentication error: %s", e)
            return JSONResponse(status_code=500, content={"success": False, "message": f"Authentication error: {e}"})
        if not ok:
            return JSONResponse(status_code=401, content={"success": False, "message": "Invalid password"})
        return {"success": True, "message": "Login successful"}

    @app.post("/api/conversions/import")
    async def import_conversions(request: Request) -> Dict[str, Any]:
        """
        Merge a conversion CSV (request body, `affiliate_id,total_conversion`).

        Malformed rows are reported, never fatal. Re-importing a file adds
        its deltas again.
        """
        body = await request.body()
        try:
            text = body.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise ValidationError("Import file must be UTF-8 text")
        rows = read_conversion_rows(text)
        report = await run_in_threadpool(merger.merge_batch, rows)
        return {"success": True, **report.to_dict()}

    return app


# `uvicorn main:app --reload` and `from main import app` continue to work.
app = create_app()
