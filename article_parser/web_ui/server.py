#!/usr/bin/env python3
"""
FastAPI web server for article-parser.

Exposes the parser as a small JSON API: parse an article from a URL (or
supplied HTML), list the site rulesets, and report ruleset cache health.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from .. import __version__
from ..config import Config
from ..parser import ArticleParser


class ParseRequest(BaseModel):
    """Request model for article parsing."""
    url: str
    html: Optional[str] = None
    content_type: Optional[str] = None
    fetch_all_pages: Optional[bool] = None


class ParseResponse(BaseModel):
    """Response model for parse results."""
    success: bool
    message: str
    article: Optional[Dict[str, Any]] = None
    extractor: Optional[str] = None
    processing_time: Optional[float] = None


class ExtractorInfo(BaseModel):
    domain: str
    supported_domains: List[str]
    extended_fields: List[str]


def create_app(config: Optional[Config] = None, parser: Optional[ArticleParser] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application configuration
        parser: Parser to serve (one is created from ``config`` if None and
            closed when the app shuts down)

    Returns:
        Configured FastAPI application
    """
    if config is None:
        from ..config import get_config
        config = get_config()

    owns_parser = parser is None
    parser = parser or ArticleParser(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_parser:
            parser.close()

    app = FastAPI(
        title="article-parser API",
        description="Extract structured article data from web pages",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.parser = parser

    @app.post("/api/parse", response_model=ParseResponse)
    async def parse_article(request: ParseRequest):
        """Parse a single article."""
        start_time = time.time()

        result = await run_in_threadpool(
            parser.extract,
            request.url,
            request.html,
            content_type=request.content_type,
            fetch_all_pages=request.fetch_all_pages,
        )

        if result.failed:
            raise HTTPException(status_code=400, detail=f"Failed to parse article: {result.error_message}")

        return ParseResponse(
            success=True,
            message="Article parsed successfully",
            article=result.article.to_dict(),
            extractor=result.extractor_used,
            processing_time=time.time() - start_time,
        )

    @app.get("/api/extractors", response_model=List[ExtractorInfo])
    async def list_extractors():
        """List site-specific rulesets."""
        return [
            ExtractorInfo(
                domain=ruleset.domain,
                supported_domains=list(ruleset.supported_domains),
                extended_fields=list(ruleset.extend),
            )
            for ruleset in parser.registry.rulesets()
        ]

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint with ruleset cache statistics."""
        metrics = parser.loader_metrics()
        return {
            "status": "healthy",
            "version": __version__,
            "cache": parser.cache_stats(),
            "loader": {
                "cache_hits": metrics.cache_hits,
                "cache_misses": metrics.cache_misses,
                "load_successes": metrics.load_successes,
                "load_failures": metrics.load_failures,
                "eviction_count": metrics.eviction_count,
                "average_load_time": metrics.average_load_time,
            },
            "timestamp": time.time(),
        }

    return app
