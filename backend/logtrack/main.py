import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import requests
import uvicorn
from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from logtrack.config import Settings, settings
from logtrack.errors import LogAnalysisError
from logtrack.pipeline import analyze
from logtrack.schemas import (
    AISummaryRequest, AISummaryResponse, AnalysisResult, AnalyzeRequest,
    LogFormat, UploadResponse
)
from logtrack.ingestion.unknown import ExternalLogParser
from logtrack.utils.ai_summary import AISummaryGenerator
from logtrack.utils.cache import AnalysisCache
from logtrack.utils.llm_client import ChatCompletionClient

logger = logging.getLogger(__name__)

def configure_logging(config: Settings = settings) -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

def create_app(config: Settings = settings) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(config)
        yield

    app = FastAPI(
        title=config.APP_NAME,
        version=config.VERSION,
        description="Log parsing and anomaly detection service",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = config
    app.state.cache = AnalysisCache(config.CACHE_VERSION, config.CACHE_SIZE)

    def external_parser(enabled: bool) -> Optional[ExternalLogParser]:
        if not enabled:
            return None
        client = ChatCompletionClient.from_settings(config)
        return ExternalLogParser(client) if client else None

    def run_analysis(text: str, format_hint: Optional[LogFormat], use_external_parser: bool) -> AnalysisResult:
        hint = format_hint.value if format_hint else None
        parser = external_parser(use_external_parser)
        external = parser is not None

        cached = app.state.cache.get(text, hint, external)
        if cached is not None:
            logger.info("Serving cached analysis (%d events)", len(cached.events))
            return cached

        try:
            result = analyze(
                text,
                external_parser=parser,
                format_hint=format_hint,
                config=config
            )
        except LogAnalysisError as e:
            logger.info("Analysis rejected: %s", e)
            raise HTTPException(status_code=400, detail=e.to_dict())
        except Exception as e:
            logger.exception("Unexpected analysis failure")
            raise HTTPException(status_code=500, detail=f"Analysis error: {str(e)}")

        app.state.cache.put(text, result, hint, external)
        return result

    # ========== API ENDPOINTS ==========

    @app.get("/")
    async def root():
        return {
            "message": f"{config.APP_NAME} - Log Anomaly Detection",
            "version": config.VERSION,
            "status": "operational",
            "formats": [f.value for f in LogFormat if f != LogFormat.UNKNOWN],
            "endpoints": {
                "analyze": "POST /api/analyze",
                "upload": "POST /api/upload",
                "ai_summary": "POST /api/ai-summary",
                "health": "/health"
            }
        }

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "components": {
                "api": "operational",
                "external_parser": "configured" if config.OPENAI_API_KEY else "not_configured"
            },
            "cache": {
                "version": app.state.cache.version,
                "entries": len(app.state.cache)
            }
        }

    @app.post("/api/analyze", response_model=AnalysisResult)
    def analyze_logs(request: AnalyzeRequest):
        """Analyze raw log text posted as JSON"""
        logger.info("Analyzing %s", request.file_name or "inline content")
        return run_analysis(request.content, request.format_hint, request.use_external_parser)

    @app.post("/api/upload", response_model=UploadResponse)
    async def upload_log(
        file: UploadFile = File(...),
        log_type: Optional[LogFormat] = Form(None)
    ):
        """Upload and analyze a log file"""
        logger.info("Processing file: %s", file.filename)
        content = await file.read()
        text_content = content.decode('utf-8', errors='replace')

        result = await run_in_threadpool(run_analysis, text_content, log_type, True)

        return UploadResponse(
            filename=file.filename or "upload",
            log_type=result.detected_format,
            events_ingested=len(result.events),
            anomalies_found=len(result.anomalies),
            message=f"Parsed {len(result.events)} of {result.total_lines} lines as {result.detected_format.value}",
            result=result
        )

    @app.post("/api/ai-summary", response_model=AISummaryResponse)
    def ai_summary(request: AISummaryRequest):
        """Narrative security assessment of an analysis result"""
        client = ChatCompletionClient.from_settings(config)
        if client is None:
            raise HTTPException(status_code=400, detail="OpenAI API key not configured")

        try:
            summary = AISummaryGenerator(client).summarize(request.summary, request.anomalies)
        except (requests.RequestException, ValueError) as e:
            logger.warning("AI summary failed: %s", e)
            raise HTTPException(status_code=502, detail=f"AI summary failed: {str(e)}")

        return AISummaryResponse(summary=summary)

    return app

app = create_app()

# ========== MAIN ENTRY POINT ==========

if __name__ == "__main__":
    uvicorn.run(
        "logtrack.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
