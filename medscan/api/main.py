import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from medscan.api.routes import router
from medscan.config import ServiceSettings, load_analyzer_config
from medscan.inference.errors import DecodeError
from medscan.inference.pipeline import ScanAnalyzer

logger = logging.getLogger(__name__)


def create_app(settings: Optional[ServiceSettings] = None, analyzer: Optional[ScanAnalyzer] = None) -> FastAPI:
    settings = settings or ServiceSettings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="MedScan Heuristic Analyzer API", version="0.1.0")
    app.state.settings = settings
    app.state.analyzer = analyzer or ScanAnalyzer(
        config=load_analyzer_config(settings.config_path),
        seed=settings.seed,
        decode_timeout_s=settings.decode_timeout_s,
    )

    @app.exception_handler(DecodeError)
    async def decode_error_handler(request: Request, exc: DecodeError):
        return JSONResponse(
            status_code=422,
            content={
                "status": "error",
                "result": {
                    "error": str(exc),
                    "message": "Failed to analyze the uploaded file. Please try again with a valid medical scan.",
                },
            },
        )

    # Surface unexpected failures to the frontend in the same envelope
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(status_code=500, content={"status": "error", "result": {"error": str(exc)}})

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    # Debug route to list available endpoints
    @app.get("/debug/routes")
    async def list_routes():
        return {
            "routes": [
                {"path": r.path, "methods": list(getattr(r, "methods", None) or [])}
                for r in app.router.routes
                if hasattr(r, "path")
            ]
        }

    return app


load_dotenv()
app = create_app()
