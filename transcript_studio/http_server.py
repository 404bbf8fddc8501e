import logging
from typing import Dict, Any, Optional

import uvicorn
from fastapi import FastAPI, Body, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from .errors import (
    StudioError, AssetNotFoundError, TranscriptNotFoundError,
    CloudNotConfiguredError, InvalidScreenshotError,
)
from .service import StudioService

logger = logging.getLogger("transcript_studio")


class RefineRequest(BaseModel):
    instruction: Optional[str] = Field(None, description="Rewrite instruction for the model")


class ScreenshotRequest(BaseModel):
    imageBase64: Optional[str] = Field(None, description="PNG as base64 or data URL")
    time: float = Field(..., ge=0, description="Playback time in seconds")


def status_code_for(error: Exception) -> int:
    if isinstance(error, (AssetNotFoundError, TranscriptNotFoundError)):
        return 404
    if isinstance(error, (CloudNotConfiguredError, InvalidScreenshotError)):
        return 400
    return 500


class StudioHttpServer:
    def __init__(self, service: StudioService):
        self.service = service
        self.app = FastAPI(title="Transcript Studio API")
        self.setup_error_handlers()
        self.setup_routes()

    def setup_error_handlers(self):
        """Map studio errors to {"error": message} responses"""

        @self.app.exception_handler(StudioError)
        async def studio_error(_request: Request, exc: StudioError):
            status = status_code_for(exc)
            if status >= 500:
                logger.error(f"Request failed: {exc}")
            return JSONResponse(status_code=status, content={"error": str(exc)})

        @self.app.exception_handler(Exception)
        async def unexpected_error(_request: Request, exc: Exception):
            logger.error(f"Unhandled error: {exc}")
            return JSONResponse(status_code=500, content={"error": str(exc)})

    def setup_routes(self):
        """Setup API routes"""
        service = self.service

        @self.app.get("/healthz")
        def health_check():
            return {"ok": True, "status": "healthy"}

        @self.app.get("/api/videos")
        def list_videos():
            return [asset.to_dict() for asset in service.list_assets()]

        @self.app.post("/api/process/{asset_id}")
        def process_video(asset_id: str):
            result = service.process(asset_id)
            return {"ok": True, "stages": result.stages_completed, "metrics": result.metrics}

        @self.app.get("/api/text/{asset_id}")
        def get_text(asset_id: str):
            return service.get_transcript(asset_id).to_dict()

        @self.app.get("/api/text/{asset_id}/srt", response_class=PlainTextResponse)
        def get_srt(asset_id: str):
            return service.export_srt(asset_id)

        @self.app.put("/api/text/{asset_id}")
        def put_text(asset_id: str, payload: Dict[str, Any] = Body(...)):
            service.save_transcript(asset_id, payload)
            return {"ok": True}

        @self.app.post("/api/refine/{asset_id}")
        def refine_text(asset_id: str, request: RefineRequest):
            return service.refine(asset_id, request.instruction).to_dict()

        @self.app.post("/api/screenshot/{asset_id}")
        def screenshot(asset_id: str, request: ScreenshotRequest):
            url = service.capture_screenshot(asset_id, request.imageBase64 or "", request.time)
            return {"ok": True, "url": url}

        @self.app.get("/api/history")
        def get_history():
            return [event.to_dict() for event in service.history()]

        @self.app.delete("/api/history/{event_id}")
        def delete_history_event(event_id: str):
            return {"ok": True, "deleted": service.delete_history_event(event_id)}

        @self.app.delete("/api/history")
        def clear_history():
            service.clear_history()
            return {"ok": True}

        @self.app.get("/stats")
        def get_stats():
            return service.get_stats()

    def run(self):
        """Serve the API (blocking)"""
        logger.info(f"HTTP server starting on http://{self.service.config.HTTP_HOST}:{self.service.config.HTTP_PORT}")
        uvicorn.run(
            self.app,
            host=self.service.config.HTTP_HOST,
            port=self.service.config.HTTP_PORT,
            log_level="warning",  # Reduce uvicorn logging
            access_log=False
        )


def create_app(service: StudioService) -> FastAPI:
    return StudioHttpServer(service).app
