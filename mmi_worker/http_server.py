import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
import uvicorn

from .adapters.base import JobStoreAdapter
from .dispatcher import JobDispatcher
from .errors import DispatcherBusyError, JobAlreadyDispatchedError

logger = logging.getLogger("mmi_worker")


class DispatchServer:
    def __init__(self, dispatcher: JobDispatcher, store: JobStoreAdapter,
                 host: str = "0.0.0.0", port: int = 4000,
                 extra_stats: Optional[Dict[str, Any]] = None):
        self.dispatcher = dispatcher
        self.store = store
        self.host = host
        self.port = port
        self.extra_stats = extra_stats or {}
        self.app = FastAPI(title="MMI Assessment Worker")
        self.setup_routes()

    def setup_routes(self):
        """Setup API routes"""

        @self.app.post("/analyze")
        async def analyze(request: Request):
            """Accept a job id and process it in the background"""
            try:
                body = await request.json()
            except ValueError:
                body = None

            job_id = body.get("job_id") if isinstance(body, dict) else None
            if not job_id:
                return JSONResponse(status_code=400, content={"error": "Missing job_id"})

            job_id = str(job_id)
            try:
                self.dispatcher.submit(job_id)
            except JobAlreadyDispatchedError as e:
                logger.warning(str(e))
                return JSONResponse(status_code=409, content={"error": str(e)})
            except DispatcherBusyError as e:
                logger.warning(f"Rejected job {job_id}: {e}")
                return JSONResponse(status_code=503, content={"error": str(e)})

            return {"success": True}

        @self.app.get("/healthz")
        async def health_check():
            """Health check endpoint"""
            try:
                self.store.ping()
                return {"ok": True, "status": "healthy"}
            except Exception as e:
                logger.error(f"Health check failed: {str(e)}")
                raise HTTPException(status_code=503, detail=f"Record store unreachable: {str(e)}")

        @self.app.get("/stats")
        async def get_stats():
            """Get worker statistics"""
            return {
                "dispatcher": self.dispatcher.get_stats(),
                "jobs": self.dispatcher.state_machine.get_stats(),
                **self.extra_stats
            }

    def run(self):
        """Serve until the process is stopped"""
        logger.info(f"Dispatch server listening on {self.host}:{self.port}")
        uvicorn.run(
            self.app,
            host=self.host,
            port=self.port,
            log_level="warning",  # Reduce uvicorn logging
            access_log=False
        )
