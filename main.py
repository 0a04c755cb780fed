import os
import uuid
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from backend.utils.errors import CompositeError
from backend.utils.normalize_body import get_policy
from backend.utils.pipeline import CompositePipeline, CompositeResult

# ---------- CONFIG ----------

PORT = int(os.getenv("PORT", "3000"))

# Max JSON request body (default 50mb)
MAX_BODY_MB = int(os.getenv("COMPOSITOR_MAX_BODY_MB", "50"))
MAX_BODY_BYTES = MAX_BODY_MB * 1024 * 1024

# "resize" (cover-fit any AI image) or "extract" (cut rows 200-1149 out of a 1080x1350 AI image)
BODY_POLICY = os.getenv("COMPOSITOR_BODY_POLICY", "resize").strip().lower()

WORKERS = int(os.getenv("COMPOSITOR_WORKERS", "4"))

LOG_LEVEL = os.getenv("COMPOSITOR_LOG_LEVEL", "INFO").strip().upper()

structlog.configure(
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(LOG_LEVEL)
    ),
)

log = structlog.get_logger()

# Fails at import on an unknown policy name.
pipeline = CompositePipeline(get_policy(BODY_POLICY))

# Thread pool for CPU-bound Pillow work
_pool = ThreadPoolExecutor(max_workers=WORKERS)


# ---------- BODY SIZE LIMIT ----------

class BodySizeLimitMiddleware:
    """
    Rejects request bodies larger than MAX_BODY_BYTES with 413.

    Checks Content-Length up front, then counts the bytes actually received
    so chunked bodies without a length header are capped too. The buffered
    body is replayed to the app.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        limit = MAX_BODY_BYTES
        length = dict(scope.get("headers") or ()).get(b"content-length", b"")
        if length.isdigit() and int(length) > limit:
            await _too_large(scope, receive, send, int(length))
            return

        chunks = []
        received = 0
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            chunk = message.get("body", b"")
            received += len(chunk)
            if received > limit:
                await _too_large(scope, receive, send, received)
                return
            chunks.append(chunk)
            more_body = message.get("more_body", False)

        body = b"".join(chunks)
        replayed = False

        async def replay():
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)


async def _too_large(scope, receive, send, size: int) -> None:
    log.warning("request_too_large", size=size, limit=MAX_BODY_BYTES)
    response = JSONResponse(status_code=413, content={"error": "Request body too large"})
    await response(scope, receive, send)


# ---------- FASTAPI APP ----------

app = FastAPI(title="template-compositor")
# added first so CORS wraps the 413 responses too
app.add_middleware(BodySizeLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- MODELS ----------

class StatusResponse(BaseModel):
    status: str


class CompositeRequest(BaseModel):
    # base64-encoded PNG/JPEG; whitespace and line breaks are ignored
    aiImage: Optional[str] = None
    headerTemplate: Optional[str] = None
    footerTemplate: Optional[str] = None


class CompositeResponse(BaseModel):
    success: bool = True
    image: str  # base64-encoded PNG, 1080x1350


def error_response(error: CompositeError) -> JSONResponse:
    if error.client_error:
        return JSONResponse(status_code=error.status_code, content={"error": error.message})
    return JSONResponse(
        status_code=error.status_code,
        content={"success": False, "error": error.message},
    )


# ---------- HANDLERS ----------

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    message = "Invalid request body"
    if parts:
        message += ": " + "; ".join(parts)
    log.warning("request_invalid", err=message)
    return JSONResponse(status_code=400, content={"error": message})


async def _process(req: CompositeRequest, request_id: str) -> CompositeResult:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        _pool,
        pipeline.run,
        req.aiImage,
        req.headerTemplate,
        req.footerTemplate,
        request_id,
    )


# ---------- ROUTES ----------

@app.get("/", response_model=StatusResponse)
async def read_root():
    return StatusResponse(status="Image Compositor API is running!")


@app.get("/health", response_model=StatusResponse)
async def health_check():
    return StatusResponse(status="ok")


@app.post("/composite", response_model=CompositeResponse)
async def composite(req: CompositeRequest, raw: Request):
    """
    Inputs:
      aiImage, headerTemplate, footerTemplate (base64)
    Returns:
      { "success": true, "image": <base64 PNG 1080x1350> }
    """
    request_id = raw.headers.get("X-Request-ID", str(uuid.uuid4()))
    log.info("request_received", request_id=request_id, policy=pipeline.policy.name)

    result = await _process(req, request_id)
    if not result.ok:
        return error_response(result.error)

    log.info("response_ready", request_id=request_id)
    return CompositeResponse(image=result.image)


if __name__ == "__main__":
    import uvicorn

    log.info("server_starting", port=PORT, policy=BODY_POLICY, workers=WORKERS)
    uvicorn.run(app, host="0.0.0.0", port=PORT)
