"""Dropcart Dispatch FastAPI application.

Web server that processes lifecycle commands synchronously via HTTP. Every
request runs inside the dispatch domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - default      → event_processing = "sync"  (handlers and projectors fire in UoW)
#   - "production" → event_processing = "async" (handlers and projectors fire via Engine)
from dispatch.domain import dispatch  # noqa: E402
from dispatch.utils.logging import add_context, bind_actor, clear_context
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

dispatch.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Dropcart Dispatch API",
    description="Order lifecycle across customers, vendors and delivery partners",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the dispatch domain context and tag log lines with the caller."""
    clear_context()
    add_context(method=request.method, path=request.url.path)
    role = request.headers.get("x-actor-role")
    if role:
        bind_actor(role, request.headers.get("x-actor-id"))
    with dispatch.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from dispatch.api.errors import register_error_handlers  # noqa: E402
from dispatch.api.routes import routers  # noqa: E402

for router in routers:
    app.include_router(router)

register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": dispatch.name})
