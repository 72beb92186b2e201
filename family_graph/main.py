from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from family_graph.core.config import settings
from family_graph.core.errors import (
    ConflictError,
    GraphError,
    InvalidArgumentError,
    NotFoundError,
    StoreFailureError,
    TraversalTimeoutError,
)
from family_graph.core.logging import configure_logging, get_logger
from family_graph.db.neo4j import connect_to_neo4j, close_neo4j
from family_graph.routers import graph, merge

configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_to_neo4j()
    yield
    await close_neo4j()

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan, docs_url="/")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (InvalidArgumentError, 400),
    (ConflictError, 409),
    (StoreFailureError, 503),
    (TraversalTimeoutError, 504),
)

@app.exception_handler(GraphError)
async def graph_error_handler(request: Request, exc: GraphError):
    status_code = next((code for cls, code in STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    if status_code >= 500:
        logger.warning("request_failed", path=request.url.path, error=type(exc).__name__, detail=str(exc))
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})

# Routers
app.include_router(graph.router)
app.include_router(merge.router)

@app.get("/healthz")
async def healthz():
    return {"status": "ok"}

@app.get("/version")
async def version():
    return {"name": settings.APP_NAME, "env": settings.APP_ENV}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "family_graph.main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        reload=True,
    )
