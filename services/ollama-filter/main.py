"""FastAPI Ollama filter: relays search queries to a local completion model.

Each query becomes one completion request; the returned choices come back
as embryos. Downstream failures give an empty embryo list, never an error.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from completion_client import CompletionClient
from config import read_emergence_conf, settings
from models import EmbryoList
from pipeline import QueryError, QueryPipeline
from registry import find_port, register_filter

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_pipeline: QueryPipeline | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the emergence config and open the completion client."""
    global _pipeline

    config_map = read_emergence_conf()
    client = CompletionClient()
    _pipeline = QueryPipeline(client, config_map)

    conf = _pipeline.resolved_config()
    logger.info("Relaying queries to %s (model=%s)", conf.url, conf.model)

    yield

    await client.aclose()
    _pipeline = None


app = FastAPI(title="Emergence Ollama Filter", version="1.0.0", lifespan=lifespan)


@app.post("/query", response_model=EmbryoList)
async def query(request: Request):
    """Answer a search query with embryos built from the model's completions."""
    body = await request.body()
    logger.info("Processing query: %d bytes", len(body))

    try:
        return await _pipeline.handle(body)
    except QueryError as e:
        logger.warning("Rejected query: %s", e)
        return JSONResponse(
            status_code=400,
            content={"detail": str(e)},
        )


@app.get("/health")
async def health():
    """Return service status and the completion endpoint in use."""
    conf = _pipeline.resolved_config()
    return {
        "status": "healthy",
        "ollama_url": conf.url,
        "ollama_model": conf.model,
    }


def run():
    """Allocate a port, register with the filter directory, then serve."""
    import uvicorn

    port = find_port()
    if port is None:
        logger.error("Can't start: no port available")
        raise SystemExit(1)

    filter_url = f"http://localhost:{port}/query"
    register_filter(filter_url)

    uvicorn.run(app, host=settings.HOST, port=port)


if __name__ == "__main__":
    run()
