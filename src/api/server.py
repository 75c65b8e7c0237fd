#!/usr/bin/env python
"""FastAPI server exposing the media source resolver to host players."""

import sys
from contextlib import asynccontextmanager
from pathlib import Path

# Add src directory to Python path for imports
src_dir = Path(__file__).parent.parent
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import close_media_source_resolver
from api.routers import core, media_sources
from utils.config import load_config, validate_config
from utils.logging import get_logger, setup_logging

config = load_config()
setup_logging(config["log_level"], json_output=config["log_json"])
logger = get_logger(__name__)

for problem in validate_config(config):
    logger.warning("config_problem", problem=problem)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info(
        "startup",
        bridge=config["bridge_base_url"],
        policy=config["format_policy"],
    )
    yield
    await close_media_source_resolver()


app = FastAPI(title="tubesource API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(core.router)
app.include_router(media_sources.router)


def main() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=config["api_host"], port=config["api_port"])


if __name__ == "__main__":
    main()
