"""
FastAPI app exposing the handlers.

    uvicorn ea_assistant.api:app --reload
"""

from __future__ import annotations

import logging
import os

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from ea_assistant import __version__
from ea_assistant.config import get_settings
from ea_assistant.handlers import (
    HandlerResponse,
    handle_analysis,
    handle_ea_api,
    handle_speed_test,
)

logger = logging.getLogger(__name__)

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

app = FastAPI(title="Enterprise Architecture Assistant", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _to_response(result: HandlerResponse) -> Response:
    if result.body is None:
        return Response(status_code=result.status_code, headers=result.headers)
    return JSONResponse(result.body, status_code=result.status_code, headers=result.headers)


@app.get("/health")
def health_check():
    return {"status": "ok", "version": __version__, "services": get_settings().capabilities()}


@app.api_route("/api/ea-api", methods=ALL_METHODS)
async def ea_api(request: Request):
    body = await request.body()
    return _to_response(await run_in_threadpool(handle_ea_api, request.method, body))


@app.api_route("/api/speed-test/{provider}", methods=ALL_METHODS)
async def speed_test(provider: str, request: Request):
    body = await request.body()
    return _to_response(await run_in_threadpool(handle_speed_test, provider, request.method, body))


@app.api_route("/api/{module}", methods=ALL_METHODS)
async def analysis(module: str, request: Request):
    body = await request.body()
    return _to_response(await run_in_threadpool(handle_analysis, module, request.method, body))


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(
        "ea_assistant.api:app",
        host=os.getenv("EA_HOST", "127.0.0.1"),
        port=int(os.getenv("EA_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
