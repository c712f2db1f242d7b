"""FastAPI integration.

`ExperimentMiddleware` runs the engine once per request, exposes the result
as `request.state.exp` and forwards any cookie the engine wrote as a
`Set-Cookie` header. Route handlers read it with `Depends(get_assignment)`.

Usage:
    python -m src.ab.web
    AB_EXPERIMENTS_FILE=experiments.json python -m src.ab.web
"""

from typing import Sequence

import uvicorn
from fastapi import Depends, FastAPI, Request
from starlette import status
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from src.ab.catalog import load_catalog_file
from src.ab.config import AssignmentSettings
from src.ab.cookies import HeaderCookieStore, RequestContext
from src.ab.engine import AssignmentEngine
from src.ab.experiment import Experiment
from src.ab.schemas import Assignment


class ExperimentMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, engine: AssignmentEngine):
        super().__init__(app)
        self.engine = engine

    async def dispatch(self, request: Request, call_next):
        cookies = HeaderCookieStore(request.headers.get("cookie"))
        context = RequestContext(cookies=cookies, is_server=True, request=request)
        # The remote catalog fetch blocks, keep it off the event loop
        request.state.exp = await run_in_threadpool(self.engine.run, context)

        response = await call_next(request)
        for header in cookies.set_cookie_headers:
            response.headers.append("set-cookie", header)
        return response


def get_assignment(request: Request) -> Assignment:
    return request.state.exp


def create_app(
    settings: AssignmentSettings | None = None,
    experiments: Sequence[Experiment] | None = None,
    engine: AssignmentEngine | None = None,
) -> FastAPI:
    if engine is None:
        settings = settings or AssignmentSettings()
        if experiments is None:
            experiments = load_catalog_file(settings.experiments_file) if settings.experiments_file else []
        engine = AssignmentEngine(settings, experiments)

    app = FastAPI(
        title="A/B experiment assignment",
        description="Cookie-persisted experiment and variant assignment",
        version="0.1.0",
    )
    app.add_middleware(ExperimentMiddleware, engine=engine)

    @app.get(
        "/experiment",
        response_model=Assignment,
        status_code=status.HTTP_200_OK,
        summary="Get the current visitor's assignment",
    )
    def get_experiment(assignment: Assignment = Depends(get_assignment)):
        return assignment

    return app


if __name__ == "__main__":
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
