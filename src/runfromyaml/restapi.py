from __future__ import annotations

import io
import secrets
from typing import Callable, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pydantic import BaseModel

from .config import Settings
from .document import collect_errors
from .engine import Executor, RunReport, execute
from .errors import RunFromYAMLError
from .model import OutputType
from .ui.console import get_console

# -------------------- Schemas --------------------

class ValidateResponse(BaseModel):
    valid: bool
    errors: list[str]

class HealthResponse(BaseModel):
    ok: bool

# -------------------- App --------------------

def create_app(
    settings: Optional[Settings] = None,
    executor_factory: Optional[Callable[[], Executor]] = None,
) -> FastAPI:
    settings = settings or Settings()
    app = FastAPI(title="runfromyaml")
    app.state.settings = settings

    security = HTTPBasic(auto_error=not settings.no_auth)
    password = settings.password
    if not settings.no_auth and not password:
        password = secrets.token_urlsafe(16)
        get_console().print_info(f"REST credentials: user={settings.user} password={password}")

    def authorize(credentials: Optional[HTTPBasicCredentials] = Depends(security)) -> None:
        if settings.no_auth:
            return
        ok = credentials is not None and (
            secrets.compare_digest(credentials.username.encode(), settings.user.encode())
            and secrets.compare_digest(credentials.password.encode(), password.encode())
        )
        if not ok:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized",
                headers={"WWW-Authenticate": "Basic"},
            )

    def run_document(body: bytes, buf: io.StringIO) -> RunReport:
        executor = executor_factory() if executor_factory else None
        # the buffer is only used when the output resolves to rest
        return execute(
            body,
            settings.debug,
            output=OutputType.REST if settings.restout else None,
            stream=buf,
            executor=executor,
        )

    # -------------------- Endpoints --------------------

    @app.post("/", dependencies=[Depends(authorize)])
    async def run(request: Request):
        body = await request.body()
        buf = io.StringIO()
        try:
            report = await run_in_threadpool(run_document, body, buf)
        except RunFromYAMLError as e:
            raise HTTPException(status_code=400, detail=str(e))

        headers = {"X-Runfromyaml-Failed": str(len(report.failed))}
        return Response(content=buf.getvalue(), media_type="application/json", headers=headers)

    @app.post("/validate", response_model=ValidateResponse, dependencies=[Depends(authorize)])
    async def validate(request: Request):
        errors = collect_errors(await request.body())
        return ValidateResponse(valid=not errors, errors=errors)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(ok=True)

    return app


def serve(settings: Settings) -> None:
    import uvicorn

    app = create_app(settings)
    get_console().print_info(f"Listening on http://{settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="debug" if settings.debug else "info")
