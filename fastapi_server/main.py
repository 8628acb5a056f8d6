from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from teamplanner.config import CORS_ORIGINS
from teamplanner.database import create_db_and_tables
from teamplanner.errors import (
    AccessCodeRequired,
    CalendarFetchError,
    EntityNotFound,
    InvalidRequest,
    TeamNotFound,
)
from teamplanner.logging_setup import setup_logging
from teamplanner.routers import sessions, teams


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    create_db_and_tables()
    yield


app = FastAPI(title="Team Planner API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TeamNotFound)
async def team_not_found_handler(request: Request, exc: TeamNotFound):
    return JSONResponse(
        status_code=404,
        content={"error": "TeamNotFound", "team_id": exc.team_id, "detail": str(exc)},
    )


@app.exception_handler(AccessCodeRequired)
async def access_code_required_handler(request: Request, exc: AccessCodeRequired):
    # The client uses team_id to show the access-code prompt
    return JSONResponse(
        status_code=401,
        content={"error": "AccessCodeRequired", "team_id": exc.team_id, "detail": str(exc)},
    )


@app.exception_handler(EntityNotFound)
async def entity_not_found_handler(request: Request, exc: EntityNotFound):
    return JSONResponse(
        status_code=404,
        content={"error": "EntityNotFound", "kind": exc.kind, "id": exc.entity_id, "detail": str(exc)},
    )


@app.exception_handler(InvalidRequest)
async def invalid_request_handler(request: Request, exc: InvalidRequest):
    return JSONResponse(status_code=422, content={"error": "InvalidRequest", "detail": exc.message})


@app.exception_handler(CalendarFetchError)
async def calendar_fetch_error_handler(request: Request, exc: CalendarFetchError):
    return JSONResponse(status_code=502, content={"error": "CalendarFetchError", "detail": str(exc)})


# Include routers
app.include_router(teams.router)
app.include_router(sessions.router)


@app.get("/api/health")
def health():
    return {"status": "ok"}
