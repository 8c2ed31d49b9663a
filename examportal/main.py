"""
FastAPI server for the exam portal
Timed exam sessions, exact-match grading and submission review
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from examportal.api import router as api_router, get_session_manager
from examportal.core.database import init_db
from examportal.core.middleware import LoggingMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield
    # Live attempts are not submitted on shutdown, only their clocks are stopped
    get_session_manager().shutdown()


app = FastAPI(
    title="Exam Portal",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(LoggingMiddleware)

# CORS middleware for frontend communication
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn
    print("=" * 50)
    print("Starting server...")
    print(f"Registered routes: {[route.path for route in app.routes]}")
    print("=" * 50)
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
