from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from boatresearch.api.deps import ResearchServices, build_services
from boatresearch.api.routes import research
from boatresearch.config import settings


def create_app(services: ResearchServices | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services()
        yield
        # Shutdown
        await app.state.services.close()

    app = FastAPI(
        title="Boat Research",
        description="Listing research orchestration with human-in-the-loop selection",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    app.include_router(research.router)

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "service": "boatresearch"}

    return app


app = create_app()
