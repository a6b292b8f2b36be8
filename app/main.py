from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.catalog.router import router as catalog_router
from app.api.v1.school_years.router import router as school_years_router
from app.api.v1.section_assignments.router import router as section_assignments_router
from app.api.v1.sections.router import router as sections_router
from app.api.v1.students.router import router as students_router
from app.core.config import settings
from app.core.logging import setup_logging


def create_app() -> FastAPI:
    setup_logging(environment=settings.environment, level_name=settings.log_level)

    app = FastAPI(title="School Portal Backend")

    # CORS: comma-separated origins, "*" for any
    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()] or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(school_years_router)
    app.include_router(catalog_router)
    app.include_router(sections_router)
    app.include_router(students_router)
    app.include_router(section_assignments_router)

    return app


app = create_app()
