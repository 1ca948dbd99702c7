import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from .routers import auth, books, profile
from .config import settings
from .database import engine, Base
from .errors import register_exception_handlers
from .uploads import init_storage
from .utils.logging import get_logger

logger = get_logger()


def create_app() -> FastAPI:
    # Upload tree must exist before StaticFiles checks its directory
    init_storage()
    Base.metadata.create_all(bind=engine)

    app = FastAPI(title="Book Publish Platform")

    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

    # Include Routers
    app.include_router(auth.router)
    app.include_router(books.router)
    app.include_router(profile.router)

    register_exception_handlers(app)
    logger.info("Upload directory: %s", settings.UPLOAD_DIR)
    return app


app = create_app()

if __name__ == "__main__":
    logger.info("Starting server at http://127.0.0.1:8123")
    uvicorn.run(app, host="127.0.0.1", port=8123)
