from prometheus_fastapi_instrumentator import Instrumentator

from buildtrack import models  # noqa: F401
from buildtrack.app import create_app
from buildtrack.core.config import settings
from buildtrack.core.logging import setup_logging
from buildtrack.db.session import Base, engine

setup_logging()
app = create_app()
Instrumentator().instrument(app).expose(app)


@app.on_event("startup")
async def _create_tables() -> None:
    Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("buildtrack.main:app", host=settings.HOST, port=settings.PORT)
