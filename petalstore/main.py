# petalstore/main.py
import uvicorn

from petalstore.api import create_app
from petalstore.data.database import Base, engine
from petalstore.utils.logging import configure_logging, get_logger

# every model has to be registered on Base before create_all
import petalstore.data.models  # noqa: F401

configure_logging()
logger = get_logger(__name__)

logger.info(f"Models registered in Base.metadata: {list(Base.metadata.tables.keys())}")

try:
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")
except Exception as e:
    logger.error(f"Failed to create tables: {e}")
    raise


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
