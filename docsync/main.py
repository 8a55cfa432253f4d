from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from docsync.api.documents import router as documents_router
from docsync.api.functions import router as functions_router
from docsync.core.middleware import workflow_context_middleware
from docsync.ingestion import manager as ingestion_manager
from dotenv import load_dotenv
from datetime import datetime, timezone
import logging
import os


load_dotenv()
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await ingestion_manager.stop_manager()
    logging.info("Server shutdown complete")

app = FastAPI(title="Workshop Document Sync", lifespan=lifespan)
ALLOWED_ORIGINS = [
    origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:8080").split(",")
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "x-team-id",
        "x-user-id",
    ],
)
app.middleware("http")(workflow_context_middleware)
app.include_router(documents_router, prefix="/api", tags=["documents"])
app.include_router(functions_router, prefix="/functions", tags=["functions"])

@app.get("/")
async def root():
    return {"message": "Workshop Document Sync API is running"}

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


if __name__ == "__main__":
    import uvicorn
    try:
        uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8001")))
    except KeyboardInterrupt:
        logging.info("FastAPI server interrupted")
