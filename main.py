import os
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from routers.intake import router as intake_router
from routers.documents import router as documents_router
from routers.datasets import router as datasets_router
from store.document_store import DocumentStore
from store.persistence import SnapshotFile
from tasks.extraction import SimulatedExtractor
from utils.logging_config import init_logging, install_request_logging
from utils.exception_handlers import install_exception_handlers

app = FastAPI(
    title="Lease Intake API",
    description="Upload lease PDFs, review the extracted fields, group documents into datasets and export them.",
    version="1.0.0"
)

# Initialize logging and request middleware
init_logging()
install_request_logging(app)
install_exception_handlers(app)

# One store per process, rehydrated from the snapshot in STATE_DIR
app.state.store = DocumentStore(SnapshotFile())
app.state.extractor = SimulatedExtractor.from_env()

app.include_router(intake_router)
app.include_router(documents_router)
app.include_router(datasets_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def read_root():
    return {"message": "Welcome to the Lease Intake API"}
