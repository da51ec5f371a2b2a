# main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from orderflow.routers import api_router
from orderflow.core.db import init_models
from orderflow.core.exceptions import AppError, app_error_handler
from orderflow.core.logging_config import setup_logging
from orderflow.middleware.request_logger import RequestLoggerMiddleware

setup_logging()

app = FastAPI(
    title="Order Flow API",
    description="FastAPI backend for order routing between admins, manufacturers and clients",
    version="0.1.0"
)
# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # adjust for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggerMiddleware)
app.add_exception_handler(AppError, app_error_handler)

# Health check endpoint
@app.get("/", tags=["Health"])
async def health_check():
    return {"status": "ok", "message": "Backend is running"}

# Register routers
app.include_router(api_router)


@app.on_event("startup")
async def on_startup():
    await init_models()
