from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from config.settings import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
# silence HTTP library debug logs
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)


# ✅ middlewares
from middlewares.timing import TimingMiddleware
from middlewares.error_handler import add_error_handlers

# ✅ routers
from routers import marksheets

app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
)

# ✅ CORS (frontend dashboard)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ request latency header (X-Latency-Ms)
app.add_middleware(TimingMiddleware)

# ✅ global error handlers (consistent JSON error format)
add_error_handlers(app)

# ✅ /v1 prefixed routers
app.include_router(marksheets.router, prefix="/v1")


# ✅ health check
@app.get("/health")
def health_check():
    return {"status": "ok", "message": "API is running"}


# ✅ root
@app.get("/")
def root():
    return {
        "service": settings.APP_TITLE,
        "version": settings.APP_VERSION,
        "model": settings.GEMINI_MODEL,
        "endpoints": {
            "analyze": "POST /v1/marksheets/analyze",
            "batches": "GET /v1/marksheets",
            "batch": "GET /v1/marksheets/{batch_id}",
            "overview": "GET /v1/marksheets/{batch_id}/overview",
            "dashboard": "GET /v1/marksheets/{batch_id}/dashboard?view=aggregate|individual&index=N",
            "report": "POST /v1/marksheets/{batch_id}/report",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
