# portal/routes/health.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import psutil
import datetime
import sys
import logging
from fastapi.responses import JSONResponse

from portal.database import get_db, engine
from portal.services.scheduler import scheduler

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/health",
    tags=["Health Check"]
)

NO_CACHE = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.get("")
def health_check(db: Session = Depends(get_db)):
    """
    Health check with database connectivity, system resources and
    scheduler state
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.datetime.now().isoformat(),
        "service": "Recruitment Portal API",
        "version": "1.0.0",
    }

    try:
        db.execute(text("SELECT 1"))
        health_status["database"] = {
            "status": "connected",
            "type": engine.dialect.name
        }
    except SQLAlchemyError as e:
        health_status["database"] = {
            "status": "disconnected",
            "error": str(e)
        }
        health_status["status"] = "degraded"

    health_status["system"] = {
        "python_version": sys.version,
        "platform": sys.platform,
        "cpu_percent": psutil.cpu_percent(interval=None),
        "memory_percent": psutil.virtual_memory().percent,
        "boot_time": psutil.boot_time()
    }

    job = scheduler.get_job("close_expired_posts") if scheduler.running else None
    health_status["scheduler"] = {
        "running": scheduler.running,
        "next_post_close_run": job.next_run_time.isoformat() if job and job.next_run_time else None
    }

    logger.info(f"Health check completed: {health_status['status']}")
    return JSONResponse(content=health_status, headers=NO_CACHE)


@router.get("/ping")
def ping():
    """Minimal response for keep-alive probes"""
    return JSONResponse(
        content={
            "status": "pong",
            "timestamp": datetime.datetime.now().isoformat(),
        },
        headers={"Cache-Control": "no-cache"}
    )
