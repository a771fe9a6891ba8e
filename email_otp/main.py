import logging

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from email_otp.config import settings
from email_otp.database import init_db
from email_otp.logging_config import setup_logging
from email_otp.routers import otp
from email_otp.services.otp import otp_service

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="OTP Service")

if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(otp.router, prefix="/api")
app.include_router(otp.router)  # Compatibility for clients calling /otp/* without /api.


def _sweep_expired_otps() -> None:
    otp_service.clear_expired()


@app.on_event("startup")
def startup() -> None:
    setup_logging(settings.app_env, settings.log_file or None)
    init_db()
    if settings.otp_sweep_interval_minutes > 0:
        sched = BackgroundScheduler(timezone="UTC")
        sched.add_job(
            _sweep_expired_otps,
            "interval",
            minutes=settings.otp_sweep_interval_minutes,
            id="clear_expired_otps",
            replace_existing=True,
        )
        sched.start()
        app.state.scheduler = sched
        LOGGER.info(
            "Expired OTP sweep scheduled every %d minute(s)",
            settings.otp_sweep_interval_minutes,
        )


@app.on_event("shutdown")
def shutdown() -> None:
    sched = getattr(app.state, "scheduler", None)
    if sched:
        sched.shutdown(wait=False)


@app.get("/")
def root():
    return {"status": "OTP service running"}
