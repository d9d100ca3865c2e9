"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from raintrigger.config import Settings, settings
from raintrigger.compliance import routes as compliance_routes
from raintrigger.compliance.cooldown import CooldownTracker
from raintrigger.compliance.engine import ComplianceEngine
from raintrigger.database import init_models
from raintrigger.notifications import ConsoleNotificationSender, WebhookNotificationSender
from raintrigger.storage import SqlCooldownRepository, SqlTriggerStore
from raintrigger.weather import FallbackWeatherProvider, NOAAProvider, OpenWeatherMapProvider

logger = logging.getLogger(__name__)


def configure_logging(level: str = settings.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def build_compliance_engine(config: Settings = settings) -> ComplianceEngine:
    """Wire the engine with the SQL store and the configured collaborators."""
    providers = [NOAAProvider(config.NOAA_USER_AGENT, timeout=config.WEATHER_TIMEOUT_SECONDS)]
    if config.OPENWEATHER_API_KEY:
        providers.append(
            OpenWeatherMapProvider(config.OPENWEATHER_API_KEY, timeout=config.WEATHER_TIMEOUT_SECONDS)
        )

    if config.NOTIFICATION_WEBHOOK_URL:
        notifier = WebhookNotificationSender(config.NOTIFICATION_WEBHOOK_URL)
    else:
        logger.warning("NOTIFICATION_WEBHOOK_URL not set, notifications go to the log only")
        notifier = ConsoleNotificationSender()

    return ComplianceEngine(
        weather=FallbackWeatherProvider(providers),
        notifier=notifier,
        store=SqlTriggerStore(),
        cooldown=CooldownTracker(
            SqlCooldownRepository(),
            cooldown=timedelta(hours=config.COOLDOWN_HOURS),
        ),
        settings=config,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await init_models()
    app.state.engine = build_compliance_engine()
    logger.info(f"Rain-trigger compliance API started ({settings.APP_ENV})")
    yield


# Create FastAPI app
app = FastAPI(
    title="Rain Trigger Compliance API",
    description="EPA CGP rain-event SWPPP inspection tracking",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(compliance_routes.router, prefix=settings.API_V1_PREFIX)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Rain Trigger Compliance API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "raintrigger.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
