import logging
import sys
from contextlib import asynccontextmanager
from fastapi import FastAPI

from print_kiosk.config import settings
from print_kiosk.application.reclaim import PeriodicSweeper
from print_kiosk.presentation.api import router
from print_kiosk.presentation import factories

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управление жизненным циклом приложения"""
    if settings.RECLAMATION_MODE == "kafka":
        await factories.kafka_publisher.start()

    sweeper = None
    if settings.RUN_SWEEPER_IN_API:
        sweeper = PeriodicSweeper(factories.build_sweeper(), settings.SWEEP_INTERVAL_SECONDS)
        sweeper.start()

    yield

    logger.info("Приложение останавливается...")
    if sweeper:
        await sweeper.stop()
    if settings.RECLAMATION_MODE == "kafka":
        await factories.kafka_publisher.stop()


app = FastAPI(
    title="Print Kiosk Orders",
    description="Заказы печати киоска: оплата, коды выдачи, очистка файлов",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    return {"message": "Print kiosk backend работает"}


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "razorpay": bool(settings.RAZORPAY_KEY_ID),
        "reclamation": settings.RECLAMATION_MODE,
    }
