import asyncio
import logging
import sys

from print_kiosk.config import settings
from print_kiosk.application.reclaim import PeriodicSweeper
from print_kiosk.presentation.factories import build_sweeper

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                    handlers=[logging.StreamHandler(sys.stdout)])
logger = logging.getLogger(__name__)


async def main():
    """Отдельный процесс очистки, когда API запущено с RUN_SWEEPER_IN_API=false"""
    sweeper = PeriodicSweeper(build_sweeper(), settings.SWEEP_INTERVAL_SECONDS)
    sweeper.start()
    try:
        await asyncio.Event().wait()
    finally:
        await sweeper.stop()


if __name__ == "__main__":
    asyncio.run(main())
