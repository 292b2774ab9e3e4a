import logging

import pytest

from travel_scheduler.modules.reoptimization.reshuffling_service import (
    MultiDayReshufflingService, ReshufflingService,
)
from travel_scheduler.schemas.settings import ReshuffleConfig


@pytest.fixture
def config():
    return ReshuffleConfig()


@pytest.fixture
def service(config):
    # fixed clock so nothing depends on the wall time
    return ReshufflingService(config=config, clock=lambda: "09:00")


@pytest.fixture
def multi_day_service(config):
    return MultiDayReshufflingService(config=config, clock=lambda: "09:00")


@pytest.fixture(autouse=True)
def _reset_package_logger():
    yield
    logger = logging.getLogger("travel_scheduler")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
