from typing import List

import pytest
from loguru import logger
from solders.keypair import Keypair


@pytest.fixture
def payer():
    return Keypair()


@pytest.fixture
def log_messages():
    messages: List[str] = []
    handler_id = logger.add(messages.append, level="DEBUG", format="{level} {message}")

    yield messages

    logger.remove(handler_id)
