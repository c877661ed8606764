"""Read-only checks against a real site server.

Run with CONFIGMGR_SITE_SERVER (and CONFIGMGR_USERNAME/CONFIGMGR_PASSWORD
when the current identity has no access):

    pytest -m integration tests/integration
"""
import os
import uuid

import pytest

from configmgr_api.config import load_settings
from configmgr_api.services import build_services

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not os.environ.get("CONFIGMGR_SITE_SERVER"), reason="CONFIGMGR_SITE_SERVER not set"),
]


@pytest.fixture(scope="module")
def live_services():
    services = build_services(load_settings())
    yield services
    services.close()


def test_random_computer_does_not_exist(live_services):
    assert live_services.computer.computer_exists(f"ZZ-{uuid.uuid4().hex[:10]}") is False


def test_all_systems_collection_resolves(live_services):
    assert live_services.collection.get_collection_id("All Systems") == "SMS00001"
