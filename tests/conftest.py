"""
Pytest configuration and shared fixtures.
"""

import pytest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient

from projection_engine.calculations.debt_payoff import Liability
from projection_engine.config import Settings, get_settings
from projection_engine.main import app


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")


def override_get_settings():
    """Settings with a fixed currency table for testing."""
    return Settings(currency_rates={"EUR": 1.25, "GBP": 1.5})


# Override the dependency globally for all tests
app.dependency_overrides[get_settings] = override_get_settings


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def two_cards():
    """Two credit cards used by the payoff handoff scenario."""
    return [
        Liability(id="A", principal=5000, annual_rate=0.22, minimum_payment=50),
        Liability(id="B", principal=3000, annual_rate=0.15, minimum_payment=40),
    ]
