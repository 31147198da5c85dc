"""
Global pytest configuration and fixtures for ClinicPay tests.
"""

import os
import sys

import pytest

# Console log rendering during tests
os.environ.setdefault("OBSERVABILITY__LOG_FORMAT", "text")

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


@pytest.fixture(autouse=True)
def reset_billing_config():
    """Drop the cached global billing configuration between tests."""
    from clinicpay.billing.config import set_billing_config

    set_billing_config(None)
    yield
    set_billing_config(None)
