"""
Pytest configuration and shared fixtures.
"""

import json
import os
import sys
import tempfile

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from PyQt5.QtCore import QCoreApplication  # noqa: E402

from formcraft.builders import (  # noqa: E402
    define_form,
    field_group,
    select_field,
    text_field,
    toggle_field,
)
from formcraft.conditions.types import Condition, ConditionGroup  # noqa: E402
from formcraft.validation import at_least_one_of, required  # noqa: E402


@pytest.fixture(scope="session")
def qapp():
    """Core application so QTimer-driven emission can run."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


@pytest.fixture
def temp_config_file():
    """Create a temporary engine config file for testing."""
    with tempfile.NamedTemporaryFile(
        mode='w',
        suffix='.json',
        delete=False
    ) as f:
        json.dump({
            "emit_delay_ms": 5,
            "slug_matching": False,
            "debug": False,
        }, f)
        temp_path = f.name

    yield temp_path

    if os.path.exists(temp_path):
        os.remove(temp_path)


@pytest.fixture
def tribute_form():
    """
    Donation form with a tribute toggle revealing a required, clear-on-hide
    honoree name and a feature group with a cross-field rule.
    """
    def setup(ctx):
        return {
            "amount": text_field("amount", label="Amount", default="10"),
            "fund": select_field(
                "fund",
                options=["Scholarship Fund", "Building Fund", "General Fund"],
                default="general_fund",
            ),
            "tribute": toggle_field("tribute", label="In memory of someone"),
            "honoree": text_field(
                "honoree",
                label="Honoree name",
                visible_when=ConditionGroup(conditions=[
                    Condition("tribute", "isTrue"),
                ]),
                rules=required(),
                clear_on_hide=True,
            ),
            "features": field_group(
                "features",
                fields=[
                    toggle_field("gift"),
                    toggle_field("memorial"),
                ],
                rules=at_least_one_of("gift", "memorial"),
                visible_when=ConditionGroup(conditions=[
                    Condition("fund", "equals", "Scholarship Fund"),
                ]),
            ),
        }

    return define_form("donation", setup, title="Donate")
