from __future__ import annotations

import pytest

from tests.helpers import MachineWorld, make_machine


@pytest.fixture
def world() -> MachineWorld:
    """A ready guard at the origin with the default square patrol route."""
    return make_machine()
