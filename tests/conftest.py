from __future__ import annotations

import pytest

from aggregators.services.source import Source
from fakes import make_source


@pytest.fixture
def source() -> Source:
    return make_source()
