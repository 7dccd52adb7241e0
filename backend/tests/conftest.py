from datetime import date, timedelta

import pytest

from fareflex.schemas.search import SearchQuery
from fareflex.services.combo_planner import utc_today


@pytest.fixture
def future_day():
    """A departure date comfortably in the future (UTC)."""
    return utc_today() + timedelta(days=40)


@pytest.fixture
def base_query(future_day):
    return SearchQuery(origin="JFK", destination="LAX", depart_date=future_day)


@pytest.fixture
def past_day():
    return date(2025, 6, 1)
