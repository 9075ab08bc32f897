import sys
from pathlib import Path

import pytest

# Allow running the suite from a source checkout without installing.
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from antclock.core.antclock_policy import AntclockConfig
from antclock.core.tm_core_fields import initialize_cliff, initialize_smooth


@pytest.fixture
def smooth_state():
    return initialize_smooth(32, 2.0)


@pytest.fixture
def cliff_state():
    return initialize_cliff(32, 2.0)


@pytest.fixture
def reference_config():
    return AntclockConfig(
        event_threshold=0.05,
        event_boost=0.5,
        dt_nominal=0.01,
        dt_min=0.001,
        dt_max=0.1,
        max_semantic_ticks=50,
        max_coordinate_time=1.0,
    )
