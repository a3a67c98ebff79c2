from __future__ import annotations

import pytest

from vjsim.force_generator import ForceGeneratorParams
from vjsim.profile import vj_profile
from vjsim.simulation import LoadState


REFERENCE_LOADS = [0.0, 20.0, 40.0, 60.0, 80.0]


@pytest.fixture
def generator() -> ForceGeneratorParams:
    return ForceGeneratorParams(
        max_force=3000.0,
        max_velocity=4.0,
        decline_rate=1.05,
        peak_location=-0.06,
        time_to_max_activation=0.3,
    )


@pytest.fixture
def load() -> LoadState:
    return LoadState(bodyweight_mass=75.0, external_load_mass=0.0, push_off_distance=0.4)


@pytest.fixture(scope='session')
def reference_table():
    return vj_profile(mass=75.0, external_load=REFERENCE_LOADS)
