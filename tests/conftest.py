# pytest fixtures: feature trees on disk and a quiet console.

from __future__ import annotations

from pathlib import Path

import pytest

from featurerun.ui.console import Console, set_console
from tests._helpers import IGNORE_FEATURE, REGRESSION_FEATURE, SMOKE_FEATURE, write_feature


@pytest.fixture(autouse=True)
def quiet_console():
    set_console(Console(quiet=True))
    yield


@pytest.fixture
def features_dir(tmp_path: Path) -> Path:
    root = tmp_path / "features"
    write_feature(root, "smoke/dashboard.feature", SMOKE_FEATURE)
    write_feature(root, "drivers/drivers.feature", REGRESSION_FEATURE)
    write_feature(root, "wip/vehicles.feature", IGNORE_FEATURE)
    return root
