import os
import sys

import pytest

sys.path.append(os.getcwd().split('/tests')[0])

import safewrite  # noqa: E402
from safewrite.safety import clear_safety_options  # noqa: E402


@pytest.fixture(autouse=True)
def reset_safewrite():
    previous = safewrite.configure(safewrite.Config())
    clear_safety_options()
    yield
    safewrite.configure(previous)
    clear_safety_options()
