import sys
import pathlib

import pytest

# Ensure project root is on sys.path so 'import wpvet' works when pytest runs from
# different working directories or when running individual tests.
_ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from wpvet import create_app
from wpvet.logging_utils import reset_suppressed_state


@pytest.fixture
def app(monkeypatch, tmp_path):
    # keep the user's ~/.wpvet/config.json out of the tests
    monkeypatch.setenv('WPVET_CONFIG', str(tmp_path / 'missing.json'))
    app = create_app()
    app.testing = True
    app.extensions.get('limiter').enabled = False
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def _clean_suppression_state():
    reset_suppressed_state()
    yield
    reset_suppressed_state()
