# tests/conftest.py
import os, sys, pathlib, tempfile

import pytest

# Settings are read at import time; pin a hermetic configuration first.
os.environ.setdefault("ARTIFACTS_DIR", str(pathlib.Path(tempfile.gettempdir()) / "slideit-test-artifacts"))
os.environ.setdefault("PUBLIC_BASE_URL", "http://testserver")
os.environ["JOB_STORE"] = "memory"
os.environ["IMAGE_PROVIDER"] = "none"
os.environ.pop("JWT_PUBLIC_KEY", None)
os.environ.pop("OTEL_EXPORTER_OTLP_ENDPOINT", None)
for _k in ("IMAGE_RETRY_DELAY_SEC", "IMAGE_ITEM_DELAY_SEC", "IMAGE_BATCH_COOLDOWN_SEC"):
    os.environ[_k] = "0"

# Add <repo>/src to sys.path so `import slideit...` works under pytest
ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def sleeps():
    """A fake sleep that records requested delays instead of waiting."""
    calls = []

    async def _sleep(seconds):
        calls.append(seconds)

    _sleep.calls = calls
    return _sleep
