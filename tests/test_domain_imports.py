"""Tests that the decision logic imports without loading settings."""

import os
import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _run(code: str, **env: str) -> subprocess.CompletedProcess:
    child_env = {**os.environ, **env}
    child_env["PYTHONPATH"] = os.pathsep.join(
        filter(None, [str(PROJECT_ROOT), os.environ.get("PYTHONPATH")])
    )
    return subprocess.run(
        [sys.executable, "-c", code],
        env=child_env,
        capture_output=True,
        text=True,
        timeout=60,
    )


def test_domain_imports_with_invalid_settings_env() -> None:
    result = _run(
        "import sys\n"
        "from webrate.domain.engine import RateDecisionEngine\n"
        "from webrate.domain.limiter import Limiter\n"
        "from webrate.adapters.store import InMemoryCounterStore\n"
        "assert 'webrate.core.config' not in sys.modules, 'settings were loaded'\n",
        RATELIMIT_MAX_KEYS="0",
    )

    assert result.returncode == 0, result.stderr


def test_hand_built_limiter_works_without_settings() -> None:
    result = _run(
        "import sys\n"
        "from webrate import Limiter, Quota, RequestInfo\n"
        "from webrate.adapters.store import InMemoryCounterStore\n"
        "limiter = Limiter(Quota(1, 60), methods=['POST'], store=InMemoryCounterStore())\n"
        "req = RequestInfo(method='POST', remote_addr='1.2.3.4:80')\n"
        "assert limiter.check(req) is True\n"
        "assert limiter.check(req) is False\n"
        "assert 'webrate.core.config' not in sys.modules\n",
        RATELIMIT_MAX_KEYS="0",
    )

    assert result.returncode == 0, result.stderr
