import os
import sys

import pytest

# Ensure project root is importable (so `import fastscaler` / `import cli` work without installing)
_project_root = os.path.dirname(os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from fastscaler.config import ServiceSpec  # noqa: E402


@pytest.fixture
def make_spec():
    def _make(**overrides) -> ServiceSpec:
        data = {
            "StatusUrl": "https://lb.internal/nginx_status",
            "EcsClusterName": "prod",
            "EcsServiceName": "web",
        }
        data.update(overrides)
        return ServiceSpec.model_validate(data)

    return _make
