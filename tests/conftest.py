import json

import pytest

from vcx_bootstrap.core.config import Settings
from vcx_bootstrap.core.runtime import _reset_for_testing
from tests.fakes import LIBRARY_DIR, FakeNativeLibraries

AGENT_CONFIG = {
    "agentDid": "V4SGRU86Z58d6TV7PBUe6f",
    "agentVk": "GJ1SzoWzavQYfNL9XkaJdrQejfztN4XqdsiV4ct3LXKL",
}

CURRENT_ERROR = '{"error": "VcxStateError", "message": "agency rejected provisioning"}'


def _init_with_config(command_handle, config, callback):
    callback(command_handle, 0)
    return 0


def _get_current_error(details):
    details._obj.value = CURRENT_ERROR.encode()


@pytest.fixture(autouse=True)
def reset_init_state():
    _reset_for_testing()
    yield
    _reset_for_testing()


@pytest.fixture
def native_libs():
    libs = FakeNativeLibraries()
    libs.add("libnullpay", nullpay_init=lambda: None)
    libs.add("libindystrgpostgres", postgresstorage_init=lambda: None)
    libs.add(
        "libvcx",
        vcx_set_default_logger=lambda pattern: 0,
        vcx_provision_agent=lambda config: json.dumps(AGENT_CONFIG).encode(),
        vcx_init_with_config=_init_with_config,
        vcx_error_c_message=lambda code: f"error {code}".encode(),
        vcx_get_current_error=_get_current_error,
    )
    return libs


@pytest.fixture
def test_settings():
    return Settings(
        agency_endpoint="http://localhost:9000",
        library_dir=LIBRARY_DIR,
        readiness_interval=1.0,
        readiness_request_timeout=1.0,
    )
