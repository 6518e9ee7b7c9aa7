"""
Tests for the bootstrap/provisioning orchestrator.

Native modules are fake ctypes libraries and the agency is an httpx mock
transport; both record into one call log so step ordering can be checked.
"""

import json

import pytest

from vcx_bootstrap.bootstrap import (
    STEP_LOGGER,
    STEP_PLUGINS,
    STEP_PROVISIONING,
    STEP_RUNTIME,
    BootstrapOrchestrator,
    bootstrap_and_provision,
    init_runtime,
)
from vcx_bootstrap.core.errors import (
    NativeCallError,
    NativeModuleNotFoundError,
    PluginInitError,
    ProvisioningError,
    ReadinessCancelled,
)
from vcx_bootstrap.core.runtime import init_state
from vcx_bootstrap.agency.readiness import ProbeContext
from tests.conftest import AGENT_CONFIG
from tests.fakes import RecordingSleep, ScriptedAgency

PAYLOAD = {"agencyUrl": "http://localhost:9000", "agentSeed": "000000000000000000000000000000001"}


def _orchestrator(native_libs, settings, agency, sleep=None, **kwargs):
    return BootstrapOrchestrator(
        settings=settings,
        loader=native_libs.loader(),
        http_client=agency.client(),
        sleep=sleep or RecordingSleep(),
        **kwargs,
    )


class TestBootstrapAndProvision:

    def test_full_sequence_in_order(self, native_libs, test_settings):
        agency = ScriptedAgency([200], calls=native_libs.calls)
        agent_config = _orchestrator(native_libs, test_settings, agency).run(PAYLOAD, "info", "http://localhost:9000")
        assert agent_config == AGENT_CONFIG
        assert native_libs.calls == [
            "nullpay_init",
            "vcx_set_default_logger",
            "GET /agency",
            "vcx_provision_agent",
        ]

    def test_storage_plugin_initialized_first_when_enabled(self, native_libs, test_settings):
        settings = test_settings.model_copy(update={"use_postgres_storage": True})
        agency = ScriptedAgency([200], calls=native_libs.calls)
        _orchestrator(native_libs, settings, agency).run(PAYLOAD, "info")
        assert native_libs.calls[:2] == ["postgresstorage_init", "nullpay_init"]

    def test_503_twice_then_200(self, native_libs, test_settings):
        agency = ScriptedAgency([503, 503, 200], calls=native_libs.calls)
        sleep = RecordingSleep()
        agent_config = _orchestrator(native_libs, test_settings, agency, sleep=sleep).run(
            PAYLOAD, "info", "http://localhost:9000"
        )
        assert sleep.intervals == [1.0, 1.0]
        assert native_libs.calls.index("vcx_provision_agent") > native_libs.calls.index("GET /agency")
        assert native_libs.calls.count("GET /agency") == 3
        assert agent_config == AGENT_CONFIG

    def test_echoed_agent_config_returned_exactly(self, native_libs, test_settings):
        echoed = {"agentDid": "V4SGRU86Z58d6TV7PBUe6f", "agentVk": "Hezce2UWMZ3wUhVkh2LfKSs8nDzWwzs2Win7EzNN3YaR", "extra": [1, {"a": None}]}
        sent = []

        def _provision(config):
            sent.append(json.loads(config))
            return json.dumps(echoed).encode()

        native_libs.add("libvcx", vcx_set_default_logger=lambda p: 0, vcx_provision_agent=_provision)
        agency = ScriptedAgency([200])
        assert _orchestrator(native_libs, test_settings, agency).run(PAYLOAD, "debug") == echoed
        assert sent == [PAYLOAD]

    def test_missing_storage_plugin_aborts_before_probe(self, native_libs, test_settings):
        native_libs.remove("libindystrgpostgres")
        settings = test_settings.model_copy(update={"use_postgres_storage": True})
        agency = ScriptedAgency([200], calls=native_libs.calls)
        with pytest.raises(PluginInitError) as excinfo:
            _orchestrator(native_libs, settings, agency).run(PAYLOAD, "info")
        assert excinfo.value.step == STEP_PLUGINS
        assert excinfo.value.plugin_name == "postgres_storage"
        assert isinstance(excinfo.value.underlying_error, NativeModuleNotFoundError)
        assert agency.requests == []
        assert native_libs.calls == []

    def test_logger_failure_stops_before_probe(self, native_libs, test_settings):
        native_libs.add("libvcx", vcx_set_default_logger=lambda p: 1090, vcx_provision_agent=lambda c: b"{}")
        agency = ScriptedAgency([200])
        with pytest.raises(NativeCallError) as excinfo:
            _orchestrator(native_libs, test_settings, agency).run(PAYLOAD, "info")
        assert excinfo.value.step == STEP_LOGGER
        assert agency.requests == []

    def test_provisioning_failure_is_tagged(self, native_libs, test_settings):
        native_libs.add("libvcx", vcx_set_default_logger=lambda p: 0, vcx_provision_agent=lambda c: None)
        with pytest.raises(ProvisioningError) as excinfo:
            _orchestrator(native_libs, test_settings, ScriptedAgency([200])).run(PAYLOAD, "info")
        assert excinfo.value.step == STEP_PROVISIONING
        assert excinfo.value.describe().startswith("[provisioning]")

    def test_probe_never_started_on_plugin_failure_with_custom_prober(self, native_libs, test_settings):
        native_libs.remove("libnullpay")
        probed = []
        orchestrator = BootstrapOrchestrator(
            settings=test_settings,
            loader=native_libs.loader(),
            prober=lambda endpoint, context: probed.append(endpoint),
            exchange=lambda config: json.dumps(AGENT_CONFIG),
        )
        with pytest.raises(PluginInitError):
            orchestrator.run(PAYLOAD, "info")
        assert probed == []

    def test_custom_exchange_and_prober(self, native_libs, test_settings):
        probed = []
        orchestrator = BootstrapOrchestrator(
            settings=test_settings,
            loader=native_libs.loader(),
            prober=lambda endpoint, context: probed.append(endpoint),
            exchange=lambda config: config,
        )
        assert orchestrator.run(PAYLOAD, "info", "http://agency.example/") == PAYLOAD
        assert probed == ["http://agency.example"]

    def test_docker_mode_remaps_loopback(self, native_libs, test_settings):
        settings = test_settings.model_copy(update={"docker_mode": True})
        agency = ScriptedAgency([200])
        _orchestrator(native_libs, settings, agency).run(PAYLOAD, "info", "http://localhost:9000")
        assert str(agency.requests[0].url) == "http://host.docker.internal:9000/agency"

    def test_defaults_from_settings(self, native_libs, test_settings):
        patterns = []
        native_libs.add(
            "libvcx",
            vcx_set_default_logger=lambda p: patterns.append(p) or 0,
            vcx_provision_agent=lambda c: b"{}",
        )
        settings = test_settings.model_copy(update={"native_log_level": "warn"})
        agency = ScriptedAgency([200])
        _orchestrator(native_libs, settings, agency).run(PAYLOAD)
        assert patterns == [b"warn"]
        assert str(agency.requests[0].url) == "http://localhost:9000/agency"

    def test_cancellable_readiness(self, native_libs, test_settings):
        context = ProbeContext()
        sleep = RecordingSleep(on_sleep=lambda count: context.cancel() if count == 3 else None)
        agency = ScriptedAgency([503], calls=native_libs.calls)
        with pytest.raises(ReadinessCancelled) as excinfo:
            _orchestrator(native_libs, test_settings, agency, sleep=sleep).run(PAYLOAD, "info", context=context)
        assert excinfo.value.step == "readiness"
        assert "vcx_provision_agent" not in native_libs.calls

    def test_module_level_function(self, native_libs, test_settings):
        agency = ScriptedAgency([200])
        result = bootstrap_and_provision(
            PAYLOAD,
            "info",
            "http://localhost:9000",
            settings=test_settings,
            loader=native_libs.loader(),
            http_client=agency.client(),
            sleep=RecordingSleep(),
        )
        assert result == AGENT_CONFIG


class TestAtMostOnce:

    def test_plugins_and_logger_run_once_per_process(self, native_libs, test_settings):
        for _ in range(3):
            _orchestrator(native_libs, test_settings, ScriptedAgency([200])).run(PAYLOAD, "info")
        assert native_libs.calls.count("nullpay_init") == 1
        assert native_libs.calls.count("vcx_set_default_logger") == 1
        assert native_libs.calls.count("vcx_provision_agent") == 3
        assert init_state.completed() == ["logger", "plugin:nullpay"]

    def test_failed_step_is_attempted_again(self, native_libs, test_settings):
        codes = [1090, 0]
        native_libs.add(
            "libvcx",
            vcx_set_default_logger=lambda p: codes.pop(0),
            vcx_provision_agent=lambda c: b"{}",
        )
        with pytest.raises(NativeCallError):
            _orchestrator(native_libs, test_settings, ScriptedAgency([200])).run(PAYLOAD, "info")
        assert init_state.completed() == ["plugin:nullpay"]
        _orchestrator(native_libs, test_settings, ScriptedAgency([200])).run(PAYLOAD, "info")
        assert native_libs.calls.count("vcx_set_default_logger") == 2
        assert native_libs.calls.count("nullpay_init") == 1

    def test_enabling_storage_later_only_runs_storage(self, native_libs, test_settings):
        _orchestrator(native_libs, test_settings, ScriptedAgency([200])).run(PAYLOAD, "info")
        settings = test_settings.model_copy(update={"use_postgres_storage": True})
        _orchestrator(native_libs, settings, ScriptedAgency([200])).run(PAYLOAD, "info")
        assert native_libs.calls.count("postgresstorage_init") == 1
        assert native_libs.calls.count("nullpay_init") == 1


class TestInitRuntime:

    def test_separate_step(self, native_libs, test_settings):
        init_runtime(AGENT_CONFIG, settings=test_settings, loader=native_libs.loader())
        assert native_libs.calls == ["vcx_init_with_config"]

    def test_failure_tagged_with_runtime_step(self, native_libs, test_settings):
        native_libs.add(
            "libvcx",
            vcx_init_with_config=lambda handle, config, callback: 1004,
            vcx_error_c_message=lambda code: b"Invalid Configuration",
        )
        orchestrator = BootstrapOrchestrator(settings=test_settings, loader=native_libs.loader())
        with pytest.raises(NativeCallError) as excinfo:
            orchestrator.init_runtime(AGENT_CONFIG)
        assert excinfo.value.step == STEP_RUNTIME
