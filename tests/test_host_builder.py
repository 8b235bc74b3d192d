"""Tests for HostBuilder"""

import json
from unittest.mock import MagicMock

import pytest

from confighost.configuration import MemorySource, add_config_server
from confighost.configuration.config_server import ConfigServerSource
from confighost.core.config import HostSettings
from confighost.core.exceptions import ConfigServerError, HostBuildError
from confighost.hosting import Host, HostBuilder, HostBuilderContext
from tests.conftest import config_payload


class TestHostEnvironment:
    """Test environment resolution"""

    def test_environment_from_settings(self, host_settings):
        """Test environment from settings"""
        host = HostBuilder(settings=host_settings).build()
        assert host.environment.environment_name == "Development"
        assert host.environment.is_development()
        assert host.environment.application_name == "confighost"

    def test_command_line_overrides_environment(self, host_settings):
        """Test command line overrides environment"""
        host = HostBuilder.create_default(["--environment", "Staging"], settings=host_settings).build()
        assert host.environment.environment_name == "Staging"
        assert host.environment.is_staging()

    def test_short_switch(self, host_settings):
        """Test short switch"""
        host = HostBuilder.create_default(["-e", "Production"], settings=host_settings).build()
        assert host.environment.is_production()

    def test_empty_environment_name(self, tmp_path):
        """Test empty environment name"""
        settings = HostSettings(ENVIRONMENT="", CONTENT_ROOT=str(tmp_path), LOG_LEVEL="WARNING")
        host = HostBuilder.create_default([], settings=settings).build()
        assert host.environment.environment_name == ""
        assert not host.environment.is_production()


class TestDefaultSources:
    """Test the default configuration pipeline"""

    def test_create_default_with_empty_args(self, host_settings):
        """Test create default with empty args"""
        builder = HostBuilder.create_default([], settings=host_settings)
        assert isinstance(builder, HostBuilder)

    def test_source_precedence(self, host_settings, tmp_path, monkeypatch):
        """Test source precedence"""
        (tmp_path / "appsettings.json").write_text(
            json.dumps({"A": "json", "B": "json", "C": "json", "D": "json"}), encoding="utf-8"
        )
        (tmp_path / "appsettings.Development.json").write_text(
            json.dumps({"B": "env-json", "C": "env-json", "D": "env-json"}), encoding="utf-8"
        )
        monkeypatch.setenv("C", "environ")
        monkeypatch.setenv("D", "environ")

        host = HostBuilder.create_default(["--D=cmdline"], settings=host_settings).build()
        config = host.configuration
        assert config["A"] == "json"
        assert config["B"] == "env-json"
        assert config["C"] == "environ"
        assert config["D"] == "cmdline"

    def test_host_configuration_is_visible(self, host_settings):
        """Test host configuration is visible"""
        host = HostBuilder.create_default([], settings=host_settings).build()
        assert host.configuration["environment"] == "Development"
        assert host.configuration.providers[0].name == "host"


class TestBuild:
    """Test HostBuilder.build"""

    def test_build_returns_host(self, host_settings):
        """Test build returns host"""
        host = HostBuilder(settings=host_settings).build()
        assert isinstance(host, Host)
        assert host.app.state.configuration is host.configuration
        assert host.app.state.environment is host.environment
        assert host.app.state.host is host

    def test_build_twice_fails(self, host_settings):
        """Test build twice fails"""
        builder = HostBuilder(settings=host_settings)
        builder.build()
        with pytest.raises(HostBuildError):
            builder.build()

    def test_app_configuration_callbacks_in_order(self, host_settings):
        """Test app configuration callbacks in order"""
        calls = []

        def first(context, config):
            calls.append(("first", context.hosting_environment.environment_name))
            config.add(MemorySource({"Key": "first"}))

        def second(context, config):
            assert isinstance(context, HostBuilderContext)
            calls.append(("second", len(config.sources)))
            config.add(MemorySource({"Key": "second"}))

        host = (
            HostBuilder(settings=host_settings)
            .configure_app_configuration(first)
            .configure_app_configuration(second)
            .build()
        )
        assert calls == [("first", "Development"), ("second", 2)]
        assert host.configuration["Key"] == "second"

    def test_web_pipeline_invoked_once(self, host_settings):
        """Test web pipeline invoked once"""
        register = MagicMock()
        host = HostBuilder(settings=host_settings).configure_web_host(register).build()
        register.assert_called_once_with(host.app)

    def test_web_pipeline_sees_configuration(self, host_settings):
        """Test web pipeline sees configuration"""
        seen = {}

        def register(app):
            seen["value"] = app.state.configuration.get("Foo")

        (
            HostBuilder(settings=host_settings)
            .configure_app_configuration(lambda ctx, config: config.add(MemorySource({"Foo": "Bar"})))
            .configure_web_host(register)
            .build()
        )
        assert seen == {"value": "Bar"}

    def test_last_web_pipeline_wins(self, host_settings):
        """Test last web pipeline wins"""
        first, second = MagicMock(), MagicMock()
        HostBuilder(settings=host_settings).configure_web_host(first).configure_web_host(second).build()
        first.assert_not_called()
        second.assert_called_once()


class TestRemoteConfiguration:
    """End-to-end: default builder plus the remote source"""

    def test_remote_key_available_after_build(self, host_settings, mock_config_server):
        """Test remote key available after build"""
        transport = mock_config_server(config_payload({"Foo": "Bar"}))
        host = (
            HostBuilder.create_default([], settings=host_settings)
            .configure_app_configuration(
                lambda ctx, config: add_config_server(config, ctx.hosting_environment, transport=transport)
            )
            .build()
        )

        assert host.configuration["Foo"] == "Bar"
        assert transport.requests[0].url.path == "/confighost/Development"
        assert isinstance(host.sources[-1], ConfigServerSource)

    def test_client_settings_from_command_line(self, host_settings, mock_config_server):
        """Test client settings from command line"""
        transport = mock_config_server(config_payload({"Foo": "Bar"}))
        args = ["--spring:cloud:config:uri=http://cfg.internal:9999", "--spring:application:name=orders"]
        host = (
            HostBuilder.create_default(args, settings=host_settings)
            .configure_app_configuration(
                lambda ctx, config: add_config_server(config, ctx.hosting_environment, transport=transport)
            )
            .build()
        )

        assert host.configuration["Foo"] == "Bar"
        assert transport.requests[0].url == "http://cfg.internal:9999/orders/Development"

    def test_unreachable_server_is_tolerated(self, host_settings, refusing_transport):
        """Test unreachable server is tolerated"""
        host = (
            HostBuilder.create_default([], settings=host_settings)
            .configure_app_configuration(
                lambda ctx, config: add_config_server(config, ctx.hosting_environment, transport=refusing_transport)
            )
            .build()
        )
        assert host.configuration.get("Foo") is None
        assert host.sources[-1].status == "failed"

    def test_unreachable_server_with_fail_fast_aborts(self, host_settings, refusing_transport, monkeypatch):
        """Test unreachable server with fail fast aborts"""
        monkeypatch.setenv("SPRING__CLOUD__CONFIG__FAILFAST", "true")
        builder = HostBuilder.create_default([], settings=host_settings).configure_app_configuration(
            lambda ctx, config: add_config_server(config, ctx.hosting_environment, transport=refusing_transport)
        )
        with pytest.raises(ConfigServerError):
            builder.build()
