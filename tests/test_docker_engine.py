"""Tests for the Docker installer, compatibility patch and network creation."""

import json
import subprocess
from dataclasses import replace

import pytest

from docker_from_scratch.docker_engine import (
    DockerInstaller,
    parse_full_version,
    parse_major_version,
)
from docker_from_scratch.models import Outcome

from conftest import ScriptedPrompter

OVERRIDE = "[Service]\nEnvironment=DOCKER_MIN_API_VERSION=1.24\n"


def make_installer(host, settings, operator, prompter=None):
    return DockerInstaller(
        host,
        prompter or ScriptedPrompter(),
        settings,
        operator,
        release={"VERSION_CODENAME": "noble"},
    )


class TestVersionParsing:
    @pytest.mark.parametrize(
        "output, major",
        [
            ("Docker version 29.0.1, build eedd969", 29),
            ("Docker version 27.3.1, build ce12230", 27),
            ("", None),
        ],
    )
    def test_major_version(self, output, major):
        assert parse_major_version(output) == major

    def test_full_version(self):
        assert parse_full_version("Docker version 28.5.2, build ecc6942") == "28.5.2"


class TestInstall:
    def test_existing_docker_is_left_alone(self, host, settings, operator, run_config):
        result = make_installer(host, settings, operator).install(run_config)

        assert result.outcome is Outcome.UNCHANGED
        assert host.mutations == []

    def test_fresh_install(self, host, settings, operator, run_config):
        host.engine.installed = False

        result = make_installer(host, settings, operator).install(run_config)

        assert result.outcome is Outcome.CHANGED
        files = host.files.contents
        assert files[settings.DOCKER_SOURCES_LIST] == (
            "deb [arch=amd64 signed-by=/etc/apt/keyrings/docker.gpg] "
            "https://download.docker.com/linux/ubuntu noble stable\n"
        )
        assert json.loads(files[settings.DAEMON_CONFIG_FILE]) == settings.DAEMON_CONFIG
        assert set(settings.DOCKER_PACKAGES) <= host.packages.installed
        assert host.groups == [("u", "docker")]
        assert host.services.enabled == {"docker", "containerd"}
        assert ("packages", "remove", " ".join(settings.LEGACY_DOCKER_PACKAGES)) in host.mutations

    def test_existing_key_and_daemon_config_are_kept(self, host, settings, operator, run_config):
        host.engine.installed = False
        host.files.contents[settings.DOCKER_KEYRING] = "KEY"
        host.files.contents[settings.DAEMON_CONFIG_FILE] = '{"debug": true}'

        make_installer(host, settings, operator).install(run_config)

        assert host.files.contents[settings.DAEMON_CONFIG_FILE] == '{"debug": true}'
        assert not any(m[1] == "import_key" for m in host.mutations)


class TestCompatPatch:
    def test_not_needed_below_threshold(self, host, settings, operator, run_config):
        result = make_installer(host, settings, operator).apply_compat_patch(run_config)

        assert result.outcome is Outcome.UNCHANGED
        assert host.mutations == []

    def test_already_applied(self, host, settings, operator, run_config):
        host.engine.version_text = "Docker version 29.0.1, build eedd969"
        host.files.contents[settings.COMPAT_OVERRIDE_FILE] = OVERRIDE
        prompter = ScriptedPrompter()

        result = make_installer(host, settings, operator, prompter).apply_compat_patch(run_config)

        assert result.outcome is Outcome.UNCHANGED
        assert host.mutations == []
        assert prompter.asked == []

    def test_applied_on_consent(self, host, settings, operator, run_config):
        host.engine.version_text = "Docker version 29.0.1, build eedd969"

        result = make_installer(host, settings, operator).apply_compat_patch(run_config)

        assert result.outcome is Outcome.CHANGED
        assert host.files.contents[settings.COMPAT_OVERRIDE_FILE] == OVERRIDE
        assert [m[1] for m in host.changes("services")] == ["daemon_reload", "restart"]

    def test_other_override_content_gets_patched(self, host, settings, operator, run_config):
        host.engine.version_text = "Docker version 30.1.0, build 1"
        host.files.contents[settings.COMPAT_OVERRIDE_FILE] = "[Service]\nLimitNOFILE=1048576\n"

        result = make_installer(host, settings, operator).apply_compat_patch(run_config)

        assert result.outcome is Outcome.CHANGED

    def test_declined_leaves_system_alone(self, host, settings, operator, run_config):
        host.engine.version_text = "Docker version 29.0.1, build eedd969"
        prompter = ScriptedPrompter({"Apply Portainer compatibility fix?": False})

        result = make_installer(host, settings, operator, prompter).apply_compat_patch(run_config)

        assert result.outcome is Outcome.SKIPPED
        assert host.mutations == []


class TestNetwork:
    def test_created_once(self, host, settings, operator, run_config):
        installer = make_installer(host, settings, operator)

        assert installer.ensure_network(run_config).outcome is Outcome.CHANGED
        assert installer.ensure_network(run_config).outcome is Outcome.UNCHANGED
        assert host.changes("engine") == [("engine", "create_network", "proxy-network")]

    def test_substring_name_does_not_count(self, host, settings, operator, run_config):
        host.engine.networks.append("proxy-network-old")
        config = replace(run_config, network_name="proxy")

        result = make_installer(host, settings, operator).ensure_network(config)

        assert result.outcome is Outcome.CHANGED
        assert "proxy" in host.engine.networks

    def test_existing_network_missed_by_listing(self, host, settings, operator, run_config, mocker):
        mocker.patch.object(host.engine, "network_names", return_value=[])
        mocker.patch.object(
            host.engine,
            "create_network",
            side_effect=subprocess.CalledProcessError(
                1,
                ["docker", "network", "create", "proxy-network"],
                stderr="Error response from daemon: network with name proxy-network already exists",
            ),
        )

        result = make_installer(host, settings, operator).ensure_network(run_config)

        assert result.outcome is Outcome.UNCHANGED

    def test_other_create_errors_propagate(self, host, settings, operator, run_config, mocker):
        mocker.patch.object(
            host.engine,
            "create_network",
            side_effect=subprocess.CalledProcessError(
                1, ["docker", "network", "create"], stderr="Cannot connect to the Docker daemon"
            ),
        )

        with pytest.raises(subprocess.CalledProcessError):
            make_installer(host, settings, operator).ensure_network(run_config)
