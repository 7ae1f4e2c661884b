"""Docker Compose handling for the agent container.

This module generates the default agent docker-compose.yml and wraps the
docker compose commands used during a scenario.
"""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

DOCKER_BIN = "docker"
SHORT_CONTAINER_ID_LENGTH = 12

DEFAULT_AGENT_IMAGE = "newrelic/infrastructure"
DEFAULT_AGENT_SERVICE = "agent"

# Env vars the compose file reads to mount the scenario directories
INTEGRATIONS_CFG_DIR_ENV = "E2E_NRI_CONFIG"
INTEGRATIONS_BIN_DIR_ENV = "E2E_NRI_BIN"
EXPORTERS_DIR_ENV = "E2E_EXPORTER_BIN"


@dataclass
class ComposeConfig:
    """Configuration for the default agent compose file."""

    image: str = DEFAULT_AGENT_IMAGE
    tag: str = "latest"
    service: str = DEFAULT_AGENT_SERVICE


class ComposeGenerator:
    """Generate the default agent docker-compose.yml."""

    def generate(self, config: ComposeConfig, output_dir: Path) -> Path:
        """Write docker-compose.yml in output_dir.

        Returns:
            Path to the generated file.
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        compose_file = output_dir / "docker-compose.yml"

        with open(compose_file, "w") as f:
            yaml.dump(self._build_compose_dict(config), f, default_flow_style=False, sort_keys=False)

        return compose_file

    def _build_compose_dict(self, config: ComposeConfig) -> dict[str, Any]:
        return {
            "services": {
                config.service: {
                    "image": f"{config.image}:{config.tag}",
                    "container_name": config.service,
                    "cap_add": ["SYS_PTRACE"],
                    "privileged": True,
                    "pid": "host",
                    "network_mode": "host",
                    "volumes": [
                        "/:/host:ro",
                        "/var/run/docker.sock:/var/run/docker.sock",
                        f"${{{INTEGRATIONS_CFG_DIR_ENV}}}:/etc/newrelic-infra/integrations.d",
                        f"${{{INTEGRATIONS_BIN_DIR_ENV}}}:/var/db/newrelic-infra/newrelic-integrations/bin",
                        f"${{{EXPORTERS_DIR_ENV}}}:/usr/local/prometheus-exporters/bin",
                    ],
                },
            },
        }


class DockerCompose:
    """Run docker compose commands against one compose file."""

    def __init__(self, compose_file: Path, env: dict[str, str] | None = None):
        """Initialize wrapper.

        Args:
            compose_file: Path to docker-compose.yml
            env: Extra environment for every compose invocation
        """
        self.compose_file = compose_file
        self.compose_dir = compose_file.parent
        self.env = dict(env or {})

    def _base_args(self) -> list[str]:
        return [DOCKER_BIN, "compose", "-f", str(self.compose_file)]

    def _run(self, args: list[str]) -> subprocess.CompletedProcess:
        return subprocess.run(
            args,
            cwd=self.compose_dir,
            env={**os.environ, **self.env},
            capture_output=True,
            text=True,
        )

    def build(self, service: str, build_args: dict[str, str] | None = None) -> tuple[bool, str]:
        """Build a service image without cache.

        Returns:
            Tuple of (success, message).
        """
        args = self._base_args() + ["build", "--no-cache"]
        for key, value in (build_args or {}).items():
            args.extend(["--build-arg", f"{key}={value}"])
        args.append(service)

        try:
            result = self._run(args)
            if result.returncode != 0:
                return False, f"Failed to build {service}: {result.stderr}"
            return True, f"Built {service}"
        except FileNotFoundError:
            return False, "Docker not found. Is Docker installed?"

    def run(self, service: str, env_vars: dict[str, str] | None = None) -> tuple[bool, str]:
        """Start a detached one-off container of a service.

        Returns:
            Tuple of (success, message).
        """
        args = self._base_args() + ["run"]
        for key, value in (env_vars or {}).items():
            args.extend(["-e", f"{key}={value}"])
        args.extend(["-d", service])

        try:
            result = self._run(args)
            if result.returncode != 0:
                return False, f"Failed to run {service}: {result.stderr}"
            return True, f"Started {service}"
        except FileNotFoundError:
            return False, "Docker not found. Is Docker installed?"

    def down(self, remove_volumes: bool = True) -> tuple[bool, str]:
        """Stop and remove containers.

        Returns:
            Tuple of (success, message).
        """
        args = self._base_args() + ["down"]
        if remove_volumes:
            args.append("-v")

        try:
            result = self._run(args)
            if result.returncode != 0:
                return False, f"Failed to stop stack: {result.stderr}"
            return True, "Stack stopped successfully"
        except FileNotFoundError:
            return False, "Docker not found. Is Docker installed?"

    def container_id(self, service: str) -> str:
        """Short id of the container running a service, "" if none."""
        try:
            result = self._run(self._base_args() + ["ps", "-q", service])
        except FileNotFoundError:
            return ""
        return (result.stdout or "").strip()[:SHORT_CONTAINER_ID_LENGTH]

    def logs(self, service: str) -> str:
        """Logs of the container running a service."""
        container_id = self.container_id(service)
        if not container_id:
            return ""
        try:
            result = self._run([DOCKER_BIN, "logs", container_id])
        except FileNotFoundError:
            return ""
        return (result.stdout or "") + (result.stderr or "")
