"""Docker compose driven infrastructure agent.

The agent container mounts three per-scenario directories: integration
configs, integration binaries and prometheus exporters. They are created
next to the compose file on set up and removed on stop.
"""

from __future__ import annotations

import json
import shutil
import tempfile
from pathlib import Path

import yaml

from ..errors import InfrastructureError
from ..shared.logging import get_logger, is_debug_enabled
from ..spec import DEFAULT_CUSTOM_TEST_KEY, AgentExtensions, Integration, Scenario
from .compose import (
    DEFAULT_AGENT_SERVICE,
    EXPORTERS_DIR_ENV,
    INTEGRATIONS_BIN_DIR_ENV,
    INTEGRATIONS_CFG_DIR_ENV,
    ComposeConfig,
    ComposeGenerator,
    DockerCompose,
)

logger = get_logger(__name__)

INTEGRATIONS_CFG_DIR = "integrations.d"
EXPORTERS_DIR = "exporters"
INTEGRATIONS_BIN_DIR = "bin"
COMPOSE_FILE = "docker-compose.yml"
INTEGRATIONS_CONFIG_FILE = "nri-config.yml"


def integrations_config(integrations: tuple[Integration, ...] | list[Integration]) -> dict:
    """Content of the integrations config file mounted in the agent."""
    return {
        "integrations": [
            {"name": i.name, "config": dict(i.config), "env": dict(i.env)}
            for i in integrations
        ]
    }


def _copy_file(source: Path, destination: Path) -> None:
    logger.debug("copy file", source=str(source), destination=str(destination))
    try:
        shutil.copy2(source, destination)
    except OSError as e:
        raise InfrastructureError(
            f"copying '{source}' to '{destination}': {e}",
            data={"source": str(source)},
        ) from e


class ComposeAgent:
    """Infrastructure agent running in a docker compose service."""

    def __init__(
        self,
        spec_parent_dir: str | Path,
        license_key: str,
        custom_test_key: str = DEFAULT_CUSTOM_TEST_KEY,
        extensions: AgentExtensions | None = None,
        service: str = DEFAULT_AGENT_SERVICE,
    ):
        """Initialize agent.

        Args:
            spec_parent_dir: Directory binaries and build context are relative to
            license_key: License key reported by the agent
            custom_test_key: Attribute name the scenario tag is set on
            extensions: Build context, extra integrations and env vars
            service: Compose service running the agent
        """
        self.spec_parent_dir = Path(spec_parent_dir)
        self.license_key = license_key
        self.custom_test_key = custom_test_key
        self.extensions = extensions or AgentExtensions()
        self.service = service

        self.agent_dir: Path | None = None
        if self.extensions.build_context:
            self.agent_dir = self.spec_parent_dir / self.extensions.build_context

        self._generated_dir: Path | None = None
        self.configs_dir: Path | None = None
        self.bins_dir: Path | None = None
        self.exporters_dir: Path | None = None

    @property
    def compose_file(self) -> Path:
        if self.agent_dir is None:
            raise InfrastructureError("agent directory not initialized")
        return self.agent_dir / COMPOSE_FILE

    def _compose(self) -> DockerCompose:
        return DockerCompose(
            self.compose_file,
            env={
                INTEGRATIONS_CFG_DIR_ENV: str(self.configs_dir),
                INTEGRATIONS_BIN_DIR_ENV: str(self.bins_dir),
                EXPORTERS_DIR_ENV: str(self.exporters_dir),
            },
        )

    def _initialize(self) -> None:
        if self.agent_dir is None:
            self._generated_dir = Path(tempfile.mkdtemp(prefix="nri-e2e-agent-"))
            ComposeGenerator().generate(ComposeConfig(service=self.service), self._generated_dir)
            self.agent_dir = self._generated_dir
            logger.debug("generated default compose file", path=str(self.compose_file))

        try:
            self.configs_dir = Path(tempfile.mkdtemp(prefix=INTEGRATIONS_CFG_DIR, dir=self.agent_dir))
            self.exporters_dir = Path(tempfile.mkdtemp(prefix=EXPORTERS_DIR, dir=self.agent_dir))
            self.bins_dir = Path(tempfile.mkdtemp(prefix=INTEGRATIONS_BIN_DIR, dir=self.agent_dir))
        except OSError as e:
            raise InfrastructureError(f"creating agent directories: {e}") from e

        logger.debug(
            "agent directories",
            configs=str(self.configs_dir),
            exporters=str(self.exporters_dir),
            bins=str(self.bins_dir),
        )

    def set_up(self, scenario: Scenario) -> None:
        """Create the mounted directories and fill them for a scenario.

        Raises:
            InfrastructureError: A directory or file could not be created
        """
        self._initialize()

        logger.debug("adding integrations", count=len(scenario.integrations))
        for integration in scenario.integrations:
            if integration.binary_path:
                _copy_file(
                    self.spec_parent_dir / integration.binary_path,
                    self.bins_dir / integration.name,
                )
            if integration.exporter_binary_path:
                exporter = Path(integration.exporter_binary_path)
                _copy_file(self.spec_parent_dir / exporter, self.exporters_dir / exporter.name)

        config_path = self.configs_dir / INTEGRATIONS_CONFIG_FILE
        logger.debug("create integrations config file", path=str(config_path))
        try:
            with open(config_path, "w") as f:
                yaml.dump(integrations_config(scenario.integrations), f, default_flow_style=False)
        except OSError as e:
            raise InfrastructureError(f"writing integrations config file: {e}") from e

        for name, path in self.extensions.integrations.items():
            _copy_file(self.spec_parent_dir / path, self.bins_dir / name)

    def env_vars(self, scenario_tag: str) -> dict[str, str]:
        """Environment of the agent container."""
        env = {
            "NRIA_VERBOSE": "1",
            "NRIA_LICENSE_KEY": self.license_key,
            "NRIA_CUSTOM_ATTRIBUTES": json.dumps(
                {self.custom_test_key: scenario_tag}, separators=(",", ":")
            ),
        }
        env.update(self.extensions.env_vars)
        return env

    def run(self, scenario_tag: str) -> None:
        """Build and start the agent container.

        Raises:
            InfrastructureError: docker compose build or run failed
        """
        compose = self._compose()
        env = self.env_vars(scenario_tag)

        success, message = compose.build(self.service, build_args=env)
        if not success:
            raise InfrastructureError(message)
        logger.debug(message)

        success, message = compose.run(self.service, env_vars=env)
        if not success:
            raise InfrastructureError(message)
        logger.info("agent started", service=self.service, tag=scenario_tag)

    def stop(self) -> None:
        """Tear down the container and remove the scenario directories.

        Raises:
            InfrastructureError: docker compose down failed
        """
        compose = self._compose()
        if is_debug_enabled():
            logger.debug("agent logs", logs=compose.logs(self.service))

        try:
            success, message = compose.down()
        finally:
            self._clean_up()

        if not success:
            raise InfrastructureError(message)
        logger.info("agent stopped", service=self.service)

    def _clean_up(self) -> None:
        for directory in (self.bins_dir, self.exporters_dir, self.configs_dir):
            if directory is not None:
                shutil.rmtree(directory, ignore_errors=True)
        self.bins_dir = self.exporters_dir = self.configs_dir = None

        if self._generated_dir is not None:
            shutil.rmtree(self._generated_dir, ignore_errors=True)
            self._generated_dir = None
            self.agent_dir = None
