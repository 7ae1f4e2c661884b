"""Agent environment for nri-e2e scenarios."""

from .agent import ComposeAgent, integrations_config
from .compose import ComposeConfig, ComposeGenerator, DockerCompose

__all__ = [
    "ComposeAgent",
    "ComposeConfig",
    "ComposeGenerator",
    "DockerCompose",
    "integrations_config",
]
