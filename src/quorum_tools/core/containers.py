"""
Containers started for each node of a Quorum network.

Every node gets a Tessera transaction manager and a Quorum (geth) node.
Both are described by a :class:`ContainerConfig` and expose ``start`` and
``stop``. Constructing a container validates its configuration; talking to
Docker only happens in ``start`` and ``stop``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from docker.models.containers import Container

from quorum_tools.core.network import DockerNetwork
from quorum_tools.errors import (
    DOCKER_ERRORS,
    ContainerConfigError,
    ContainerStartError,
    ContainerStopError,
)
from quorum_tools.utils.logger import logger

LABEL_PREFIX = "com.quorum.quorum-tools"
LABEL_PROVISION_ID = f"{LABEL_PREFIX}.id"
LABEL_ROLE = f"{LABEL_PREFIX}.role"
LABEL_NODE_INDEX = f"{LABEL_PREFIX}.node-index"

TESSERA_THIRD_PARTY_PORT = 9080


@dataclass(frozen=True)
class ContainerConfig:
    index: int
    provision_id: str
    client: Any
    network: Optional[DockerNetwork]
    image: str
    config: Mapping[str, str] = field(default_factory=dict)
    labels: Mapping[str, str] = field(default_factory=dict)


def _flags(config: Mapping[str, str]) -> List[str]:
    return [f"--{k}={v}" for k, v in sorted(config.items())]


def hostname_for(role: str, index: int) -> str:
    return f"{role}-{index}"


class DockerContainer:
    """Base class for a container owned by a provisioning run."""

    role = "container"

    def __init__(self, cfg: ContainerConfig) -> None:
        self._validate(cfg)
        self.cfg = cfg
        self.container: Optional[Container] = None

    @staticmethod
    def _validate(cfg: ContainerConfig) -> None:
        if cfg.index < 0:
            raise ContainerConfigError(f"invalid node index {cfg.index}")
        if not cfg.provision_id:
            raise ContainerConfigError("provision id is required")
        if not cfg.image:
            raise ContainerConfigError("docker image is required")
        if cfg.client is None:
            raise ContainerConfigError("docker client is required")
        if cfg.network is None:
            raise ContainerConfigError("docker network is required")
        for k, v in cfg.config.items():
            if not isinstance(v, str):
                raise ContainerConfigError(f"config {k}: expected a string, got {type(v).__name__}")

    # ---------- naming ----------
    @property
    def name(self) -> str:
        return f"{self.cfg.provision_id}_{self.role}_{self.cfg.index}"

    @property
    def hostname(self) -> str:
        return hostname_for(self.role, self.cfg.index)

    def labels(self) -> Dict[str, str]:
        labels = dict(self.cfg.labels)
        labels[LABEL_ROLE] = self.role
        labels[LABEL_NODE_INDEX] = str(self.cfg.index)
        return labels

    # ---------- per role ----------
    def command(self) -> List[str]:
        return _flags(self.cfg.config)

    def environment(self) -> Dict[str, str]:
        return {}

    def ports(self) -> Dict[str, Optional[int]]:
        return {}

    # ---------- lifecycle ----------
    def start(self) -> None:
        logger.debug(f"Start Container name={self.name} image={self.cfg.image}")
        client = self.cfg.client
        network = self.cfg.network.name
        try:
            # attached to the run network only, never to the default bridge
            self.container = client.containers.create(
                image=self.cfg.image,
                name=self.name,
                hostname=self.hostname,
                command=self.command() or None,
                environment=self.environment() or None,
                ports=self.ports() or None,
                labels=self.labels(),
                network=network,
                networking_config={
                    network: client.api.create_endpoint_config(aliases=[self.hostname]),
                },
            )
            self.container.start()
        except DOCKER_ERRORS as e:
            raise ContainerStartError(f"start {self.name}: {e}") from e
        logger.info(f"Container started: {self.name} ({self.container.short_id})")

    def stop(self, timeout: int = 10) -> None:
        if self.container is None:
            raise ContainerStopError(f"stop {self.name}: container was never started")
        try:
            self.container.stop(timeout=timeout)
        except DOCKER_ERRORS as e:
            raise ContainerStopError(f"stop {self.name}: {e}") from e
        logger.info(f"Container stopped: {self.name}")

    def summary(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "id": self.container.id if self.container is not None else None,
            "hostname": self.hostname,
            "image": self.cfg.image,
        }


class TesseraTxManager(DockerContainer):
    role = "tx-manager"

    @property
    def port(self) -> int:
        raw = self.cfg.config.get("port")
        return int(raw) if raw else TESSERA_THIRD_PARTY_PORT

    @staticmethod
    def _validate(cfg: ContainerConfig) -> None:
        DockerContainer._validate(cfg)
        raw = cfg.config.get("port")
        if raw is not None and not raw.isdigit():
            raise ContainerConfigError(f"config port: not a number: {raw!r}")

    def command(self) -> List[str]:
        config = dict(self.cfg.config)
        config.pop("port", None)
        return _flags(config)

    def ports(self) -> Dict[str, Optional[int]]:
        # host port chosen by docker
        return {f"{self.port}/tcp": None}

    @staticmethod
    def url_for(index: int, port: int = TESSERA_THIRD_PARTY_PORT) -> str:
        return f"http://{hostname_for(TesseraTxManager.role, index)}:{port}"

    def url(self) -> str:
        return self.url_for(self.cfg.index, self.port)


class QuorumNode(DockerContainer):
    role = "quorum"

    CONSENSUS_KEY = "consensus"
    GENESIS_KEY = "genesis"
    PRIVATE_CONFIG_KEY = "private_config"

    def command(self) -> List[str]:
        config = dict(self.cfg.config)
        consensus = config.pop(self.CONSENSUS_KEY, "")
        config.pop(self.GENESIS_KEY, None)
        config.pop(self.PRIVATE_CONFIG_KEY, None)
        args = [f"--{consensus}"] if consensus else []
        return args + _flags(config)

    def environment(self) -> Dict[str, str]:
        env = {
            "PRIVATE_CONFIG": self.cfg.config.get(
                self.PRIVATE_CONFIG_KEY, TesseraTxManager.url_for(self.cfg.index)
            ),
        }
        genesis = self.cfg.config.get(self.GENESIS_KEY)
        if genesis:
            env["GENESIS"] = genesis
        return env


__all__ = [
    "LABEL_PROVISION_ID",
    "LABEL_ROLE",
    "LABEL_NODE_INDEX",
    "ContainerConfig",
    "DockerContainer",
    "TesseraTxManager",
    "QuorumNode",
]
