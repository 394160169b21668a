from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from docker.models.networks import Network

from quorum_tools.errors import DOCKER_ERRORS, NetworkError
from quorum_tools.utils.logger import logger


class DockerNetwork:
    """Bridge network isolating the containers of one provisioning run."""

    def __init__(self, network: Network) -> None:
        self._network = network

    @classmethod
    def create(cls, client, name: str, labels: Mapping[str, str]) -> "DockerNetwork":
        logger.debug(f"Create Docker network name={name}")
        try:
            network = client.networks.create(
                name=name,
                driver="bridge",
                labels=dict(labels),
            )
        except DOCKER_ERRORS as e:
            raise NetworkError(f"create network {name}: {e}") from e
        logger.info(f"Docker network created: {name} ({network.id[:12]})")
        return cls(network)

    @property
    def id(self) -> str:
        return self._network.id

    @property
    def name(self) -> str:
        return self._network.name

    @property
    def subnet(self) -> Optional[str]:
        try:
            self._network.reload()
        except DOCKER_ERRORS:
            return None
        configs = ((self._network.attrs or {}).get("IPAM") or {}).get("Config") or []
        for cfg in configs:
            if cfg.get("Subnet"):
                return cfg["Subnet"]
        return None

    def remove(self) -> None:
        try:
            self._network.remove()
        except DOCKER_ERRORS as e:
            raise NetworkError(f"remove network {self.name}: {e}") from e

    def summary(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "subnet": self.subnet}


__all__ = ["DockerNetwork"]
