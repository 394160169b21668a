from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import IO, Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

import docker
from docker.errors import NotFound
from docker.models.containers import Container
from docker.models.networks import Network

from quorum_tools.config import (
    QuorumBuilderConfig,
    QuorumNodeSpec,
    load_config,
    load_config_file,
)
from quorum_tools.core.containers import (
    LABEL_PROVISION_ID,
    ContainerConfig,
    DockerContainer,
    QuorumNode,
    TesseraTxManager,
)
from quorum_tools.core.network import DockerNetwork
from quorum_tools.core.parallel import do_work_in_parallel
from quorum_tools.errors import (
    DOCKER_ERRORS,
    BatchError,
    DestroyError,
    ImagePullError,
    QuorumToolsError,
)
from quorum_tools.utils.logger import logger

CONTAINERS_READY = "{done}/{total} containers are ready"

ContainerFactory = Callable[[int, QuorumNodeSpec], DockerContainer]


# ---------- labels ----------
def common_labels(name: str) -> Dict[str, str]:
    """Labels attached to every resource created by the run called ``name``."""
    return {LABEL_PROVISION_ID: name}


def label_filters(labels: Mapping[str, str]) -> Dict[str, List[str]]:
    """Docker list filter matching resources that carry all of ``labels``."""
    return {"label": [f"{k}={v}" for k, v in sorted(labels.items())]}


def open_docker_client():
    """Connect to the Docker daemon configured in the environment."""
    try:
        client = docker.from_env()
        client.ping()
    except DOCKER_ERRORS as e:
        raise QuorumToolsError(f"Cannot connect to Docker daemon: {e}") from e
    return client


# ---------- images ----------
def pull_image(client, image: str) -> None:
    """
    Make sure ``image`` is available locally.

    The image is pulled when no local image matches the reference or when
    the lookup itself fails. This is not a lock: concurrent callers may both
    pull the same image.
    """
    logger.debug(f"Pull Docker Image name={image}")
    try:
        images = client.images.list(filters={"reference": image})
    except DOCKER_ERRORS as e:
        logger.debug(f"Image lookup failed for {image}: {e}")
        images = []

    if images:
        return

    try:
        client.images.pull(image)
    except DOCKER_ERRORS as e:
        raise ImagePullError(f"pullImage: {image} - {e}") from e
    logger.info(f"Pulled image {image}")


# ---------- teardown ----------
def _remove_container(c: Container) -> None:
    logger.debug(f"removing container id={c.short_id} name={c.name}")
    try:
        c.remove(force=True)
    except NotFound:
        logger.debug(f"container {c.name} already removed")
    except DOCKER_ERRORS as e:
        raise DestroyError(f"container {c.name}: {e}") from e


def _remove_network(n: Network) -> None:
    logger.debug(f"removing network id={n.short_id} name={n.name}")
    try:
        DockerNetwork(n).remove()
    except QuorumToolsError as e:
        if isinstance(e.__cause__, NotFound):
            logger.debug(f"network {n.name} already removed")
            return
        raise


def destroy(client, name: str) -> None:
    """
    Remove every container and network labelled with the run ``name``.

    Nothing but the run name is needed: resources are found by querying
    Docker with the run's label filter. Containers are force-removed first,
    then networks. Calling this again once everything is gone is a no-op.
    """
    filters = label_filters(common_labels(name))

    try:
        containers = client.containers.list(all=True, filters=filters, ignore_removed=True)
    except DOCKER_ERRORS as e:
        raise DestroyError(f"destroy: {e}") from e
    try:
        do_work_in_parallel("removing containers", containers, _remove_container)
    except BatchError as e:
        raise DestroyError(f"destroy: {e}") from e

    try:
        networks = client.networks.list(filters=filters)
    except DOCKER_ERRORS as e:
        raise DestroyError(f"destroy: {e}") from e
    try:
        do_work_in_parallel("removing networks", networks, _remove_network)
    except BatchError as e:
        raise DestroyError(f"destroy: {e}") from e

    logger.info(f"Destroyed {len(containers)} containers and {len(networks)} networks for {name}")


class QuorumBuilder:
    """
    One provisioning run of a Quorum network.

    ``build`` creates the network and starts the transaction managers;
    ``start_quorums`` starts the Quorum nodes and is left to the caller so
    the two groups can be staged.
    """

    def __init__(self, config: QuorumBuilderConfig, client=None) -> None:
        self.config = config
        self.client = client if client is not None else open_docker_client()
        self.common_labels = common_labels(config.name)
        self.network: Optional[DockerNetwork] = None
        self.tx_managers: Dict[int, TesseraTxManager] = {}
        self.quorums: Dict[int, QuorumNode] = {}

    @classmethod
    def from_stream(cls, stream: IO, client=None) -> "QuorumBuilder":
        return cls(load_config(stream), client=client)

    @classmethod
    def from_file(cls, path: Union[str, Path], client=None) -> "QuorumBuilder":
        return cls(load_config_file(path), client=client)

    @property
    def name(self) -> str:
        return self.config.name

    # 1. Build Docker network
    # 2. Start tx managers
    def build(self) -> None:
        self.build_docker_network()
        self.start_tx_managers()

    def build_docker_network(self) -> DockerNetwork:
        self.network = DockerNetwork.create(self.client, self.name, self.common_labels)
        return self.network

    def pull_image(self, image: str) -> None:
        pull_image(self.client, image)

    def _container_config(self, idx: int, image: str, config: Mapping[str, str]) -> ContainerConfig:
        return ContainerConfig(
            index=idx,
            provision_id=self.name,
            client=self.client,
            network=self.network,
            image=image,
            config=dict(config),
            labels=dict(self.common_labels),
        )

    def _quorum_config(self, idx: int, node: QuorumNodeSpec) -> Dict[str, str]:
        cfg: Dict[str, str] = {}
        if self.config.consensus.name:
            cfg[QuorumNode.CONSENSUS_KEY] = self.config.consensus.name
        if self.config.genesis:
            cfg[QuorumNode.GENESIS_KEY] = self.config.genesis
        tm_port = node.tx_manager.config.get("port")
        if tm_port and tm_port.isdigit():
            cfg[QuorumNode.PRIVATE_CONFIG_KEY] = TesseraTxManager.url_for(idx, int(tm_port))
        cfg.update(self.config.consensus.config)
        cfg.update(node.quorum.config)
        return cfg

    def start_tx_managers(self) -> None:
        logger.debug("Start Tx Managers")

        def factory(idx: int, node: QuorumNodeSpec) -> DockerContainer:
            self.pull_image(node.tx_manager.image)
            return TesseraTxManager(self._container_config(idx, node.tx_manager.image, node.tx_manager.config))

        self.tx_managers = self._start_containers("tx managers", factory)

    def start_quorums(self) -> None:
        logger.debug("Start Quorum nodes")

        def factory(idx: int, node: QuorumNodeSpec) -> DockerContainer:
            self.pull_image(node.quorum.image)
            return QuorumNode(self._container_config(idx, node.quorum.image, self._quorum_config(idx, node)))

        self.quorums = self._start_containers("quorum nodes", factory)

    def _start_containers(self, title: str, factory: ContainerFactory) -> Dict[int, Any]:
        if self.network is None:
            raise QuorumToolsError(f"{title}: docker network has not been created")

        def start_one(item: Tuple[int, QuorumNodeSpec]) -> DockerContainer:
            idx, node = item
            try:
                c = factory(idx, node)
                c.start()
            except Exception as e:
                raise QuorumToolsError(f"container {idx}: {e}") from e
            return c

        started = do_work_in_parallel(
            title,
            list(enumerate(self.config.nodes)),
            start_one,
            summary=CONTAINERS_READY,
        )
        return {c.cfg.index: c for c in started}

    def stop(self) -> None:
        """Stop every container started by this run, leaving them in place."""
        started = [*self.quorums.values(), *self.tx_managers.values()]
        do_work_in_parallel("stopping containers", started, lambda c: c.stop())

    def destroy(self) -> None:
        destroy(self.client, self.name)

    # ---------- export ----------
    def describe(self) -> Dict[str, Any]:
        nodes = []
        for idx in range(len(self.config.nodes)):
            tm = self.tx_managers.get(idx)
            q = self.quorums.get(idx)
            nodes.append({
                "index": idx,
                "tx_manager": tm.summary() if tm else None,
                "quorum": q.summary() if q else None,
            })
        return {
            "name": self.name,
            "genesis": self.config.genesis or None,
            "consensus": self.config.consensus.name or None,
            "labels": dict(self.common_labels),
            "network": self.network.summary() if self.network else None,
            "nodes": nodes,
        }

    def export(self, sink: Optional[str]) -> None:
        """Write the run description as JSON to ``sink`` ("-" for stdout)."""
        if not sink:
            return
        data = json.dumps(self.describe(), indent=2)
        if sink == "-":
            sys.stdout.write(data + "\n")
            return
        try:
            Path(sink).write_text(data + "\n")
        except OSError as e:
            raise QuorumToolsError(f"export to {sink}: {e}") from e
        logger.info(f"Network information exported to {sink}")


__all__ = [
    "QuorumBuilder",
    "common_labels",
    "label_filters",
    "open_docker_client",
    "pull_image",
    "destroy",
]
