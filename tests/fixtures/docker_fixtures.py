"""
In-memory Docker engine used by unit tests.

Only the parts of the docker SDK that quorum-tools calls are implemented.
Label filters behave like the daemon's: every ``key=value`` must match.
"""

import itertools
import threading
from typing import Dict, List, Optional

import pytest
import requests
from docker.errors import APIError, NotFound

_ids = itertools.count(1)


def _new_id() -> str:
    return f"{next(_ids):064x}"


def _matches(labels: Dict[str, str], filters: Optional[dict]) -> bool:
    wanted = (filters or {}).get("label") or []
    if isinstance(wanted, str):
        wanted = [wanted]
    for item in wanted:
        key, _, value = item.partition("=")
        if labels.get(key) != value:
            return False
    return True


class FakeContainer:
    def __init__(self, engine: "FakeDockerClient", image: str, name: str, labels: Dict[str, str], **kwargs):
        self.engine = engine
        self.id = _new_id()
        self.short_id = self.id[:12]
        self.name = name
        self.image = image
        self.labels = dict(labels or {})
        self.kwargs = kwargs
        self.status = "created"
        self.networks: List[str] = []
        self.aliases: List[str] = []

    def start(self):
        if self.name in self.engine.fail_start:
            raise APIError(f"cannot start {self.name}")
        self.status = "running"

    def stop(self, timeout=10):
        self.status = "exited"

    def remove(self, force=False):
        if self.name in self.engine.fail_remove:
            raise APIError(f"cannot remove {self.name}")
        if self.status == "running" and not force:
            raise APIError("container is running")
        with self.engine.lock:
            if self.id not in self.engine.container_store:
                raise NotFound(f"no such container {self.id}")
            del self.engine.container_store[self.id]


class FakeNetwork:
    def __init__(self, engine: "FakeDockerClient", name: str, labels: Dict[str, str]):
        self.engine = engine
        self.id = _new_id()
        self.short_id = self.id[:12]
        self.name = name
        self.labels = dict(labels or {})
        self.attrs = {"IPAM": {"Config": [{"Subnet": "172.28.0.0/16"}]}}

    def reload(self):
        pass

    def remove(self):
        if self.name in self.engine.fail_remove:
            raise APIError(f"error while removing network: network {self.name} has active endpoints")
        with self.engine.lock:
            if self.id not in self.engine.network_store:
                raise NotFound(f"no such network {self.id}")
            del self.engine.network_store[self.id]


class FakeContainers:
    def __init__(self, engine: "FakeDockerClient"):
        self.engine = engine

    def create(self, image, name=None, labels=None, network=None, networking_config=None, **kwargs):
        if self.engine.fail_create:
            raise APIError("create failed")
        if name in self.engine.fail_transport:
            raise requests.exceptions.ConnectionError("Connection aborted.")
        c = FakeContainer(self.engine, image, name, labels, **kwargs)
        if network:
            c.networks.append(network)
            endpoint = (networking_config or {}).get(network) or {}
            c.aliases = list(endpoint.get("Aliases") or [])
        else:
            c.networks.append("bridge")
        with self.engine.lock:
            self.engine.container_store[c.id] = c
        return c

    def list(self, all=False, filters=None, ignore_removed=False):
        if self.engine.fail_list:
            raise APIError("list failed")
        with self.engine.lock:
            items = list(self.engine.container_store.values())
        found = []
        for c in items:
            if not (all or c.status == "running") or not _matches(c.labels, filters):
                continue
            # gone between the list and the inspect of each entry
            if c.name in self.engine.vanishing:
                with self.engine.lock:
                    self.engine.container_store.pop(c.id, None)
                if not ignore_removed:
                    raise NotFound(f"no such container {c.id}")
                continue
            found.append(c)
        return found


class FakeNetworks:
    def __init__(self, engine: "FakeDockerClient"):
        self.engine = engine

    def create(self, name, driver=None, labels=None, **kwargs):
        if self.engine.fail_network_create:
            raise APIError(f"network with name {name} already exists")
        n = FakeNetwork(self.engine, name, labels)
        with self.engine.lock:
            self.engine.network_store[n.id] = n
        return n

    def list(self, filters=None):
        if self.engine.fail_list:
            raise APIError("list failed")
        with self.engine.lock:
            items = list(self.engine.network_store.values())
        return [n for n in items if _matches(n.labels, filters)]


class FakeImages:
    def __init__(self, engine: "FakeDockerClient"):
        self.engine = engine
        self.local = set()
        self.pulled: List[str] = []
        self.fail_lookup = False
        self.fail_pull = set()

    def list(self, name=None, all=False, filters=None):
        if self.fail_lookup:
            raise APIError("image lookup failed")
        ref = (filters or {}).get("reference")
        return [img for img in self.local if img == ref]

    def pull(self, repository, tag=None, **kwargs):
        if repository in self.fail_pull:
            raise APIError(f"pull access denied for {repository}")
        with self.engine.lock:
            self.pulled.append(repository)
            self.local.add(repository)
        return repository


class FakeAPI:
    def create_endpoint_config(self, aliases=None, **kwargs):
        return {"Aliases": list(aliases or [])}


class FakeDockerClient:
    def __init__(self):
        self.lock = threading.Lock()
        self.container_store: Dict[str, FakeContainer] = {}
        self.network_store: Dict[str, FakeNetwork] = {}
        self.fail_start = set()
        self.fail_remove = set()
        self.fail_transport = set()
        self.vanishing = set()
        self.fail_create = False
        self.fail_network_create = False
        self.fail_list = False
        self.containers = FakeContainers(self)
        self.networks = FakeNetworks(self)
        self.images = FakeImages(self)
        self.api = FakeAPI()

    def ping(self):
        return True

    # test helpers
    def all_containers(self) -> List[FakeContainer]:
        return list(self.container_store.values())

    def all_networks(self) -> List[FakeNetwork]:
        return list(self.network_store.values())


SAMPLE_CONFIG = """
name: demo
genesis: genesis.json
consensus:
  name: raft
  config:
    raftport: 50400
nodes:
  - quorum:
      image: quorumengineering/quorum:latest
      config:
        verbosity: 3
    tx_manager:
      image: quorumengineering/tessera:latest
  - quorum:
      image: quorumengineering/quorum:latest
    tx_manager:
      image: quorumengineering/tessera:latest
      config:
        port: 9180
  - quorum:
      image: quorumengineering/quorum:latest
    tx_manager:
      image: quorumengineering/tessera:latest
"""


@pytest.fixture
def docker_client() -> FakeDockerClient:
    """Fresh in-memory Docker engine."""
    return FakeDockerClient()


@pytest.fixture
def sample_config_text() -> str:
    return SAMPLE_CONFIG


@pytest.fixture
def sample_config():
    from quorum_tools.config import parse_config

    return parse_config(SAMPLE_CONFIG)


@pytest.fixture
def sample_config_file(tmp_path):
    path = tmp_path / "quorum.yml"
    path.write_text(SAMPLE_CONFIG)
    return path
