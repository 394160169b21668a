"""
Network description loading.

A network is described in YAML::

    name: demo
    genesis: genesis.json
    consensus:
      name: raft
      config:
        raftport: "50400"
    nodes:
      - quorum:
          image: quorumengineering/quorum:latest
          config: {verbosity: "3"}
        tx_manager:
          image: quorumengineering/tessera:latest

The position of a node in ``nodes`` is its index.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Dict, Mapping, Tuple, Union

import yaml

from quorum_tools.errors import ConfigError


@dataclass(frozen=True)
class ConsensusSpec:
    name: str = ""
    config: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class DockerImageSpec:
    image: str
    config: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class QuorumNodeSpec:
    quorum: DockerImageSpec
    tx_manager: DockerImageSpec


@dataclass(frozen=True)
class QuorumBuilderConfig:
    name: str
    nodes: Tuple[QuorumNodeSpec, ...]
    genesis: str = ""
    consensus: ConsensusSpec = field(default_factory=ConsensusSpec)


def _string_map(raw: Any, where: str) -> Dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{where}: expected a mapping, got {type(raw).__name__}")
    out: Dict[str, str] = {}
    for k, v in raw.items():
        if v is None or isinstance(v, (dict, list)):
            raise ConfigError(f"{where}.{k}: expected a scalar value")
        if isinstance(v, bool):
            v = "true" if v else "false"
        out[str(k)] = str(v)
    return out


def _image_spec(raw: Any, where: str) -> DockerImageSpec:
    if not isinstance(raw, dict):
        raise ConfigError(f"{where}: missing")
    image = raw.get("image")
    if not image or not isinstance(image, str):
        raise ConfigError(f"{where}.image: required")
    return DockerImageSpec(image=image, config=_string_map(raw.get("config"), f"{where}.config"))


def parse_config(data: Union[str, bytes]) -> QuorumBuilderConfig:
    """Parse a YAML network description into an immutable config object."""
    try:
        doc = yaml.safe_load(data)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML: {e}") from e

    if not isinstance(doc, dict):
        raise ConfigError("network description must be a mapping")

    name = doc.get("name")
    if name is None or name == "":
        raise ConfigError("name: required")
    if not isinstance(name, str):
        raise ConfigError("name: expected a string")

    raw_nodes = doc.get("nodes")
    if not isinstance(raw_nodes, list) or not raw_nodes:
        raise ConfigError("nodes: at least one node is required")

    nodes = []
    for idx, raw in enumerate(raw_nodes):
        if not isinstance(raw, dict):
            raise ConfigError(f"nodes[{idx}]: expected a mapping")
        nodes.append(QuorumNodeSpec(
            quorum=_image_spec(raw.get("quorum"), f"nodes[{idx}].quorum"),
            tx_manager=_image_spec(raw.get("tx_manager"), f"nodes[{idx}].tx_manager"),
        ))

    raw_consensus = doc.get("consensus") or {}
    if not isinstance(raw_consensus, dict):
        raise ConfigError("consensus: expected a mapping")
    consensus = ConsensusSpec(
        name=str(raw_consensus.get("name") or ""),
        config=_string_map(raw_consensus.get("config"), "consensus.config"),
    )

    genesis = doc.get("genesis") or ""
    return QuorumBuilderConfig(
        name=name,
        nodes=tuple(nodes),
        genesis=str(genesis),
        consensus=consensus,
    )


def load_config(stream: IO) -> QuorumBuilderConfig:
    try:
        data = stream.read()
    except OSError as e:
        raise ConfigError(f"cannot read network description: {e}") from e
    return parse_config(data)


def load_config_file(path: Union[str, Path]) -> QuorumBuilderConfig:
    try:
        with open(path, "rb") as fh:
            return load_config(fh)
    except OSError as e:
        raise ConfigError(f"cannot open {path}: {e}") from e


__all__ = [
    "ConsensusSpec",
    "DockerImageSpec",
    "QuorumNodeSpec",
    "QuorumBuilderConfig",
    "parse_config",
    "load_config",
    "load_config_file",
]
