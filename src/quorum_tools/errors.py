"""Exceptions raised by quorum-tools."""

from __future__ import annotations

from typing import List, Sequence

from docker.errors import DockerException
from requests.exceptions import RequestException

# the docker SDK lets transport failures through as requests exceptions
DOCKER_ERRORS = (DockerException, RequestException)


class QuorumToolsError(Exception):
    """Base class for every error the CLI reports to the user."""


class ConfigError(QuorumToolsError):
    """The network description could not be read or is invalid."""


class NetworkError(QuorumToolsError):
    """Creating the Docker network for a run failed."""


class ImagePullError(QuorumToolsError):
    pass


class ContainerConfigError(QuorumToolsError):
    """A container could not be constructed from its configuration."""


class ContainerStartError(QuorumToolsError):
    pass


class ContainerStopError(QuorumToolsError):
    pass


class DestroyError(QuorumToolsError):
    """Looking up or removing the resources of a run failed."""


class BatchError(QuorumToolsError):
    """
    Aggregate failure of a parallel batch.

    Keeps the success count, the batch size and every individual error
    message in the order the failures arrived.
    """

    DEFAULT_SUMMARY = "{done}/{total} succeeded"

    def __init__(
        self,
        title: str,
        done: int,
        total: int,
        errors: Sequence[str],
        summary: str = DEFAULT_SUMMARY,
    ) -> None:
        self.title = title
        self.done = done
        self.total = total
        self.errors: List[str] = list(errors)
        self.summary = summary
        super().__init__(self._format())

    @property
    def failed(self) -> int:
        return len(self.errors)

    def _format(self) -> str:
        head = f"{self.title}: " + self.summary.format(done=self.done, total=self.total)
        return "\n".join([head, *self.errors])


__all__ = [
    "DOCKER_ERRORS",
    "QuorumToolsError",
    "ConfigError",
    "NetworkError",
    "ImagePullError",
    "ContainerConfigError",
    "ContainerStartError",
    "ContainerStopError",
    "DestroyError",
    "BatchError",
]
