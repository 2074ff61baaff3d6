"""Container runtime listings (docker CLI and Docker API socket)."""

from __future__ import annotations

import logging

import docker

from distributive import commands, tabular
from distributive.errors import ExecError, ProbeError

logger = logging.getLogger(__name__)


def docker_cli(*args: str) -> str:
    """Run the docker CLI, retrying once through ``sudo -n`` on permission errors."""
    argv = ["docker", *args]
    try:
        return commands.output(argv, timeout=commands.TIMEOUTS.docker)
    except ExecError as exc:
        if "permission denied" not in (exc.output + exc.reason).lower():
            raise
        logger.info("docker %s: permission denied, retrying with sudo", " ".join(args))
        return commands.output(["sudo", "-n", *argv], timeout=commands.TIMEOUTS.docker)


def images() -> list[str]:
    """Local images, as both "repo" and "repo:tag"."""
    names: list[str] = []
    for row in tabular.split(docker_cli("images", "--format", "{{.Repository}}\t{{.Tag}}"), sep="\t"):
        if not row or not row[0]:
            continue
        names.append(row[0])
        if len(row) > 1 and row[1] and row[1] != "<none>":
            names.append(f"{row[0]}:{row[1]}")
    return names


def running_images() -> list[str]:
    """Images of containers whose status reads "Up ..."."""
    table = tabular.split(docker_cli("ps", "-a", "--format", "{{.Image}}\t{{.Status}}\t{{.Names}}"), sep="\t")
    return [row[0] for row in table if len(row) >= 2 and "Up" in row[1]]


def running_images_api(socket_path: str) -> list[str]:
    """Same as running_images() but through the Docker API on ``socket_path``."""
    try:
        client = docker.DockerClient(base_url=f"unix://{socket_path}", timeout=int(commands.TIMEOUTS.docker))
    except docker.errors.DockerException as exc:
        raise ProbeError(f"Could not connect to Docker API at {socket_path}: {exc}") from exc
    try:
        names = []
        for container in client.containers.list():
            names.append(container.attrs.get("Config", {}).get("Image", ""))
            names.extend(container.image.tags if container.image else [])
        return [name for name in names if name]
    except docker.errors.DockerException as exc:
        raise ProbeError(f"Docker API at {socket_path} failed: {exc}") from exc
    finally:
        client.close()
