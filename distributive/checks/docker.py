"""
Docker checks.

Image and container listings come from the docker CLI (DOCKER_TIMEOUT_SECONDS,
one retry through sudo). DockerRunningAPI talks to the daemon socket instead.
"""

from __future__ import annotations

import re

from distributive.check import Check, Status, generic_error, success
from distributive.params import parse_nonempty, parse_regexp
from distributive.registry import register
from distributive.status import containers


@register("DockerImage")
class DockerImage(Check):
    """DockerImage(name): the image ("repo" or "repo:tag") is present locally."""

    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.name = parse_nonempty(parameters[0], "image name")

    def status(self) -> Status:
        images = containers.images()
        if self.name in images:
            return success()
        return generic_error("Docker image was not found", self.name, images)


@register("DockerImageRegexp")
class DockerImageRegexp(Check):
    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.pattern = parse_regexp(parameters[0])

    def status(self) -> Status:
        images = containers.images()
        if any(self.pattern.search(image) for image in images):
            return success()
        return generic_error("Docker image was not found", self.pattern.pattern, images)


def _running_match(needle: str | re.Pattern[str], running: list[str]) -> bool:
    if isinstance(needle, re.Pattern):
        return any(needle.search(image) for image in running)
    return any(needle in image for image in running)


@register("DockerRunning")
class DockerRunning(Check):
    """DockerRunning(name): a running container's image contains name."""

    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.name = parse_nonempty(parameters[0], "image name")

    def status(self) -> Status:
        running = containers.running_images()
        if _running_match(self.name, running):
            return success()
        return generic_error("Docker container not running", self.name, running)


@register("DockerRunningRegexp", "DockerRunningRegext")
class DockerRunningRegexp(Check):
    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.pattern = parse_regexp(parameters[0])

    def status(self) -> Status:
        running = containers.running_images()
        if _running_match(self.pattern, running):
            return success()
        return generic_error("Docker container not running", self.pattern.pattern, running)


@register("DockerRunningAPI")
class DockerRunningAPI(Check):
    """DockerRunningAPI(socket path, name), via the Docker API on the socket."""

    arity = 2

    def bind(self, parameters: list[str]) -> None:
        self.socket_path = parse_nonempty(parameters[0], "docker socket path")
        self.name = parse_nonempty(parameters[1], "image name")

    def status(self) -> Status:
        running = containers.running_images_api(self.socket_path)
        if _running_match(self.name, running):
            return success()
        return generic_error("Docker container not running", self.name, running)
