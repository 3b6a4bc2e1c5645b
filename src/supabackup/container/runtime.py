"""Docker container access for backup and restore.

Wraps the Docker SDK for the handful of operations the drivers need:
listing running containers, resolving a container's network address,
copying a file in, and executing a command.
"""

import asyncio
import io
import json
import logging
import os
import tarfile
from pathlib import Path, PurePosixPath

import docker
from docker.errors import APIError, DockerException, NotFound
from docker.models.containers import Container

from supabackup.errors import ContainerNotFoundError, ExecutionError, ToolNotFoundError

logger = logging.getLogger(__name__)


async def _get_docker_host_async() -> str | None:
    """Get the Docker host URL, respecting the current Docker context.

    The Docker CLI uses contexts to manage multiple Docker endpoints.
    The Python SDK doesn't respect these by default, so we detect
    the active context and return its endpoint.

    Returns:
        Docker host URL (e.g., unix:///path/to/docker.sock) or None to use default.
    """
    if os.environ.get("DOCKER_HOST"):
        return None  # Let docker.from_env() handle it

    try:
        proc = await asyncio.create_subprocess_exec(
            "docker",
            "context",
            "inspect",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=5)
        if proc.returncode == 0:
            context = json.loads(stdout.decode())
            endpoint = context[0].get("Endpoints", {}).get("docker", {}).get("Host")
            if endpoint:
                return endpoint
    except (TimeoutError, json.JSONDecodeError, FileNotFoundError, OSError):
        pass

    return None


def container_ip(container: Container) -> str | None:
    """Return the first network address attached to a container."""
    networks = container.attrs.get("NetworkSettings", {}).get("Networks") or {}
    for network in networks.values():
        address = (network or {}).get("IPAddress")
        if address:
            return address
    return None


class ContainerRuntime:
    """Access to running Docker containers.

    Blocking SDK calls run in worker threads so callers stay async.

    Example:
        runtime = ContainerRuntime()
        await runtime.ensure_running("supabase-db")
        ip = await runtime.resolve_ip("db")
    """

    def __init__(self, client: docker.DockerClient | None = None):
        self._client = client

    async def _ensure_client(self) -> docker.DockerClient:
        """Ensure Docker client is initialized and reachable.

        Raises:
            ToolNotFoundError: If Docker is not installed or not running.
        """
        if self._client is None:
            try:
                docker_host = await _get_docker_host_async()
                if docker_host:
                    client = docker.DockerClient(base_url=docker_host)
                else:
                    client = docker.from_env()
                await asyncio.to_thread(client.ping)
            except DockerException as e:
                logger.debug("docker_unavailable", extra={"error.message": str(e)})
                raise ToolNotFoundError(
                    "Docker", "Please install Docker and make sure it is running."
                ) from e
            self._client = client
        return self._client

    async def is_available(self) -> bool:
        try:
            await self._ensure_client()
        except ToolNotFoundError:
            return False
        return True

    async def list_running(self) -> list[str]:
        """Names of all running containers."""
        client = await self._ensure_client()
        containers = await asyncio.to_thread(client.containers.list)
        return [c.name for c in containers]

    async def ensure_running(self, name: str) -> Container:
        """Get a running container by exact name.

        Raises:
            ContainerNotFoundError: With the names of running containers.
        """
        running = await self.list_running()
        if name not in running:
            raise ContainerNotFoundError(name, available=running)
        client = await self._ensure_client()
        return await asyncio.to_thread(client.containers.get, name)

    async def resolve_ip(self, name: str) -> str | None:
        """Resolve a container name to its network address.

        Returns:
            The IP address, or None if no such container or it has no address.
        """
        client = await self._ensure_client()
        try:
            container = await asyncio.to_thread(client.containers.get, name)
        except NotFound:
            return None
        except APIError as e:
            logger.debug(
                "container_inspect_failed",
                extra={"container.name": name, "error.message": str(e)},
            )
            return None
        return container_ip(container)

    async def copy_into(self, name: str, source: Path, destination: str) -> None:
        """Copy a local file into a container.

        Args:
            name: Container name.
            source: Local file.
            destination: Absolute file path inside the container.

        Raises:
            ExecutionError: If the copy fails.
        """
        client = await self._ensure_client()
        target = PurePosixPath(destination)

        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w") as tar:
            tar.add(str(source), arcname=target.name)

        try:
            container = await asyncio.to_thread(client.containers.get, name)
            ok = await asyncio.to_thread(
                container.put_archive, str(target.parent), buffer.getvalue()
            )
        except (APIError, NotFound, OSError) as e:
            raise ExecutionError(
                f"Failed to copy {source} to container", path=source, output=str(e)
            ) from e
        if not ok:
            raise ExecutionError(f"Failed to copy {source} to container", path=source)
        logger.debug(
            "file_copied_to_container",
            extra={"container.name": name, "file.path": destination},
        )

    async def exec_command(self, name: str, command: list[str]) -> tuple[int, str, str]:
        """Execute a command in a container.

        Returns:
            Tuple of (exit_code, stdout, stderr).

        Raises:
            ExecutionError: If the container is gone or Docker rejects the exec.
        """
        client = await self._ensure_client()
        try:
            container = await asyncio.to_thread(client.containers.get, name)
            result = await asyncio.to_thread(container.exec_run, command, demux=True)
        except (APIError, NotFound) as e:
            raise ExecutionError(
                f"Failed to run {command[0]} in container {name}", output=str(e)
            ) from e

        stdout_raw, stderr_raw = result.output or (None, None)
        stdout = stdout_raw.decode("utf-8", errors="replace") if stdout_raw else ""
        stderr = stderr_raw.decode("utf-8", errors="replace") if stderr_raw else ""
        return result.exit_code, stdout, stderr

    async def remove_file(self, name: str, path: str) -> None:
        """Remove a file inside a container, ignoring failures."""
        try:
            await self.exec_command(name, ["rm", "-f", path])
        except ExecutionError as e:
            logger.debug(
                "container_cleanup_failed",
                extra={"container.name": name, "error.message": str(e)},
            )

    def close(self) -> None:
        if self._client:
            try:
                self._client.close()
            except Exception:
                # Client may already be closed
                logger.debug("Error closing Docker client")
            self._client = None
