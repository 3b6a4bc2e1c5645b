"""Docker container access used by the backup and restore drivers."""

from supabackup.container.runtime import ContainerRuntime, container_ip

__all__ = ["ContainerRuntime", "container_ip"]
