"""Data models for vsphere-provisioner."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from vsphere_provisioner.constants import (
    DEFAULT_CPUS,
    DEFAULT_GUEST_ID,
    DEFAULT_MEMORY_MB,
    DEFAULT_PERSISTENT_DISK_NAME,
    DEFAULT_PORT,
    DEFAULT_SDK_PATH,
    DEFAULT_VM_NAME,
)
from vsphere_provisioner.utils import final_segment


@dataclass(frozen=True)
class Endpoint:
    host: str
    username: str
    password: str
    port: int = DEFAULT_PORT
    path: str = DEFAULT_SDK_PATH
    verify_ssl: bool = False


@dataclass(frozen=True)
class VMRequest:
    name: str = DEFAULT_VM_NAME
    cpus: int = DEFAULT_CPUS
    memory_mb: int = DEFAULT_MEMORY_MB
    datastore: str = ""
    network: str = ""
    host: str = ""
    datacenter: str = ""
    iso_path: str = ""
    disk_path: str = ""
    persistent_size_mb: int = 0
    persistent_disk_name: str = DEFAULT_PERSISTENT_DISK_NAME
    guest_id: str = DEFAULT_GUEST_ID

    @property
    def iso_name(self) -> str:
        return final_segment(self.iso_path)

    @property
    def disk_name(self) -> str:
        return final_segment(self.disk_path)


@dataclass(frozen=True)
class ProvisionConfig:
    endpoint: Endpoint
    request: VMRequest


@dataclass(frozen=True)
class InventoryHandles:
    """Managed object references resolved for one provisioning run."""

    datacenter: Any
    datastore: Any
    host: Any
    resource_pool: Any
    vm_folder: Any
    datacenter_name: str
    datastore_name: str
    network: Any


@dataclass(frozen=True)
class UploadedFile:
    """A file that has finished uploading to the VM directory on the datastore."""

    name: str
    datastore_path: str
