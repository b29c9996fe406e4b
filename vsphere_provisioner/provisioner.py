"""End-to-end VM provisioning workflow for vsphere-provisioner."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, List, Optional

from pyVmomi import vim

from vsphere_provisioner.constants import DEFAULT_DISK_SIZE_MB
from vsphere_provisioner.devices import (
    create_cdrom_spec,
    create_disk_spec,
    create_nic_spec,
    create_scsi_controller_spec,
)
from vsphere_provisioner.exceptions import ConfigError, NameCollisionError
from vsphere_provisioner.inventory import InventoryClient
from vsphere_provisioner.models import Endpoint, InventoryHandles, ProvisionConfig, UploadedFile, VMRequest
from vsphere_provisioner.utils import datastore_path, log


def plan(request: VMRequest) -> List[str]:
    """Describe, in order, the steps ``Provisioner.run`` takes for ``request``."""
    steps = [
        "Connect to the management endpoint",
        "Resolve datacenter, datastore, host, network and resource pool",
        f"Create VM '{request.name}' ({request.cpus} vCPU, {request.memory_mb} MiB, PVSCSI controller)",
    ]
    if request.iso_path:
        steps.append(f"Upload {request.iso_path} -> {request.name}/{request.iso_name}")
        steps.append(f"Attach CD-ROM with {request.iso_name}")
    if request.disk_path:
        steps.append(f"Upload {request.disk_path} -> {request.name}/{request.disk_name}")
        steps.append(f"Attach disk {request.disk_name} ({DEFAULT_DISK_SIZE_MB} MiB)")
    if request.persistent_size_mb:
        if request.disk_path and request.persistent_disk_name == request.disk_name:
            steps.append(f"Skip persistent disk: name {request.persistent_disk_name} already attached")
        else:
            steps.append(
                f"Create persistent disk {request.persistent_disk_name} ({request.persistent_size_mb} MiB)"
            )
    if request.network:
        steps.append(f"Attach vmxnet3 NIC on network '{request.network}'")
    return steps


class Provisioner:
    def __init__(
        self,
        config: ProvisionConfig,
        client_factory: Callable[[Endpoint], InventoryClient] = InventoryClient,
    ) -> None:
        self.cfg = config
        self.request = config.request
        self._client_factory = client_factory
        self.client: Optional[InventoryClient] = None
        self.handles: Optional[InventoryHandles] = None

    # -- session -----------------------------------------------------------

    def connect(self, endpoint: Optional[Endpoint] = None) -> InventoryClient:
        self.client = self._client_factory(endpoint or self.cfg.endpoint).connect()
        return self.client

    def close(self) -> None:
        if self.client is not None:
            self.client.disconnect()
            self.client = None

    # -- inventory ---------------------------------------------------------

    def resolve_inventory(self, request: Optional[VMRequest] = None) -> InventoryHandles:
        request = request or self.request
        client = self.client
        datacenter = client.find_datacenter(request.datacenter)
        datacenter_name = datacenter.name
        log("INFO", f"Datacenter: {datacenter_name}")

        datastore = client.find_datastore(datacenter, request.datastore)
        datastore_name = datastore.name
        log("INFO", f"Datastore: {datastore_name}")

        host = client.find_host(datacenter, request.host)
        log("INFO", f"Host: {host.name}")

        network = client.find_network(datacenter, request.network)
        log("INFO", f"Network: {network.name}")

        self.handles = InventoryHandles(
            datacenter=datacenter,
            datastore=datastore,
            host=host,
            resource_pool=client.resource_pool(host),
            vm_folder=client.vm_folder(datacenter),
            datacenter_name=datacenter_name,
            datastore_name=datastore_name,
            network=network,
        )
        return self.handles

    # -- VM ----------------------------------------------------------------

    def build_config_spec(self, handles: InventoryHandles, request: VMRequest) -> vim.vm.ConfigSpec:
        return vim.vm.ConfigSpec(
            name=request.name,
            guestId=request.guest_id,
            files=vim.vm.FileInfo(vmPathName=datastore_path(handles.datastore_name)),
            numCPUs=request.cpus,
            memoryMB=request.memory_mb,
            deviceChange=[create_scsi_controller_spec()],
        )

    def create_vm(self, handles: Optional[InventoryHandles] = None, request: Optional[VMRequest] = None) -> Any:
        handles = handles or self.handles
        request = request or self.request
        spec = self.build_config_spec(handles, request)
        log("INFO", f"Creating virtual machine '{request.name}'")
        task = self.client.create_vm(handles.vm_folder, spec, handles.resource_pool, handles.host)
        vm = self.client.wait_for_task(task, f"Create VM {request.name}")
        log("SUCCESS", f"Virtual machine '{request.name}' created")
        return vm

    # -- files -------------------------------------------------------------

    def upload_file(self, local_path: str, dest_name: str) -> UploadedFile:
        """Copy a local file into the VM's directory on the target datastore."""
        if not local_path:
            raise ConfigError("No file specified for upload")
        if not Path(local_path).is_file():
            raise ConfigError(f"File to upload not found: {local_path}")
        handles = self.handles
        remote_path = f"{self.request.name}/{dest_name}"
        log("INFO", f"Uploading {local_path} to [{handles.datastore_name}] {remote_path}")
        self.client.upload_file(local_path, handles.datacenter_name, handles.datastore_name, remote_path)
        return UploadedFile(name=dest_name, datastore_path=datastore_path(handles.datastore_name, remote_path))

    # -- devices -----------------------------------------------------------

    def attach_iso(self, vm: Any, uploaded: UploadedFile) -> None:
        devices = self.client.devices(vm)
        spec = create_cdrom_spec(devices, self.handles.datastore, uploaded.datastore_path)
        log("INFO", f"Adding CD-ROM with {uploaded.datastore_path}")
        self.client.add_devices(vm, [spec], "Add CD-ROM")

    def attach_disk(self, vm: Any, disk_name: str, size_mb: int, create: bool = False) -> None:
        devices = self.client.devices(vm)
        path = datastore_path(self.handles.datastore_name, f"{self.request.name}/{disk_name}")
        spec = create_disk_spec(devices, self.handles.datastore, path, size_mb, create=create)
        log("INFO", f"Adding disk {path} ({size_mb} MiB)")
        self.client.add_devices(vm, [spec], f"Add disk {disk_name}")

    def attach_nic(self, vm: Any) -> None:
        network = self.handles.network
        backing = self.client.ethernet_backing(network)
        log("INFO", f"Adding network adapter on '{network.name}'")
        self.client.add_devices(vm, [create_nic_spec(backing)], "Add network adapter")

    def install_iso(self, vm: Any) -> UploadedFile:
        """Upload the ISO and insert it into a new CD-ROM.

        The CD-ROM is backed by the path just uploaded (``[ds] <vm>/<iso name>``),
        not by a fixed ``linuxkit.iso`` name, so any ISO file name boots.
        """
        uploaded = self.upload_file(self.request.iso_path, self.request.iso_name)
        self.attach_iso(vm, uploaded)
        return uploaded

    def install_disk(self, vm: Any) -> UploadedFile:
        uploaded = self.upload_file(self.request.disk_path, self.request.disk_name)
        self.attach_disk(vm, uploaded.name, DEFAULT_DISK_SIZE_MB)
        return uploaded

    def add_persistent_disk(self, vm: Any, attached_disk: Optional[str]) -> None:
        name = self.request.persistent_disk_name
        if attached_disk is not None and name == attached_disk:
            raise NameCollisionError(
                f"Cannot create persistent disk with a name identical to the attached disk ({name})"
            )
        self.attach_disk(vm, name, self.request.persistent_size_mb, create=True)

    # -- workflow ----------------------------------------------------------

    def run(self) -> Any:
        request = self.request
        try:
            self.connect()
            self.resolve_inventory(request)
            vm = self.create_vm(self.handles, request)

            if request.iso_path:
                self.install_iso(vm)

            attached_disk: Optional[str] = None
            if request.disk_path:
                attached_disk = self.install_disk(vm).name

            if request.persistent_size_mb:
                try:
                    self.add_persistent_disk(vm, attached_disk)
                except NameCollisionError as exc:
                    log("ERROR", str(exc))

            # The default network is resolved but only a named one gets a NIC.
            if request.network:
                self.attach_nic(vm)
            log("SUCCESS", f"Provisioning of '{request.name}' complete")
            return vm
        finally:
            self.close()
