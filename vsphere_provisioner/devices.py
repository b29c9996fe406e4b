"""Virtual device spec builders for vsphere-provisioner.

Every builder returns a ``vim.vm.device.VirtualDeviceSpec`` with operation
``add``; the caller submits it through ``InventoryClient.add_devices`` (or,
for the SCSI controller, inside the create-VM config spec).
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Set

from pyVmomi import vim

from vsphere_provisioner.constants import (
    DISK_MODE,
    IDE_MAX_UNITS,
    NIC_ADDRESS_TYPE,
    SCSI_CONTROLLER_KEY,
    SCSI_MAX_UNITS,
    SCSI_RESERVED_UNIT,
)
from vsphere_provisioner.exceptions import DeviceError

# Temporary keys for devices that do not exist yet; vSphere assigns real ones.
_CDROM_KEY = -101
_DISK_KEY = -201
_NIC_KEY = -301


def _connect_info() -> vim.vm.device.VirtualDevice.ConnectInfo:
    return vim.vm.device.VirtualDevice.ConnectInfo(
        startConnected=True,
        connected=True,
        allowGuestControl=True,
    )


def _add_spec(device: Any, create_file: bool = False) -> vim.vm.device.VirtualDeviceSpec:
    spec = vim.vm.device.VirtualDeviceSpec()
    spec.operation = vim.vm.device.VirtualDeviceSpec.Operation.add
    if create_file:
        spec.fileOperation = vim.vm.device.VirtualDeviceSpec.FileOperation.create
    spec.device = device
    return spec


def create_scsi_controller_spec() -> vim.vm.device.VirtualDeviceSpec:
    """Paravirtual SCSI controller bundled into the create-VM spec."""
    controller = vim.vm.device.ParaVirtualSCSIController()
    controller.key = SCSI_CONTROLLER_KEY
    controller.busNumber = 0
    controller.sharedBus = vim.vm.device.VirtualSCSIController.Sharing.noSharing
    return _add_spec(controller)


def find_ide_controller(devices: Iterable[Any]) -> vim.vm.device.VirtualIDEController:
    """Return the first IDE controller that still has a free slot."""
    for device in devices:
        if isinstance(device, vim.vm.device.VirtualIDEController):
            if len(device.device or []) < IDE_MAX_UNITS:
                return device
    raise DeviceError("No IDE controller with a free slot found on the virtual machine")


def find_scsi_controller(devices: Iterable[Any]) -> vim.vm.device.VirtualSCSIController:
    for device in devices:
        if isinstance(device, vim.vm.device.VirtualSCSIController):
            return device
    raise DeviceError("No SCSI disk controller found on the virtual machine")


def next_unit_number(
    devices: Iterable[Any],
    controller: Any,
    max_units: int,
    reserved: Optional[int] = None,
) -> int:
    """Lowest unit number on ``controller`` not taken by an existing device."""
    used: Set[int] = set()
    for device in devices:
        if getattr(device, "controllerKey", None) == controller.key and device.unitNumber is not None:
            used.add(device.unitNumber)
    for unit in range(max_units):
        if unit != reserved and unit not in used:
            return unit
    raise DeviceError(f"No free unit number left on controller {controller.key}")


def create_cdrom_spec(devices: List[Any], datastore: Any, iso_path: str) -> vim.vm.device.VirtualDeviceSpec:
    """CD-ROM on a free IDE slot with ``iso_path`` (a ``[ds] dir/file`` path) inserted."""
    controller = find_ide_controller(devices)
    cdrom = vim.vm.device.VirtualCdrom()
    cdrom.key = _CDROM_KEY
    cdrom.controllerKey = controller.key
    cdrom.unitNumber = next_unit_number(devices, controller, IDE_MAX_UNITS)
    cdrom.backing = vim.vm.device.VirtualCdrom.IsoBackingInfo(fileName=iso_path, datastore=datastore)
    cdrom.connectable = _connect_info()
    return _add_spec(cdrom)


def create_disk_spec(
    devices: List[Any],
    datastore: Any,
    file_path: str,
    size_mb: int,
    create: bool = False,
) -> vim.vm.device.VirtualDeviceSpec:
    """Disk on the SCSI controller backed by ``file_path``.

    ``create`` asks vSphere to create the backing file; otherwise the file
    must already exist on the datastore.
    """
    controller = find_scsi_controller(devices)
    backing = vim.vm.device.VirtualDisk.FlatVer2BackingInfo()
    backing.fileName = file_path
    backing.datastore = datastore
    backing.diskMode = DISK_MODE
    if create:
        backing.thinProvisioned = True

    disk = vim.vm.device.VirtualDisk()
    disk.key = _DISK_KEY
    disk.controllerKey = controller.key
    disk.unitNumber = next_unit_number(devices, controller, SCSI_MAX_UNITS, reserved=SCSI_RESERVED_UNIT)
    disk.capacityInKB = size_mb * 1024
    disk.backing = backing
    return _add_spec(disk, create_file=create)


def create_nic_spec(backing: Any) -> vim.vm.device.VirtualDeviceSpec:
    nic = vim.vm.device.VirtualVmxnet3()
    nic.key = _NIC_KEY
    nic.backing = backing
    nic.addressType = NIC_ADDRESS_TYPE
    nic.connectable = _connect_info()
    return _add_spec(nic)
