"""vSphere inventory client for vsphere-provisioner.

Thin wrapper over pyvmomi's service instance. It owns the session and
translates SDK faults into the provisioning error kinds; it has no
knowledge of the workflow itself.
"""

from __future__ import annotations

import time
from typing import Any, List, Optional
from urllib.parse import quote

import requests
from pyVim.connect import Disconnect, SmartConnect
from pyVmomi import vim, vmodl

from vsphere_provisioner.constants import TASK_POLL_INTERVAL, UPLOAD_CONTENT_TYPE
from vsphere_provisioner.exceptions import (
    DeviceError,
    EndpointConnectionError,
    NotFoundError,
    TaskError,
    UploadError,
)
from vsphere_provisioner.models import Endpoint
from vsphere_provisioner.utils import log


def fault_message(fault: Any) -> str:
    """Best human-readable text of a vmodl fault."""
    message = getattr(fault, "msg", None) or getattr(fault, "localizedMessage", None)
    return str(message) if message else str(fault)


class InventoryClient:
    def __init__(self, endpoint: Endpoint) -> None:
        self.endpoint = endpoint
        self.si: Optional[Any] = None

    # -- session -----------------------------------------------------------

    def connect(self) -> "InventoryClient":
        ep = self.endpoint
        log("INFO", f"Connecting to {ep.host}:{ep.port} as {ep.username}")
        try:
            self.si = SmartConnect(
                host=ep.host,
                user=ep.username,
                pwd=ep.password,
                port=ep.port,
                path=ep.path,
                disableSslCertValidation=not ep.verify_ssl,
            )
        except vim.fault.InvalidLogin as exc:
            raise EndpointConnectionError(f"Login to {ep.host} rejected: {fault_message(exc)}") from exc
        except vmodl.MethodFault as exc:
            raise EndpointConnectionError(f"Failed to connect to {ep.host}: {fault_message(exc)}") from exc
        except OSError as exc:
            raise EndpointConnectionError(f"Failed to connect to {ep.host}:{ep.port}: {exc}") from exc
        return self

    def disconnect(self) -> None:
        if self.si is not None:
            Disconnect(self.si)
            self.si = None

    @property
    def content(self) -> Any:
        if self.si is None:
            raise EndpointConnectionError("Not connected to the management endpoint")
        return self.si.RetrieveContent()

    # -- inventory lookups -------------------------------------------------

    def _list(self, container: Any, vimtype: Any) -> List[Any]:
        view = self.content.viewManager.CreateContainerView(container, [vimtype], True)
        try:
            return list(view.view)
        finally:
            view.Destroy()

    @staticmethod
    def _pick(objects: List[Any], kind: str, name: str, scope: str) -> Any:
        """Select by name, or the single candidate when no name is given."""
        if name:
            for obj in objects:
                if obj.name == name:
                    return obj
            raise NotFoundError(f"{kind} '{name}' not found in {scope}")
        if not objects:
            raise NotFoundError(f"No {kind} found in {scope}")
        if len(objects) > 1:
            raise NotFoundError(f"Default {kind} resolves to multiple instances in {scope}, please specify")
        return objects[0]

    def find_datacenter(self, name: str = "") -> Any:
        datacenters = self._list(self.content.rootFolder, vim.Datacenter)
        return self._pick(datacenters, "datacenter", name, "the inventory")

    def find_datastore(self, datacenter: Any, name: str = "") -> Any:
        return self._pick(list(datacenter.datastore), "datastore", name, f"datacenter '{datacenter.name}'")

    def find_host(self, datacenter: Any, name: str = "") -> Any:
        hosts = self._list(datacenter.hostFolder, vim.HostSystem)
        return self._pick(hosts, "host", name, f"datacenter '{datacenter.name}'")

    def find_network(self, datacenter: Any, name: str = "") -> Any:
        return self._pick(list(datacenter.network), "network", name, f"datacenter '{datacenter.name}'")

    @staticmethod
    def resource_pool(host: Any) -> Any:
        pool = host.parent.resourcePool
        if pool is None:
            raise NotFoundError(f"Host '{host.name}' has no resource pool")
        return pool

    @staticmethod
    def vm_folder(datacenter: Any) -> Any:
        return datacenter.vmFolder

    # -- tasks -------------------------------------------------------------

    def create_vm(self, folder: Any, config_spec: Any, pool: Any, host: Any) -> Any:
        try:
            return folder.CreateVM_Task(config=config_spec, pool=pool, host=host)
        except vmodl.MethodFault as exc:
            raise TaskError(f"Create VM '{config_spec.name}' rejected: {fault_message(exc)}") from exc

    @staticmethod
    def wait_for_task(task: Any, action_name: str = "task") -> Any:
        """Block until ``task`` leaves the queued/running states.

        There is no timeout; the platform is trusted to settle the task.
        """
        while task.info.state not in (vim.TaskInfo.State.success, vim.TaskInfo.State.error):
            time.sleep(TASK_POLL_INTERVAL)
        if task.info.state == vim.TaskInfo.State.error:
            raise TaskError(f"{action_name} did not complete successfully: {fault_message(task.info.error)}")
        log("DEBUG", f"{action_name} completed successfully")
        return task.info.result

    # -- datastore files ---------------------------------------------------

    def _session_cookie(self) -> dict:
        # "vmware_soap_session="<id>"; Path=/; HttpOnly; Secure;"
        raw = self.si._stub.cookie
        name, rest = raw.split("=", 1)
        value = rest.split(";", 1)[0]
        return {name: value}

    def upload_file(self, local_path: str, datacenter_name: str, datastore_name: str, remote_path: str) -> None:
        """PUT ``local_path`` to ``remote_path`` relative to the datastore root."""
        ep = self.endpoint
        url = f"https://{ep.host}:{ep.port}/folder/{quote(remote_path)}"
        params = {"dcPath": datacenter_name, "dsName": datastore_name}
        headers = {"Content-Type": UPLOAD_CONTENT_TYPE}
        try:
            with open(local_path, "rb") as payload:
                response = requests.put(
                    url,
                    params=params,
                    data=payload,
                    headers=headers,
                    cookies=self._session_cookie(),
                    verify=ep.verify_ssl,
                )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise UploadError(f"Upload of {local_path} to [{datastore_name}] {remote_path} failed: {exc}") from exc
        except OSError as exc:
            raise UploadError(f"Cannot read {local_path}: {exc}") from exc

    # -- devices -----------------------------------------------------------

    @staticmethod
    def devices(vm: Any) -> List[Any]:
        return list(vm.config.hardware.device)

    def add_devices(self, vm: Any, device_specs: List[Any], action_name: str = "Reconfigure VM") -> None:
        spec = vim.vm.ConfigSpec(deviceChange=device_specs)
        try:
            task = vm.ReconfigVM_Task(spec=spec)
        except vmodl.MethodFault as exc:
            raise DeviceError(f"{action_name} rejected: {fault_message(exc)}") from exc
        try:
            self.wait_for_task(task, action_name)
        except TaskError as exc:
            raise DeviceError(str(exc)) from exc

    @staticmethod
    def ethernet_backing(network: Any) -> Any:
        """NIC backing for a standard or distributed port group."""
        if isinstance(network, vim.dvs.DistributedVirtualPortgroup):
            port = vim.dvs.PortConnection(
                portgroupKey=network.key,
                switchUuid=network.config.distributedVirtualSwitch.uuid,
            )
            return vim.vm.device.VirtualEthernetCard.DistributedVirtualPortBackingInfo(port=port)
        if isinstance(network, vim.OpaqueNetwork):
            return vim.vm.device.VirtualEthernetCard.OpaqueNetworkBackingInfo(
                opaqueNetworkId=network.summary.opaqueNetworkId,
                opaqueNetworkType=network.summary.opaqueNetworkType,
            )
        return vim.vm.device.VirtualEthernetCard.NetworkBackingInfo(deviceName=network.name, network=network)
