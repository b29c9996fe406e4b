"""Shared test fixtures for vsphere-provisioner tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from pyVmomi import vim

from vsphere_provisioner.inventory import InventoryClient
from vsphere_provisioner.models import Endpoint, InventoryHandles, ProvisionConfig, VMRequest
from vsphere_provisioner.provisioner import Provisioner


def named(name: str, spec=None) -> MagicMock:
    """MagicMock whose ``.name`` attribute is ``name`` (the constructor kwarg sets the repr)."""
    obj = MagicMock(spec=spec) if spec is not None else MagicMock()
    obj.name = name
    return obj


@pytest.fixture
def endpoint() -> Endpoint:
    return Endpoint(host="vcenter.example.com", username="admin", password="s3cret")


@pytest.fixture
def default_request() -> VMRequest:
    return VMRequest(name="vm1", datastore="ds1")


@pytest.fixture
def default_config(endpoint, default_request) -> ProvisionConfig:
    return ProvisionConfig(endpoint=endpoint, request=default_request)


@pytest.fixture
def vm_devices() -> list:
    """Hardware of a freshly created VM: two IDE controllers and the PVSCSI controller."""
    return [
        vim.vm.device.VirtualIDEController(key=200, busNumber=0),
        vim.vm.device.VirtualIDEController(key=201, busNumber=1),
        vim.vm.device.ParaVirtualSCSIController(key=1000, busNumber=0),
    ]


@pytest.fixture
def handles() -> InventoryHandles:
    return InventoryHandles(
        datacenter=named("dc1"),
        datastore=vim.Datastore("datastore-11"),
        host=named("esx1"),
        resource_pool=MagicMock(),
        vm_folder=MagicMock(),
        datacenter_name="dc1",
        datastore_name="ds1",
        network=named("VM Network"),
    )


@pytest.fixture
def fake_client(handles, vm_devices) -> MagicMock:
    """InventoryClient double wired to resolve ``handles`` and report ``vm_devices``."""
    client = MagicMock(spec=InventoryClient)
    client.connect.return_value = client
    client.find_datacenter.return_value = handles.datacenter
    datastore = named("ds1", spec=vim.Datastore)
    client.find_datastore.return_value = datastore
    client.find_host.return_value = handles.host
    client.find_network.return_value = handles.network
    client.resource_pool.return_value = handles.resource_pool
    client.vm_folder.return_value = handles.vm_folder
    client.wait_for_task.return_value = MagicMock(name="vm")
    client.devices.return_value = vm_devices
    client.ethernet_backing.return_value = vim.vm.device.VirtualEthernetCard.NetworkBackingInfo(deviceName="VM Network")
    return client


@pytest.fixture
def make_provisioner(endpoint, fake_client):
    """Build a Provisioner for a request, using ``fake_client`` as its session."""

    def _make(request: VMRequest) -> Provisioner:
        cfg = ProvisionConfig(endpoint=endpoint, request=request)
        return Provisioner(cfg, client_factory=lambda _endpoint: fake_client)

    return _make


# Environment variables build_config() may read; cleared for a clean slate.
_CONFIG_ENV_VARS = [
    "VSPHERE_URL",
    "VSPHERE_DATACENTER",
    "VSPHERE_DATASTORE",
    "VSPHERE_NETWORK",
    "VSPHERE_HOST",
    "VSPHERE_VERIFY_SSL",
    "VSPHERE_PROFILE",
]


@pytest.fixture
def clean_env(monkeypatch):
    for key in _CONFIG_ENV_VARS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def named_mock():
    return named
