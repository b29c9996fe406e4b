"""Global constants and defaults for vsphere-provisioner."""

from __future__ import annotations

import os
import re

TRUTHY = {"1", "true", "yes", "on"}

# Environment variables consulted when a flag is not given on the command line.
ENV_URL = "VSPHERE_URL"
ENV_DATACENTER = "VSPHERE_DATACENTER"
ENV_DATASTORE = "VSPHERE_DATASTORE"
ENV_NETWORK = "VSPHERE_NETWORK"
ENV_HOST = "VSPHERE_HOST"
ENV_VERIFY_SSL = "VSPHERE_VERIFY_SSL"
ENV_PROFILE = "VSPHERE_PROFILE"

DEFAULT_VM_NAME = "default"
DEFAULT_CPUS = 1
DEFAULT_MEMORY_MB = 1024
DEFAULT_DISK_SIZE_MB = 1024
DEFAULT_PERSISTENT_DISK_NAME = "persistent.vmdk"
DEFAULT_GUEST_ID = "otherLinux64Guest"
DEFAULT_PORT = 443
DEFAULT_SDK_PATH = "/sdk"

# Device layout
SCSI_CONTROLLER_KEY = 1000
SCSI_RESERVED_UNIT = 7
SCSI_MAX_UNITS = 16
IDE_MAX_UNITS = 2
NIC_ADDRESS_TYPE = "generated"
DISK_MODE = "persistent"

TASK_POLL_INTERVAL = 2.0
UPLOAD_CONTENT_TYPE = "application/octet-stream"

_LOG_VERBOSE = os.environ.get("LOG_VERBOSE", "").lower() in TRUTHY

_SENSITIVE_FIELDS = {"password"}

URL_SCHEMES = {"https"}

# Keys accepted in a YAML profile; they mirror the long CLI flags.
PROFILE_KEYS = {
    "url",
    "vm_name",
    "iso",
    "disk",
    "datastore",
    "network",
    "host",
    "datacenter",
    "persistent_size",
    "persistent_name",
    "cpus",
    "mem",
    "guest_id",
    "verify_ssl",
}

VMDK_NAME_RE = re.compile(r"^[^/\\\[\]]+\.vmdk$")
