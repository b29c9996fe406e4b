"""vsphere-provisioner package."""

__all__ = [
    "cli",
    "config",
    "constants",
    "devices",
    "exceptions",
    "inventory",
    "models",
    "provisioner",
    "utils",
]
