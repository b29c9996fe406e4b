"""Allow ``python -m vsphere_provisioner``."""

from vsphere_provisioner.cli import main

raise SystemExit(main())
