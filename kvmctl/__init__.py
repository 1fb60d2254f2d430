"""
kvmctl - local KVM VM orchestration

This package creates and deletes KVM virtual machines and the base images
they are built from, driving virsh, virt-install, qemu-img and cloud-localds.
"""

__version__ = "0.1.0"

from kvmctl.config import Settings, VmSpec, load_config
from kvmctl.images import ImageStore
from kvmctl.inventory import InventoryQuery
from kvmctl.paths import ResourcePaths
from kvmctl.utils import run_command
from kvmctl.vms import VmDecommissioner, VmProvisioner

__all__ = [
    "__version__",
    "load_config",
    "run_command",
    "Settings",
    "VmSpec",
    "ResourcePaths",
    "ImageStore",
    "InventoryQuery",
    "VmProvisioner",
    "VmDecommissioner",
]
