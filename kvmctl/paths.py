"""
Canonical filesystem locations for VMs and base images.

All VM state lives under <home>/kvm/<name>/ and all base images under
<home>/kvm/base/<name>.img.
"""

from pathlib import Path

from kvmctl.errors import InvalidArguments

IMAGE_SUFFIX = ".img"
IMAGE_DIR_NAME = "base"


def validate_name(name: str, kind: str = "VM") -> str:
    """
    Check that a VM or image name maps to a single path component.

    VM names may not collide with the base image directory.

    Raises:
        InvalidArguments: If the name is empty, contains a separator or
            NUL, is "." / "..", or is reserved
    """
    if not name or "/" in name or "\0" in name or name in (".", ".."):
        raise InvalidArguments(f"Invalid {kind} name: {name!r}")
    if kind == "VM" and name == IMAGE_DIR_NAME:
        raise InvalidArguments(f"Invalid VM name: {name!r} is reserved for base images")
    return name


class ResourcePaths:
    """Pure (kind, name) -> path mapping rooted at a home directory."""

    def __init__(self, home: Path):
        self.root = Path(home) / "kvm"

    def vm_path(self, name: str) -> Path:
        return self.root / name

    def vm_disk(self, name: str) -> Path:
        return self.vm_path(name) / f"{name}.qcow2"

    def vm_seed(self, name: str) -> Path:
        return self.vm_path(name) / f"{name}-seed.qcow2"

    def user_data(self, name: str) -> Path:
        return self.vm_path(name) / "user-data"

    def meta_data(self, name: str) -> Path:
        return self.vm_path(name) / "meta-data"

    def image_dir(self) -> Path:
        return self.root / IMAGE_DIR_NAME

    def image_file(self, name: str) -> Path:
        return self.image_dir() / f"{name}{IMAGE_SUFFIX}"
