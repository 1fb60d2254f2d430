"""
Base image management.

Handles checking for base images, downloading new ones, deleting them and
scanning the image directory for what is available.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Callable

from kvmctl.errors import AlreadyExists, CleanupFailed, DownloadFailed, StorageError
from kvmctl.paths import IMAGE_SUFFIX, ResourcePaths, validate_name
from kvmctl.utils import describe_failure, run_command


class ImageStore:
    """Base images stored as <home>/kvm/base/<name>.img."""

    def __init__(self, paths: ResourcePaths, runner: Callable = run_command):
        self.paths = paths
        self.runner = runner

    def exists(self, name: str) -> bool:
        validate_name(name, "image")
        return self.paths.image_file(name).is_file()

    def create(self, name: str, url: str) -> Path:
        """
        Download a base image.

        Args:
            name: Image name, the file becomes <name>.img
            url: Source URL handed to wget

        Returns:
            Path of the downloaded image

        Raises:
            AlreadyExists: If an image with this name is present
            DownloadFailed: If the download fails; no partial file is left
        """
        image_file = self.paths.image_file(name)
        if self.exists(name):
            raise AlreadyExists(f"Image {name} already exists at {image_file}")

        try:
            image_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DownloadFailed(f"Cannot prepare image directory {image_file.parent}: {e}") from e
        result = self.runner(["wget", "-q", "-O", str(image_file), url])
        if result.returncode != 0:
            image_file.unlink(missing_ok=True)
            raise DownloadFailed(
                f"Failed to download {url}: {describe_failure(result)}"
            )
        return image_file

    def delete(self, name: str) -> list[str]:
        """
        Delete a base image if present.

        Nothing stops deletion of an image that VM overlays still use as
        their backing file; those VMs are returned so the caller can warn.

        Returns:
            Names of VMs whose overlay disk is backed by this image

        Raises:
            CleanupFailed: If the image file cannot be removed
            StorageError: If the VM directories cannot be scanned
        """
        image_file = self.paths.image_file(name)
        if not self.exists(name):
            return []

        dependents = self.find_dependents(name)
        try:
            image_file.unlink()
        except OSError as e:
            raise CleanupFailed(f"Failed to remove {image_file}: {e}") from e
        return dependents

    def list(self) -> list[str]:
        """
        Scan the image directory for base images.

        Returns:
            Image names without extension, in directory enumeration order

        Raises:
            StorageError: If the image directory cannot be read
        """
        image_dir = self.paths.image_dir()
        if not image_dir.is_dir():
            return []
        names = []
        try:
            with os.scandir(image_dir) as entries:
                for entry in entries:
                    if entry.is_file() and entry.name.endswith(IMAGE_SUFFIX):
                        names.append(entry.name[: -len(IMAGE_SUFFIX)])
        except OSError as e:
            raise StorageError(f"Cannot read image directory {image_dir}: {e}") from e
        return names

    def find_dependents(self, name: str) -> list[str]:
        """Return VMs whose overlay disk uses this image as backing file."""
        image_file = self.paths.image_file(name).resolve()
        root = self.paths.root
        if not root.is_dir():
            return []

        try:
            vm_dirs = sorted(root.iterdir())
        except OSError as e:
            raise StorageError(f"Cannot read {root}: {e}") from e

        dependents = []
        for vm_dir in vm_dirs:
            if not vm_dir.is_dir() or vm_dir == self.paths.image_dir():
                continue
            disk = self.paths.vm_disk(vm_dir.name)
            if not disk.is_file():
                continue
            backing = self._backing_file(disk)
            if backing is not None and backing.resolve() == image_file:
                dependents.append(vm_dir.name)
        return dependents

    def _backing_file(self, disk: Path) -> Path | None:
        result = self.runner(["qemu-img", "info", "-U", "--output=json", str(disk)])
        if result.returncode != 0:
            return None
        try:
            info = json.loads(result.stdout)
        except ValueError:
            return None
        backing = info.get("full-backing-filename") or info.get("backing-filename")
        if not backing:
            return None
        backing = Path(backing)
        if not backing.is_absolute():
            backing = disk.parent / backing
        return backing
