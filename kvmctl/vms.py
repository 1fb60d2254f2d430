"""
VM lifecycle.

Creation runs a strictly ordered pipeline (directory, overlay disk,
cloud-init seed, domain registration) and removes the VM directory if any
step after allocation fails. Deletion runs forward only and stops at the
first failing step.
"""

import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator

from kvmctl.cloudinit import CloudInitSeedBuilder
from kvmctl.config import Settings, VmSpec
from kvmctl.errors import (
    AlreadyExists,
    CleanupFailed,
    DiskCreationFailed,
    DomainRegistrationFailed,
    ForceStopFailed,
    NotFound,
    ShutdownFailed,
    StorageError,
    UndefineFailed,
)
from kvmctl.paths import ResourcePaths, validate_name
from kvmctl.transcript import logger
from kvmctl.utils import describe_failure, run_command


@contextmanager
def provisioning(work_dir: Path) -> Iterator[Path]:
    """
    Own a freshly allocated VM directory until the pipeline completes.

    The directory must not exist beforehand; it is created atomically so two
    concurrent creations of the same VM cannot both succeed. If the body
    raises, the directory and everything written into it are removed.

    Raises:
        AlreadyExists: If the directory already exists
        StorageError: If the directory cannot be created
    """
    try:
        work_dir.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Cannot create {work_dir.parent}: {e}") from e
    try:
        work_dir.mkdir()
    except FileExistsError as e:
        raise AlreadyExists(f"VM {work_dir.name} already exists at {work_dir}") from e
    except OSError as e:
        raise StorageError(f"Cannot create {work_dir}: {e}") from e

    try:
        yield work_dir
    except BaseException:
        logger.info("rolling back %s", work_dir)
        shutil.rmtree(work_dir, ignore_errors=True)
        raise


class VmProvisioner:
    """Creates VMs from a base image."""

    def __init__(
        self,
        paths: ResourcePaths,
        settings: Settings,
        seed_builder: CloudInitSeedBuilder | None = None,
        runner: Callable = run_command,
    ):
        self.paths = paths
        self.settings = settings
        self.runner = runner
        self.seed_builder = seed_builder or CloudInitSeedBuilder(
            username=settings.username,
            password=settings.password,
            runner=runner,
        )

    def create(self, spec: VmSpec) -> Path:
        """
        Provision a VM and start it.

        Args:
            spec: Resolved VM parameters

        Returns:
            The VM's working directory

        Raises:
            AlreadyExists: If the VM directory already exists
            StorageError: If the VM directory cannot be created
            DiskCreationFailed: If the base image is missing or qemu-img fails
            SeedGenerationFailed: If the cloud-init seed cannot be built
            DomainRegistrationFailed: If virt-install fails
        """
        with provisioning(self.paths.vm_path(spec.name)) as work_dir:
            disk = self._create_overlay_disk(spec)
            seed = self.seed_builder.build(work_dir, spec.name, spec.key_path)
            self._register_domain(spec, disk, seed)
        return work_dir

    def _create_overlay_disk(self, spec: VmSpec) -> Path:
        base = self.paths.image_file(spec.image)
        if not base.is_file():
            raise DiskCreationFailed(f"Base image {spec.image} not found at {base}")

        disk = self.paths.vm_disk(spec.name)
        result = self.runner([
            "qemu-img", "create",
            "-f", "qcow2",
            "-F", "qcow2",
            "-b", str(base),
            str(disk),
            f"{spec.disk_gb}G",
        ])
        if result.returncode != 0:
            raise DiskCreationFailed(
                f"qemu-img failed for {spec.name}: {describe_failure(result)}"
            )
        return disk

    def _register_domain(self, spec: VmSpec, disk: Path, seed: Path) -> None:
        result = self.runner(
            [
                "virt-install",
                "--name", spec.name,
                "--vcpus", str(spec.cpus),
                "--memory", str(spec.ram_mb),
                "--disk", f"path={disk},format=qcow2,bus=virtio",
                "--disk", f"path={seed},format=qcow2,bus=virtio",
                "--os-variant", self.settings.os_variant,
                "--network", self.settings.network,
                "--import",
                "--noautoconsole",
            ],
            sudo=self.settings.sudo,
        )
        if result.returncode != 0:
            raise DomainRegistrationFailed(
                f"virt-install failed for {spec.name}: {describe_failure(result)}"
            )


class VmDecommissioner:
    """Stops, undefines and removes VMs."""

    def __init__(
        self,
        paths: ResourcePaths,
        settings: Settings,
        runner: Callable = run_command,
    ):
        self.paths = paths
        self.settings = settings
        self.runner = runner

    def delete(self, name: str) -> None:
        """
        Tear a VM down.

        Each step must succeed before the next runs. A failure leaves the VM
        in whatever state the failed step produced.

        Raises:
            InvalidArguments: If the name is not a valid VM name
            NotFound: If the VM directory does not exist
            ShutdownFailed, ForceStopFailed, UndefineFailed: If virsh fails
            CleanupFailed: If the VM directory cannot be removed
        """
        validate_name(name, "VM")
        work_dir = self.paths.vm_path(name)
        if not work_dir.is_dir():
            raise NotFound(f"VM {name} not found at {work_dir}")

        self._virsh("shutdown", name, ShutdownFailed)
        self._virsh("destroy", name, ForceStopFailed)
        self._virsh("undefine", name, UndefineFailed)

        try:
            shutil.rmtree(work_dir)
        except OSError as e:
            raise CleanupFailed(f"Failed to remove {work_dir}: {e}") from e

    def _virsh(self, action: str, name: str, error: type) -> None:
        result = self.runner(["virsh", action, name], sudo=self.settings.sudo)
        if result.returncode != 0:
            raise error(f"virsh {action} {name} failed: {describe_failure(result)}")
