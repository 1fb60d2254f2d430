"""Read-only listings of domains and base images."""

from typing import Callable

from kvmctl.errors import CommandFailed
from kvmctl.images import ImageStore
from kvmctl.utils import describe_failure, run_command

IMAGES_HEADER = "Images:"


class InventoryQuery:
    def __init__(self, images: ImageStore, sudo: bool = False, runner: Callable = run_command):
        self.images = images
        self.sudo = sudo
        self.runner = runner

    def list_vms(self) -> str:
        """
        Return the domain manager's own listing of all domains, unparsed.

        Raises:
            CommandFailed: If virsh fails
        """
        result = self.runner(["virsh", "list", "--all"], sudo=self.sudo)
        if result.returncode != 0:
            raise CommandFailed(f"virsh list failed: {describe_failure(result)}")
        return result.stdout

    def list_images(self) -> list[str]:
        return [IMAGES_HEADER] + self.images.list()
