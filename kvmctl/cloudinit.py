"""
Cloud-init seed generation.

Renders the user-data document for a new VM and packs it, together with an
empty meta-data document, into a seed volume with cloud-localds.
"""

from pathlib import Path
from typing import Callable

from kvmctl.errors import SeedGenerationFailed
from kvmctl.utils import describe_failure, run_command

USER_DATA_TEMPLATE = """\
#cloud-config
hostname: {hostname}
users:
  - name: {username}
    sudo: ALL=(ALL) NOPASSWD:ALL
    groups: sudo
    shell: /bin/bash
    lock_passwd: false
    ssh_authorized_keys:
      - {ssh_key}
ssh_pwauth: true
disable_root: false
chpasswd:
  expire: false
  users:
    - name: {username}
      password: {password}
      type: text
"""


class CloudInitSeedBuilder:
    """Builds <work_dir>/<hostname>-seed.qcow2 for first-boot configuration."""

    def __init__(
        self,
        username: str = "kvm",
        password: str = "kvm",
        runner: Callable = run_command,
    ):
        self.username = username
        self.password = password
        self.runner = runner

    def render(self, hostname: str, ssh_key_path: Path) -> str:
        """
        Render the cloud-config user-data document.

        Raises:
            SeedGenerationFailed: If the SSH public key cannot be read
        """
        try:
            ssh_key = Path(ssh_key_path).read_text().strip()
        except OSError as e:
            raise SeedGenerationFailed(
                f"Cannot read SSH public key {ssh_key_path}: {e.strerror or e}"
            ) from e
        if not ssh_key:
            raise SeedGenerationFailed(f"SSH public key {ssh_key_path} is empty")

        return USER_DATA_TEMPLATE.format(
            hostname=hostname,
            username=self.username,
            password=self.password,
            ssh_key=ssh_key,
        )

    def build(self, work_dir: Path, hostname: str, ssh_key_path: Path) -> Path:
        """
        Write user-data and meta-data into work_dir and build the seed volume.

        The caller owns work_dir and is responsible for removing it if this
        fails.

        Returns:
            Path of the seed volume

        Raises:
            SeedGenerationFailed: If rendering or cloud-localds fails
        """
        user_data = work_dir / "user-data"
        meta_data = work_dir / "meta-data"
        seed = work_dir / f"{hostname}-seed.qcow2"

        document = self.render(hostname, ssh_key_path)
        try:
            user_data.write_text(document)
            meta_data.write_text("")
        except OSError as e:
            raise SeedGenerationFailed(f"Cannot write cloud-init data in {work_dir}: {e}") from e

        result = self.runner([
            "cloud-localds",
            "-d", "qcow2",
            str(seed),
            str(user_data),
            str(meta_data),
        ])
        if result.returncode != 0:
            raise SeedGenerationFailed(
                f"cloud-localds failed for {hostname}: {describe_failure(result)}"
            )
        return seed
