"""
Configuration management for kvmctl.

Handles loading the optional config.yaml and turning it, together with
command-line options, into immutable settings objects.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from kvmctl.errors import InvalidArguments
from kvmctl.paths import validate_name

# Default paths
CONFIG_FILE = Path("~/.config/kvmctl/config.yaml").expanduser()
CONFIG_ENV = "KVMCTL_CONFIG"

DEFAULT_CPUS = 2
DEFAULT_RAM_MB = 2048
DEFAULT_DISK_GB = 10
DEFAULT_IMAGE = "ubuntu"
DEFAULT_KEY = "~/.ssh/id_rsa.pub"


def config_path() -> Path:
    """Return the config file location, honouring $KVMCTL_CONFIG."""
    override = os.environ.get(CONFIG_ENV)
    if override:
        return Path(override).expanduser()
    return CONFIG_FILE


def load_config(path: Path | None = None) -> dict[str, Any]:
    """
    Load configuration from config.yaml.

    Args:
        path: Explicit config file, defaults to config_path()

    Returns:
        Dictionary containing configuration, or empty dict if file doesn't exist

    Raises:
        InvalidArguments: If the file is not valid YAML or not a mapping
    """
    path = path or config_path()
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise InvalidArguments(f"Invalid config file {path}: {e}") from e
    except OSError as e:
        raise InvalidArguments(f"Cannot read config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidArguments(f"Invalid config file {path}: expected a mapping")
    return data


@dataclass(frozen=True)
class Settings:
    """Per-invocation settings resolved from config.yaml."""

    home: Path
    transcript: Path
    default_cpus: int = DEFAULT_CPUS
    default_ram_mb: int = DEFAULT_RAM_MB
    default_disk_gb: int = DEFAULT_DISK_GB
    default_image: str = DEFAULT_IMAGE
    default_key: str = DEFAULT_KEY
    username: str = "kvm"
    password: str = "kvm"
    os_variant: str = "generic"
    network: str = "network=default"
    sudo: bool = False

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "Settings":
        paths_config = config.get("paths") or {}
        defaults_config = config.get("defaults") or {}
        cloudinit_config = config.get("cloud_init") or {}
        libvirt_config = config.get("libvirt") or {}

        home = Path(paths_config.get("home", Path.home())).expanduser()
        transcript = paths_config.get("transcript")
        transcript = (
            Path(transcript).expanduser() if transcript else home / "kvm" / "kvmctl.log"
        )

        try:
            return cls(
                home=home,
                transcript=transcript,
                default_cpus=int(defaults_config.get("cpu", DEFAULT_CPUS)),
                default_ram_mb=int(defaults_config.get("ram", DEFAULT_RAM_MB)),
                default_disk_gb=int(defaults_config.get("disk", DEFAULT_DISK_GB)),
                default_image=str(defaults_config.get("image", DEFAULT_IMAGE)),
                default_key=str(defaults_config.get("key", DEFAULT_KEY)),
                username=str(cloudinit_config.get("username", "kvm")),
                password=str(cloudinit_config.get("password", "kvm")),
                os_variant=str(libvirt_config.get("os_variant", "generic")),
                network=str(libvirt_config.get("network", "network=default")),
                sudo=bool(libvirt_config.get("sudo", False)),
            )
        except (TypeError, ValueError) as e:
            raise InvalidArguments(f"Invalid value in config defaults: {e}") from e


@dataclass(frozen=True)
class VmSpec:
    """Everything needed to provision one VM."""

    name: str
    cpus: int
    ram_mb: int
    disk_gb: int
    image: str
    key_path: Path

    def __post_init__(self):
        validate_name(self.name, "VM")
        for label, value in (("cpu", self.cpus), ("ram", self.ram_mb), ("disk", self.disk_gb)):
            if value < 1:
                raise InvalidArguments(f"--{label} must be >= 1 (got {value})")
        validate_name(self.image, "image")

    @classmethod
    def build(
        cls,
        settings: Settings,
        name: str,
        cpus: int | None = None,
        ram_mb: int | None = None,
        disk_gb: int | None = None,
        image: str | None = None,
        key_path: str | None = None,
    ) -> "VmSpec":
        """Fill unset options from the configured defaults."""
        return cls(
            name=name,
            cpus=settings.default_cpus if cpus is None else cpus,
            ram_mb=settings.default_ram_mb if ram_mb is None else ram_mb,
            disk_gb=settings.default_disk_gb if disk_gb is None else disk_gb,
            image=image or settings.default_image,
            key_path=Path(key_path or settings.default_key).expanduser(),
        )
