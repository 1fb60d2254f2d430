"""Shared test fixtures and a fake for the external tools kvmctl drives."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path

import pytest
import yaml

from kvmctl.config import Settings
from kvmctl.paths import ResourcePaths
from kvmctl.transcript import stop_transcript

VIRSH_LIST_HEADER = " Id   Name   State\n----------------------\n"


class FakeTools:
    """
    Stand-in for subprocess.run.

    Records every command line and simulates the files and domains that
    wget, qemu-img, cloud-localds, virt-install and virsh would produce.
    Failures are configured per tool ("qemu-img") or per tool action
    ("virsh shutdown").
    """

    def __init__(self):
        self.calls: list[list[str]] = []
        self.failures: dict[str, tuple[int, str]] = {}
        self.domains: list[str] = []
        self.backing: dict[str, str] = {}

    def fail(self, key: str, returncode: int = 1, stderr: str = "error: tool failed") -> None:
        self.failures[key] = (returncode, stderr)

    def tools_called(self) -> list[str]:
        return [call[0] for call in self.calls]

    def __call__(self, cmd, **kwargs):
        cmd = list(cmd)
        self.calls.append(cmd)
        tool = cmd[0]
        action = f"{tool} {cmd[1]}" if len(cmd) > 1 else tool

        failure = self.failures.get(action) or self.failures.get(tool)
        if failure is not None:
            returncode, stderr = failure
            if tool == "wget":
                # wget leaves a partial file behind
                Path(cmd[cmd.index("-O") + 1]).write_bytes(b"partial")
            return subprocess.CompletedProcess(cmd, returncode, "", stderr)

        stdout = ""
        if tool == "wget":
            Path(cmd[cmd.index("-O") + 1]).write_bytes(b"QFI\xfb image")
        elif action == "qemu-img create":
            disk = cmd[-2]
            Path(disk).write_bytes(b"QFI\xfb overlay")
            self.backing[disk] = cmd[cmd.index("-b") + 1]
        elif action == "qemu-img info":
            info = {"filename": cmd[-1], "format": "qcow2"}
            if cmd[-1] in self.backing:
                info["backing-filename"] = self.backing[cmd[-1]]
            stdout = json.dumps(info)
        elif tool == "cloud-localds":
            Path(cmd[3]).write_bytes(b"QFI\xfb seed")
        elif tool == "virt-install":
            self.domains.append(cmd[cmd.index("--name") + 1])
        elif action == "virsh list":
            stdout = VIRSH_LIST_HEADER + "".join(
                f" -    {name}   running\n" for name in self.domains
            )
            stdout += "\n"
        elif action == "virsh undefine":
            if cmd[2] in self.domains:
                self.domains.remove(cmd[2])
        return subprocess.CompletedProcess(cmd, 0, stdout, "")


@pytest.fixture(autouse=True)
def _close_transcript():
    yield
    stop_transcript()


@pytest.fixture
def tools(monkeypatch) -> FakeTools:
    fake = FakeTools()
    monkeypatch.setattr("kvmctl.utils.subprocess.run", fake)
    return fake


@pytest.fixture
def ssh_key(tmp_path) -> Path:
    key = tmp_path / "id_rsa.pub"
    key.write_text("ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQC7 user@host\n")
    return key


@pytest.fixture
def settings(tmp_path, ssh_key) -> Settings:
    return Settings(
        home=tmp_path,
        transcript=tmp_path / "kvm" / "kvmctl.log",
        default_key=str(ssh_key),
    )


@pytest.fixture
def paths(tmp_path) -> ResourcePaths:
    return ResourcePaths(tmp_path)


@pytest.fixture
def base_image(paths) -> Path:
    image = paths.image_file("ubuntu")
    image.parent.mkdir(parents=True)
    image.write_bytes(b"QFI\xfb base")
    return image


@pytest.fixture
def config_file(tmp_path, ssh_key, monkeypatch) -> Path:
    """Point kvmctl at a config.yaml rooted in tmp_path."""
    config = tmp_path / "config.yaml"
    config.write_text(
        yaml.safe_dump(
            {
                "paths": {"home": str(tmp_path)},
                "defaults": {"key": str(ssh_key)},
            }
        )
    )
    monkeypatch.setenv("KVMCTL_CONFIG", str(config))
    return config
