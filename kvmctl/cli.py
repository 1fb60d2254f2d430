"""
CLI setup and entry point.

Defines the Click command tree (verb, then resource noun) and maps every
failure, including usage errors, onto exit status 1.
"""

import sys

import click

from kvmctl import __version__
from kvmctl.commands import (
    AppContext,
    console,
    create_image,
    create_vm,
    delete_image,
    delete_vm,
    fail,
    get_images,
    get_vms,
)
from kvmctl.config import Settings, load_config
from kvmctl.errors import KvmctlError
from kvmctl.transcript import start_transcript

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name="kvmctl")
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="On error, also print the transcript of external tool output"
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool):
    """
    kvmctl - local KVM virtual machine manager.

    Creates and deletes VMs and base images under ~/kvm.
    """
    try:
        settings = Settings.from_config(load_config())
    except KvmctlError as e:
        fail(None, e)

    try:
        start_transcript(settings.transcript)
    except OSError as e:
        console.print(f"[yellow]⚠[/] Transcript disabled: {e}")

    ctx.obj = AppContext(settings=settings, verbose=verbose)


@cli.group()
def create():
    """Create a VM or a base image."""


@cli.group()
def delete():
    """Delete a VM or a base image."""


@cli.group()
def get():
    """List VMs or base images."""


@create.command("vm")
@click.argument("name")
@click.option("--cpu", "cpus", type=int, help="Number of vCPUs (default: 2)")
@click.option("--ram", "ram_mb", type=int, help="Memory in MiB (default: 2048)")
@click.option("--disk", "disk_gb", type=int, help="Disk size in GiB (default: 10)")
@click.option("--image", help="Base image name (default: ubuntu)")
@click.option("--key", "key_path", help="SSH public key (default: ~/.ssh/id_rsa.pub)")
@click.pass_obj
def create_vm_cmd(
    app: AppContext,
    name: str,
    cpus: int | None,
    ram_mb: int | None,
    disk_gb: int | None,
    image: str | None,
    key_path: str | None,
):
    """Create and start VM NAME from a base image."""
    create_vm(app, name, cpus, ram_mb, disk_gb, image, key_path)


@create.command("image")
@click.argument("name")
@click.option("--url", required=True, help="URL to download the image from")
@click.pass_obj
def create_image_cmd(app: AppContext, name: str, url: str):
    """Download base image NAME."""
    create_image(app, name, url)


@delete.command("vm")
@click.argument("name")
@click.pass_obj
def delete_vm_cmd(app: AppContext, name: str):
    """Shut down and remove VM NAME."""
    delete_vm(app, name)


@delete.command("image")
@click.argument("name")
@click.pass_obj
def delete_image_cmd(app: AppContext, name: str):
    """Remove base image NAME."""
    delete_image(app, name)


@get.command("vms")
@click.pass_obj
def get_vms_cmd(app: AppContext):
    """List all VMs known to libvirt."""
    get_vms(app)


@get.command("images")
@click.pass_obj
def get_images_cmd(app: AppContext):
    """List base images."""
    get_images(app)


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return the process exit status."""
    try:
        rv = cli.main(args=argv, prog_name="kvmctl", standalone_mode=False)
    except click.ClickException as e:
        e.show()
        return 1
    except click.Abort:
        console.print("[yellow]Aborted[/]")
        return 1
    return rv if isinstance(rv, int) else 0


def run() -> None:
    sys.exit(main())
