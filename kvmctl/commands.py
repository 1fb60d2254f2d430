"""
CLI command implementations.

Contains the handlers the kvmctl CLI dispatches to. Each handler reports
progress on the console and exits with status 1 on any failure.
"""

from dataclasses import dataclass, field
from typing import NoReturn

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from kvmctl.config import Settings, VmSpec
from kvmctl.errors import KvmctlError
from kvmctl.images import ImageStore
from kvmctl.inventory import InventoryQuery
from kvmctl.paths import ResourcePaths
from kvmctl.transcript import read_transcript
from kvmctl.vms import VmDecommissioner, VmProvisioner

console = Console()


@dataclass
class AppContext:
    """State shared by every command of one invocation."""

    settings: Settings
    verbose: bool = False
    paths: ResourcePaths = field(init=False)

    def __post_init__(self):
        self.paths = ResourcePaths(self.settings.home)


def fail(app: AppContext | None, error: KvmctlError) -> NoReturn:
    """Print the error, plus the transcript in verbose mode, and exit 1."""
    console.print(f"[red]Error:[/] {escape(error.message)}")
    if app is not None and app.verbose:
        transcript = read_transcript(app.settings.transcript)
        console.rule("[dim]transcript[/]")
        click.echo(transcript, nl=not transcript.endswith("\n"))
        console.rule()
    raise click.exceptions.Exit(1)


def create_vm(
    app: AppContext,
    name: str,
    cpus: int | None,
    ram_mb: int | None,
    disk_gb: int | None,
    image: str | None,
    key_path: str | None,
) -> None:
    """Create and start a VM."""
    console.print(Panel.fit(f"[bold blue]Creating VM {escape(name)}[/]", border_style="blue"))
    try:
        spec = VmSpec.build(
            app.settings,
            name,
            cpus=cpus,
            ram_mb=ram_mb,
            disk_gb=disk_gb,
            image=image,
            key_path=key_path,
        )
        console.print(
            f"[dim]{spec.cpus} vCPU, {spec.ram_mb} MiB RAM, "
            f"{spec.disk_gb} GiB disk, base image {spec.image}[/]"
        )
        work_dir = VmProvisioner(app.paths, app.settings).create(spec)
    except KvmctlError as e:
        fail(app, e)

    console.print(f"[green]✓[/] VM {escape(name)} created")
    console.print(f"[dim]Files: {escape(str(work_dir))}[/]")


def delete_vm(app: AppContext, name: str) -> None:
    """Shut down, undefine and remove a VM."""
    console.print(Panel.fit(f"[bold red]Deleting VM {escape(name)}[/]", border_style="red"))
    try:
        VmDecommissioner(app.paths, app.settings).delete(name)
    except KvmctlError as e:
        fail(app, e)

    console.print(f"[green]✓[/] VM {escape(name)} deleted")


def create_image(app: AppContext, name: str, url: str) -> None:
    """Download a base image."""
    console.print(f"[cyan]Downloading image {escape(name)}...[/]")
    console.print(f"  [dim]{escape(url)}[/]")
    try:
        image_file = ImageStore(app.paths).create(name, url)
    except KvmctlError as e:
        fail(app, e)

    console.print(f"[green]✓[/] Image {escape(name)} saved")
    console.print(f"[dim]Files: {escape(str(image_file))}[/]")


def delete_image(app: AppContext, name: str) -> None:
    """Delete a base image, warning about VMs still backed by it."""
    store = ImageStore(app.paths)
    try:
        if not store.exists(name):
            console.print(f"[dim]Image {escape(name)} not present, nothing to delete[/]")
            return
        dependents = store.delete(name)
    except KvmctlError as e:
        fail(app, e)

    if dependents:
        console.print(
            f"[yellow]⚠[/] Image {escape(name)} was the backing file of: {escape(', '.join(dependents))}"
        )
        console.print("[dim]  → These VMs will not boot until the image is restored[/]")
    console.print(f"[green]✓[/] Image {escape(name)} deleted")


def get_vms(app: AppContext) -> None:
    """Print the hypervisor's list of all domains."""
    query = InventoryQuery(ImageStore(app.paths), sudo=app.settings.sudo)
    try:
        listing = query.list_vms()
    except KvmctlError as e:
        fail(app, e)
    click.echo(listing, nl=False)


def get_images(app: AppContext) -> None:
    """Print the names of all base images."""
    try:
        header, *names = InventoryQuery(ImageStore(app.paths)).list_images()
    except KvmctlError as e:
        fail(app, e)

    table = Table(title=header, title_justify="left")
    table.add_column("Name", style="cyan")
    for name in names:
        table.add_row(escape(name))
    console.print(table)
