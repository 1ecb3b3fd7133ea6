"""
RTD266x Logo Flasher CLI

Command-line interface for identifying RTD266x firmware and replacing its
boot logo with write gating and a full backup.
"""

import sys
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.logging import RichHandler

from rtd266x_logo_flasher import __version__
from rtd266x_logo_flasher.core.actions import ChangeLogoWorker, identify_image_file
from rtd266x_logo_flasher.core.messages import MessageItem, MessageLevel, result_to_messages
from rtd266x_logo_flasher.core.parsing import (
    parse_offset as _parse_offset_core,
    parse_size as _parse_size_core,
    parse_skip as _parse_skip_core,
)
from rtd266x_logo_flasher.core.results import OperationResult
from rtd266x_logo_flasher.core.safety import CONFIRMATION_TOKEN, create_cli_safety_context
from rtd266x_logo_flasher.errors import FlasherError
from rtd266x_logo_flasher.fingerprint import hash_region
from rtd266x_logo_flasher.logo_codec import LogoEncoder
from rtd266x_logo_flasher.logo_patcher import FirmwareBackup
from rtd266x_logo_flasher.models import CATALOG, DEFAULT_PROFILE
from rtd266x_logo_flasher.protocol import ImageFileTransport, SerialBridgeTransport

logger = logging.getLogger("rtd266x_logo_flasher")

# Setup Rich console
console = Console()

app = typer.Typer(help="RTD266x Logo Flasher - boot logo replacement for RTD266x display boards")


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def print_header(text: str) -> None:
    """Print fancy header."""
    console.print(Panel(text, expand=False, style="bold blue"))


def print_success(text: str) -> None:
    """Print success message."""
    console.print(f"✓ {text}", style="green")


def print_warning(text: str) -> None:
    """Print warning message."""
    console.print(f"⚠️  {text}", style="yellow")


def print_error(text: str) -> None:
    """Print error message."""
    console.print(f"❌ {text}", style="red")


def print_message(item: MessageItem, verbose: bool = True) -> None:
    """Print a structured message with optional remediation."""
    style = "red" if item.level == MessageLevel.ERROR else "yellow"
    console.print(f"[{item.code.value}] {item.title}", style=style, markup=False)
    if verbose and item.remediation:
        console.print(f"   → {item.remediation}", style="cyan", markup=False)


def print_result(result: OperationResult) -> None:
    """Print warnings and errors of an OperationResult."""
    for warning in result.warnings:
        print_warning(warning)
    for item in result_to_messages(result):
        print_message(item)


def parse_offset(value: Optional[str]) -> Optional[int]:
    """
    Parse offset value from string.

    CLI wrapper around core.parsing.parse_offset that converts
    ValueError to typer.BadParameter for proper CLI error handling.
    """
    try:
        return _parse_offset_core(value)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def parse_size(value: str) -> tuple:
    """CLI wrapper around core.parsing.parse_size."""
    try:
        return _parse_size_core(value)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def parse_skip(value: str) -> tuple:
    """CLI wrapper around core.parsing.parse_skip."""
    try:
        return _parse_skip_core(value)
    except ValueError as e:
        raise typer.BadParameter(str(e))


@app.command()
def version() -> None:
    """Show version."""
    console.print(f"rtd266x-logo-flasher {__version__}")


@app.command("list-firmwares")
def list_firmwares() -> None:
    """List firmware builds in the catalog, in match priority order."""
    table = Table(title="Known Firmware Builds")
    table.add_column("#", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Logo Offset", style="green")
    table.add_column("Max Logo", style="yellow")
    table.add_column("Regions", style="blue")

    for i, descriptor in enumerate(CATALOG, 1):
        table.add_row(
            str(i),
            descriptor.name,
            f"0x{descriptor.logo_offset:05X}",
            f"{descriptor.max_patch_length} bytes",
            str(len(descriptor.fingerprints)),
        )

    console.print(table)


@app.command()
def identify(
    image: str = typer.Argument(..., help="Path to firmware dump"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON for scripting"),
) -> None:
    """Identify a saved firmware dump against the catalog."""
    result = identify_image_file(image)

    if output_json:
        console.print_json(json.dumps(result.to_dict()))
        raise typer.Exit(0 if result.ok else 1)

    print_header("Firmware Identification")

    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Image", image)
    table.add_row("Size", f"{result.bytes_len:,} bytes")
    if "image" in result.hashes:
        table.add_row("SHA-256", result.hashes["image"])
    if result.ok:
        table.add_row("Firmware", result.firmware)
        table.add_row("Variant string", result.metadata.get("variant_string", ""))
        table.add_row("Logo region", result.region)
    console.print(table)

    if result.ok:
        print_success(f"Detected firmware is {result.firmware}")
    else:
        print_result(result)
        raise typer.Exit(1)


@app.command("hash-region")
def hash_region_cmd(
    image: str = typer.Argument(..., help="Path to firmware dump"),
    start: str = typer.Option("0", "--start", help="Region start offset"),
    end: Optional[str] = typer.Option(None, "--end", help="Region end offset (default: image length)"),
    skip: Optional[List[str]] = typer.Option(None, "--skip", help="Skip range OFFSET:LENGTH (repeatable)"),
) -> None:
    """
    Compute a skip-aware region digest for a new catalog entry.

    Example:
        rtd266x-logo-flasher hash-region dump.bin --end 0x80000 --skip 0x260D8:903
    """
    path = Path(image)
    if not path.is_file():
        print_error(f"File not found: {image}")
        raise typer.Exit(1)

    data = path.read_bytes()
    start_int = parse_offset(start) or 0
    end_int = parse_offset(end)
    if end_int is None:
        end_int = len(data)
    skips = [parse_skip(s) for s in (skip or [])]

    try:
        digest = hash_region(data, start_int, end_int, skips)
    except FlasherError as e:
        print_error(e.message)
        raise typer.Exit(1)

    console.print(f"Region: 0x{start_int:06X}-0x{end_int:06X} ({len(skips)} skips)")
    console.print(digest.upper())


@app.command("preview-logo")
def preview_logo(
    logo: str = typer.Argument(..., help="Path to logo image"),
    out: str = typer.Argument(..., help="Output PNG path"),
    size: str = typer.Option(
        f"{DEFAULT_PROFILE.logo_width}x{DEFAULT_PROFILE.logo_height}",
        "--size", "-s", help="Logo size WxH",
    ),
    dither: bool = typer.Option(False, "--dither", help="Dither when converting to monochrome"),
) -> None:
    """Encode a logo and save how it will look on the display."""
    width, height = parse_size(size)
    encoder = LogoEncoder(width, height, dither=dither)

    try:
        encoder.validate(logo)
        encoder.load(logo)
    except FlasherError as e:
        print_error(e.message)
        raise typer.Exit(1)

    data = encoder.encode()
    encoder.decode(data).save(out)

    print_success(f"Encoded {len(data)} bytes, preview saved to {out}")


@app.command("change-logo")
def change_logo_cmd(
    logo: str = typer.Argument(..., help="Path to logo image"),
    port: Optional[str] = typer.Option(None, "--port", "-p", help="Serial port of the ISP bridge"),
    image: Optional[str] = typer.Option(None, "--image", "-i", help="Patch a firmware dump file instead of a device"),
    baud: int = typer.Option(115200, "--baud", "-b", help="Bridge baud rate"),
    timeout: float = typer.Option(2.0, "--timeout", help="Serial timeout in seconds"),
    backup_dir: Path = typer.Option(Path("backups"), "--backup-dir", help="Directory for firmware backups"),
    size: str = typer.Option(
        f"{DEFAULT_PROFILE.logo_width}x{DEFAULT_PROFILE.logo_height}",
        "--size", "-s", help="Logo size WxH",
    ),
    dither: bool = typer.Option(False, "--dither", help="Dither when converting to monochrome"),
    write: bool = typer.Option(False, "--write", help="Actually write the patched sector"),
    confirm: Optional[str] = typer.Option(None, "--confirm", help=f"Type {CONFIRMATION_TOKEN} to skip the prompt"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Stop right before writing"),
) -> None:
    """
    Replace the boot logo: identify, back up, patch and write one sector.

    Example:
        rtd266x-logo-flasher change-logo logo.png --port /dev/ttyUSB0 --write --confirm WRITE
    """
    if bool(port) == bool(image):
        raise typer.BadParameter("Provide exactly one of --port or --image")

    width, height = parse_size(size)
    profile = replace(DEFAULT_PROFILE, logo_width=width, logo_height=height)

    print_header("Change Boot Logo")
    console.print(f"Logo:       {logo}")
    console.print(f"Target:     {port or image}")
    console.print(f"Backups:    {backup_dir}")
    console.print()

    # Ask before starting; the worker thread cannot prompt
    if write and confirm is None and not dry_run and sys.stdin.isatty():
        confirm = typer.prompt(f"Type '{CONFIRMATION_TOKEN}' to allow writing the patched sector")

    safety_ctx = create_cli_safety_context(
        write_flag=write,
        simulate=dry_run,
        confirmation_token=confirm,
    )

    if image:
        transport = ImageFileTransport(image)
    else:
        transport = SerialBridgeTransport(port, baudrate=baud, timeout=timeout)
        try:
            transport.open()
        except FlasherError as e:
            print_error(e.message)
            raise typer.Exit(1)

    try:
        worker = ChangeLogoWorker(
            transport,
            logo,
            encoder=LogoEncoder(width, height, dither=dither),
            backup=FirmwareBackup(backup_dir),
            profile=profile,
            safety_ctx=safety_ctx,
        )
        future = worker.start()
        for line in worker.status:
            console.print(f"  {line}", markup=False)
        result = future.result()
    finally:
        if isinstance(transport, SerialBridgeTransport):
            transport.close()

    console.print()
    if result.ok:
        for warning in result.warnings:
            print_warning(warning)
        print_success(f"Firmware: {result.firmware}")
        print_success(f"Sector:   {result.region}")
        if result.metadata.get("backup_path"):
            print_success(f"Backup:   {result.metadata['backup_path']}")
    else:
        print_error(f"Failed at step: {result.metadata.get('state', 'unknown')}")
        print_result(result)
        raise typer.Exit(1)


def main() -> None:
    """Main entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(0)
    except Exception as e:
        console.print(f"\n[red bold]Fatal error:[/red bold] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
