"""Rich CLI formatting helpers for tracetlv commands."""

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .storage.tags import tag_name

console = Console()

HEX_PREVIEW_BYTES = 32


def setup_logging(verbose: bool = False):
    """Route library logging through rich. DEBUG when verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _hex(data: bytes, limit: int = HEX_PREVIEW_BYTES) -> str:
    text = data[:limit].hex(" ")
    if len(data) > limit:
        text += f" ... (+{len(data) - limit} bytes)"
    return text


def print_encode_results(serialiser, n_bytes: int, output: str):
    """Print encode results as a rich table."""
    table = Table(title="Encode Results", border_style="cyan", show_header=False, padding=(0, 2))
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")
    table.add_row("Traces", str(serialiser.n_traces))
    table.add_row("Samples per trace", str(serialiser.samples_per_trace))
    table.add_row("Sample type", f"{serialiser.dtype} ({serialiser.sample_width} bytes)")
    table.add_row("Sample coding", f"0x{serialiser.sample_coding:02X}")
    table.add_row("Headers", str(len(serialiser.headers)))
    table.add_row(".trs size", f"{n_bytes:,} bytes")
    table.add_row("Output", output)
    console.print(table)


def print_header_dump(serialiser):
    """Print every header record and a hex preview of the trace block."""
    table = Table(title="Header Records", border_style="cyan", padding=(0, 1))
    table.add_column("Tag", justify="right", style="dim")
    table.add_column("Name")
    table.add_column("Length", justify="right")
    table.add_column("Value", style="green")

    for entry in serialiser.headers:
        table.add_row(f"0x{entry.tag:02X}", tag_name(entry.tag), entry.length.hex(" "), _hex(entry.value))
    table.add_row("0x5F", tag_name(0x5F), "00", "")

    console.print(table)
    console.print(f"\n  [dim]Trace block ({len(serialiser.trace_data):,} bytes):[/dim] "
                  f"{_hex(serialiser.trace_data)}")
