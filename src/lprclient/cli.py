"""
Command-Line Interface for the LPD Client.

Usage:
    pylpr print FILE -H HOST -P QUEUE   - Submit a file as a print job
    pylpr status -H HOST -P QUEUE       - Show the queue
    pylpr remove JOB... -H HOST         - Remove jobs from the queue
    pylpr kick -H HOST -P QUEUE         - Start printing waiting jobs

The server and queue may also come from $PRINTER_HOST and $PRINTER.
"""

import os
import re
import sys

import click

from .client import LPRClient, quick_print
from .errors import ConnectionError, LPRError
from .protocol import DEFAULT_PORT, PrintMode


# Host name, IPv4 address, or IPv6 address (optionally bracketed)
HOST_PATTERN = re.compile(r"^(\[[0-9A-Fa-f:.]+\]|[A-Za-z0-9_.:\-]+)$")

# Queue names are one printable word
QUEUE_PATTERN = re.compile(r"^[^\s\x00-\x1f\x7f]+$")

MODE_CHOICES = {mode.name.lower(): mode for mode in PrintMode}


def validate_host(ctx, param, value):
    """Validate the print server host.

    Returns:
        The host, with IPv6 brackets removed

    Raises:
        click.BadParameter: If the host cannot be a host name or address
    """
    if value is None:
        return None
    if not HOST_PATTERN.match(value):
        raise click.BadParameter(
            f"Invalid print server host: '{value}'. "
            "Expected a host name, IPv4 address or IPv6 address"
        )
    return value.strip("[]")


def validate_queue(ctx, param, value):
    """Validate a queue name: one word without control characters."""
    if value is None or QUEUE_PATTERN.match(value):
        return value
    raise click.BadParameter(
        f"Invalid queue name: '{value}'. Queue names cannot contain "
        "whitespace or control characters"
    )


def server_options(func):
    """Options shared by every command that talks to a server."""
    func = click.option(
        "--timeout", default=30.0, show_default=True, help="Socket timeout in seconds",
    )(func)
    func = click.option(
        "--strict-ports",
        is_flag=True,
        help="Connect from source port 721-731 as RFC 1179 requires (needs root)",
    )(func)
    func = click.option(
        "--port", "-p", default=DEFAULT_PORT, show_default=True, help="LPD port",
    )(func)
    func = click.option(
        "--queue",
        "-P",
        envvar="PRINTER",
        default="lp",
        show_default=True,
        callback=validate_queue,
        help="Print queue name",
    )(func)
    func = click.option(
        "--host",
        "-H",
        envvar="PRINTER_HOST",
        required=True,
        callback=validate_host,
        help="Print server host",
    )(func)
    return func


def _make_client(ctx, host, port, strict_ports, timeout) -> LPRClient:
    client = LPRClient(
        host,
        port=port,
        strict_rfc_ports=strict_ports,
        timeout=timeout,
        raise_errors=True,
    )
    client.set_debug(ctx.obj["debug"])
    return client


def _report(error: LPRError, action: str):
    if isinstance(error, ConnectionError):
        click.echo(f"Connection error: {error}", err=True)
    else:
        click.echo(f"{action} failed: {error}", err=True)
    sys.exit(1)


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug output")
@click.pass_context
def main(ctx, debug):
    """RFC 1179 line printer client."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@main.command("print")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, allow_dash=True))
@server_options
@click.option(
    "--mode",
    "-m",
    type=click.Choice(sorted(MODE_CHOICES)),
    default="text",
    show_default=True,
    help="How the server should print the file",
)
@click.option("--job-name", "-J", help="Job name for the banner page")
@click.option("--title", "-T", help="Title for pr mode")
@click.option("--banner/--no-banner", default=False, help="Print a banner page")
@click.option("--mail", help="User to mail when the job is printed")
@click.pass_context
def print_file(ctx, file, host, queue, port, strict_ports, timeout, mode, job_name, title, banner, mail):
    """Submit FILE as a print job ("-" reads standard input)."""
    with click.open_file(file, "rb") as f:
        data = f.read()

    source_filename = "stdin" if file == "-" else os.path.basename(file)
    click.echo(f"Sending {source_filename} ({len(data)} bytes) to {queue}@{host}...")

    try:
        job_id = quick_print(
            host,
            data,
            queue=queue,
            mode=MODE_CHOICES[mode],
            job_name=job_name or source_filename,
            source_filename=source_filename,
            title=title,
            banner=banner,
            mail=mail,
            port=port,
            strict_rfc_ports=strict_ports,
            timeout=timeout,
            debug=ctx.obj["debug"],
        )
    except LPRError as e:
        _report(e, "Print")

    click.echo(f"Job {job_id:03d} queued.")


@main.command()
@click.argument("items", nargs=-1)
@server_options
@click.option("--long", "-l", "long_format", is_flag=True, help="Long listing format")
@click.pass_context
def status(ctx, items, host, queue, port, strict_ports, timeout, long_format):
    """Show the jobs on a queue, optionally only ITEMS (users or job ids)."""
    client = _make_client(ctx, host, port, strict_ports, timeout)

    try:
        client.connect()
        state = client.get_queue_state(queue, items, long=long_format)
    except LPRError as e:
        _report(e, "Status")
    finally:
        client.disconnect()

    if not state.lines:
        click.echo(f"{queue}: no entries")
        return
    click.echo(state.text, nl=False)


@main.command()
@click.argument("items", nargs=-1)
@server_options
@click.option("--agent", "-a", help="User to remove jobs as (default: current user)")
@click.pass_context
def remove(ctx, items, host, queue, port, strict_ports, timeout, agent):
    """Remove jobs ITEMS (job ids or user names) from a queue."""
    client = _make_client(ctx, host, port, strict_ports, timeout)

    try:
        client.connect()
        client.remove_jobs(queue, agent, items)
    except LPRError as e:
        _report(e, "Remove")
    finally:
        client.disconnect()

    click.echo(f"Removal request sent to {queue}@{host}")


@main.command()
@server_options
@click.pass_context
def kick(ctx, host, queue, port, strict_ports, timeout):
    """Ask the server to start printing any waiting jobs."""
    client = _make_client(ctx, host, port, strict_ports, timeout)

    try:
        client.connect()
        client.print_waiting_jobs(queue)
    except LPRError as e:
        _report(e, "Kick")
    finally:
        client.disconnect()

    click.echo(f"Printing started on {queue}@{host}")


if __name__ == "__main__":
    main()
