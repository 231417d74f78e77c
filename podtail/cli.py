"""Main CLI entry point for podtail."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Tuple

import click
from rich.console import Console

from . import __version__
from .core.config import Config
from .core.exceptions import PodtailError
from .core.logging import get_logger, setup_logging
from .core.service import TailService
from .kube.kubernetes_client import KubernetesClient

console = Console(stderr=True, highlight=False)
logger = get_logger(__name__)


def _collect_overrides(options: Dict[str, Any]) -> Dict[str, Any]:
    """Keep the CLI options the user actually passed."""

    overrides: Dict[str, Any] = {}
    for key, value in options.items():
        if value is None or value == ():
            continue
        if key in ("namespaces", "hue_intervals"):
            value = [item for chunk in value for item in chunk.split(",") if item]
        overrides[key] = value
    return overrides


def load_config(config_file: Optional[str], **options: Any) -> Config:
    """Create a Config instance applying CLI overrides on top of the file."""

    return Config.load(config_file, overrides=_collect_overrides(options))


def _tail_options(func):
    """Decorator applying the log tailing options."""

    options = [
        click.option("--pod-search", "-p", metavar="REGEX", help="Regex matching pod names [.+]"),
        click.option(
            "--kubeconfig", "-k", metavar="PATH",
            help="Path to the kubeconfig file (inferred if omitted)",
        ),
        click.option(
            "--namespace", "-n", "namespaces", multiple=True, metavar="NAMESPACE",
            help="Namespace to follow, repeatable or comma separated",
        ),
        click.option(
            "--previous/--no-previous", default=None,
            help="Retrieve previous terminated container logs",
        ),
        click.option(
            "--since-seconds", type=click.IntRange(min=0), metavar="SECONDS",
            help="Show lines newer than this many seconds first",
        ),
        click.option(
            "--tail-lines", type=click.IntRange(min=0), metavar="COUNT",
            help="Show this many lines from the end of the logs first",
        ),
        click.option(
            "--timestamps/--no-timestamps", default=None,
            help="Show the timestamp at the beginning of each line",
        ),
        click.option(
            "--loop-pause", type=click.FloatRange(min=0, min_open=True), metavar="SECONDS",
            help="Seconds between two pod list queries [2]",
        ),
        click.option(
            "--disable-pods-refresh/--enable-pods-refresh", default=None,
            help="Only follow the pods found at startup",
        ),
        click.option("--verbose", "-v", is_flag=True, default=None, help="Enable verbose logging"),
        click.option("--debug-color", metavar="R,G,B", help="Color of diagnostic notices"),
        click.option(
            "--color-cycle-len", type=click.IntRange(0, 255), metavar="NUM",
            help="Colors in the first cycle (0 = about the number of pods found)",
        ),
        click.option(
            "--color-saturation", type=click.IntRange(0, 100), metavar="SAT",
            help="Color saturation (0-100) [100]",
        ),
        click.option(
            "--color-lightness", type=click.IntRange(0, 100), metavar="LIGHT",
            help="Color lightness (0-100) [50]",
        ),
        click.option(
            "--hue-interval", "hue_intervals", multiple=True, metavar="START-END",
            help="Hue range to pick colors from, repeatable [0-359]",
        ),
        click.option("--filter", "-f", "filter", metavar="REGEX", help="Only print matching lines"),
        click.option("--inv-filter", "-i", metavar="REGEX", help="Drop matching lines"),
        click.option("--replace-pattern", metavar="REGEX", help="Pattern to substitute in lines"),
        click.option("--replace-value", metavar="TEXT", help="Substitution for --replace-pattern"),
    ]

    for option in reversed(options):
        func = option(func)
    return func


@click.command()
@click.version_option(__version__, prog_name="podtail")
@click.option("--config-file", "-c", metavar="PATH", help="Path to configuration file")
@click.option(
    "--generate-config-file", metavar="PATH",
    help="Write a configuration template to PATH and exit",
)
@_tail_options
def cli(
    config_file: Optional[str],
    generate_config_file: Optional[str],
    namespaces: Tuple[str, ...],
    hue_intervals: Tuple[str, ...],
    **options: Any,
) -> None:
    """Follow the logs of every pod matching a pattern, one color per pod."""

    if generate_config_file:
        try:
            path = Config.create_template(generate_config_file)
        except PodtailError as error:
            console.print(f"Error: {error}", style="red", markup=False)
            raise click.Abort()
        console.print(f"Configuration template written to {path}", style="green", markup=False)
        return

    verbose = bool(options.get("verbose"))
    try:
        config = load_config(
            config_file, namespaces=namespaces, hue_intervals=hue_intervals, **options
        )
        setup_logging(config)
        settings = config.compile()

        client = KubernetesClient.from_kubeconfig(settings.kubeconfig)
        default_namespace = KubernetesClient.default_namespace(settings.kubeconfig)
        service = TailService(settings, client, default_namespace=default_namespace)

        asyncio.run(service.run())

    except PodtailError as error:
        console.print(f"Error: {error}", style="red", markup=False)
        raise click.Abort()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
    except Exception as error:  # pragma: no cover - unexpected failures
        logger.exception("Unexpected error")
        console.print(f"Unexpected error: {error}", style="red", markup=False)
        if verbose:
            console.print_exception()
        raise click.Abort()


main = cli


if __name__ == "__main__":  # pragma: no cover
    cli()
