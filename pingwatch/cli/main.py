"""
pingwatch CLI.

Modes:
- analyze: Full session report for a recorded sample file
- replay: Stream a sample file through live detection, printing deviations
- demo: Write a synthetic sample file
- config: Generate, validate or dump configuration
"""

import logging
import time
from enum import Enum
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .. import __version__
from ..config import PingwatchConfig, DetectionMethod, load_config, generate_default_config
from ..core.errors import ErrorCode, PingwatchError, PingwatchInputError
from ..demo import SampleGenerator, builtin_scenario, load_scenario, SCENARIOS
from ..samples import SampleReader, write_samples
from ..session import SessionMonitor, SessionReport, ReportStatus, write_events_csv
from ..streaming.detector import MIN_SAMPLES_FOR_DETECTION

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="pingwatch",
    help="Round-trip latency monitoring and session quality analysis",
    add_completion=False,
)
console = Console()


class OutputFormat(str, Enum):
    json = "json"
    table = "table"


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
):
    """pingwatch command line."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _fail(e) -> typer.Exit:
    """Print an exception or PingwatchError and return Exit(1) for the caller to raise."""
    if isinstance(e, PingwatchInputError):
        e = e.error
    if isinstance(e, PingwatchError):
        console.print(f"[red]Error {e.code.value}:[/] {escape(e.message)}")
    else:
        console.print(f"[red]Error:[/] {escape(str(e))}")
    return typer.Exit(1)


def _write_failed(path: Path, e: OSError) -> typer.Exit:
    logger.debug(f"Write to {path} failed", exc_info=True)
    return _fail(PingwatchError(
        code=ErrorCode.E4001_FILE_WRITE_FAILED,
        context={'file': str(path), 'reason': str(e)},
    ))


def _read_cfg(path: Optional[Path]) -> PingwatchConfig:
    try:
        return PingwatchConfig.load(path) if path else load_config()
    except (OSError, TypeError, ValueError, yaml.YAMLError) as e:
        raise _fail(e)


def _load_cfg(
    config_path: Optional[Path],
    method: Optional[DetectionMethod] = None,
    window: Optional[int] = None,
) -> PingwatchConfig:
    cfg = _read_cfg(config_path)
    changes = {}
    if method is not None:
        changes['detection_method'] = method.value
    if window is not None:
        changes['rolling_window_size'] = window
    if changes:
        cfg.detection = cfg.detection.merged(**changes)
    return cfg


def _run_session(path: Path, cfg: PingwatchConfig):
    """Open a sample file and stream it through a SessionMonitor."""
    sample_file = SampleReader.open(path)
    logger.info(f"Streaming {path} ({sample_file.format}) with method={cfg.detection.detection_method}")
    monitor = SessionMonitor(cfg.detection, target=cfg.session.target)
    results = [monitor.process(sample) for sample in SampleReader.read(sample_file)]
    monitor.stop()
    return sample_file, monitor, results


def _build_report(path: Path, cfg: PingwatchConfig, sample_file, monitor: SessionMonitor) -> SessionReport:
    stats = monitor.final_stats()
    report = SessionReport(
        pingwatch_version=__version__,
        source_file=str(path),
        target=cfg.session.target or None,
        session_id=monitor.session_id,
        detection_method=str(cfg.detection.detection_method),
        stats=stats,
        analysis=monitor.analyze(final=True, computed_at=int(time.time() * 1000)),
        deviations=monitor.events_by_type(),
    )

    for error in cfg.errors + sample_file.errors + monitor.errors:
        report.add_error(error)
    if stats.total_pings == 0:
        report.add_error(PingwatchError(code=ErrorCode.E1005_EMPTY_FILE, context={'file': str(path)}))
    elif stats.successful_pings == 0:
        report.add_error(PingwatchError(code=ErrorCode.E2003_NO_SUCCESSFUL_SAMPLES))
    elif stats.successful_pings < MIN_SAMPLES_FOR_DETECTION:
        report.add_error(PingwatchError(
            code=ErrorCode.E2002_INSUFFICIENT_SAMPLES,
            context={'successful': stats.successful_pings, 'required': MIN_SAMPLES_FOR_DETECTION},
        ))
    if stats.packet_loss >= cfg.thresholds.loss_rate_error:
        report.add_error(PingwatchError(
            code=ErrorCode.E2001_HIGH_PACKET_LOSS,
            context={'packet_loss': round(stats.packet_loss, 3)},
        ))

    report.compute_status(
        loss_rate_warning=cfg.thresholds.loss_rate_warning,
        loss_rate_error=cfg.thresholds.loss_rate_error,
        min_grade_ok=cfg.thresholds.min_grade_ok,
    )
    return report


def _format_table(report: SessionReport) -> str:
    """Format report as plain-text table."""
    stats = report.stats
    lines = [
        "METRIC          VALUE",
        "------          -----",
        f"Samples         {stats.total_pings}",
        f"Packet loss     {stats.packet_loss:.2f}%",
        f"Median          {stats.latency_median:.2f} ms",
        f"P95             {stats.latency_p95:.2f} ms",
        f"P99             {stats.latency_p99:.2f} ms",
        f"Jitter          {stats.jitter_mean:.2f} ms",
        f"Deviations      {stats.deviation_count}",
    ]
    if report.analysis is not None:
        lines.append(f"Bursts          {report.analysis.bursts.burst_count}")
        lines.append(f"Grade           {report.analysis.quality_grade.value}")
    lines.append(f"Status          {report.status.value.upper()}")
    return '\n'.join(lines)


def _print_summary(report: SessionReport):
    """Print Rich summary table."""
    analysis = report.analysis
    if analysis is None:
        return

    console.print()
    table = Table(title="Tail risk")
    table.add_column("Threshold", justify="right")
    table.add_column("Count", justify="right")
    table.add_column("Share", justify="right")
    for t in analysis.thresholds:
        table.add_row(f">= {t.threshold_ms} ms", f"{t.count:,}", f"{t.percentage:.2f}%")
    console.print(table)

    bursts = analysis.bursts
    console.print(f"Bursts: {bursts.burst_count} (median size {bursts.burst_size_median}, "
                  f"max {bursts.burst_size_max})")
    console.print(Panel.fit(
        f"[bold]Grade {analysis.quality_grade.value}[/]\n{analysis.quality_summary}",
        border_style="green" if report.status == ReportStatus.OK else "yellow",
    ))


# === ANALYZE COMMAND ===

@app.command()
def analyze(
    sample_file: Path = typer.Argument(..., help="Sample file (.csv or .jsonl)", exists=True),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Output file"),
    format: OutputFormat = typer.Option(OutputFormat.json, "-f", "--format"),
    config_path: Optional[Path] = typer.Option(None, "-c", "--config"),
    method: Optional[DetectionMethod] = typer.Option(None, "-m", "--method", help="Detection method override"),
    window: Optional[int] = typer.Option(None, "-w", "--window", help="Rolling window size override"),
    quiet: bool = typer.Option(False, "-q", "--quiet"),
):
    """Analyze a recorded session and generate a report."""
    cfg = _load_cfg(config_path, method, window)

    try:
        source, monitor, _ = _run_session(sample_file, cfg)
    except (ValueError, OSError) as e:
        raise _fail(e)

    report = _build_report(sample_file, cfg, source, monitor)

    if format == OutputFormat.json:
        output_text = report.to_json(indent=2)
    else:
        output_text = _format_table(report)

    if output:
        try:
            output.write_text(output_text)
        except OSError as e:
            raise _write_failed(output, e)
        if not quiet:
            console.print(f"[green]Written to:[/] {output}")
    else:
        typer.echo(output_text)

    if not quiet and output:
        _print_summary(report)

    # Exit with error if critical
    if report.status == ReportStatus.CRITICAL:
        raise typer.Exit(2)
    elif report.status == ReportStatus.ERROR:
        raise typer.Exit(1)


# === REPLAY COMMAND ===

@app.command()
def replay(
    sample_file: Path = typer.Argument(..., help="Sample file (.csv or .jsonl)", exists=True),
    config_path: Optional[Path] = typer.Option(None, "-c", "--config"),
    method: Optional[DetectionMethod] = typer.Option(None, "-m", "--method", help="Detection method override"),
    window: Optional[int] = typer.Option(None, "-w", "--window", help="Rolling window size override"),
    events_csv: Optional[Path] = typer.Option(None, "--events-csv", help="Write deviation events to CSV"),
    limit: int = typer.Option(50, "--limit", help="Max deviations to print"),
):
    """Replay samples through live detection and list deviations."""
    cfg = _load_cfg(config_path, method, window)

    try:
        _, monitor, results = _run_session(sample_file, cfg)
    except (ValueError, OSError) as e:
        raise _fail(e)

    table = Table(title=f"Deviations ({cfg.detection.detection_method})")
    table.add_column("Seq", justify="right")
    table.add_column("Timestamp", justify="right")
    table.add_column("Type")
    table.add_column("Value", justify="right")
    table.add_column("Threshold", justify="right")

    shown = 0
    for result in results:
        for event in result.events:
            if shown >= limit:
                break
            table.add_row(
                str(result.sample.seq),
                str(event.timestamp),
                event.type.value,
                f"{event.value:.2f}",
                f"{event.threshold:.2f}",
            )
            shown += 1

    console.print(table)
    counts = monitor.events_by_type()
    console.print(
        f"{monitor.total_samples:,} samples, {len(monitor.events):,} deviations "
        f"(latency_spike={counts['latency_spike']}, jitter={counts['jitter']}, "
        f"packet_loss={counts['packet_loss']})"
    )
    if results:
        last = results[-1].stats
        console.print(f"Final window: median {last.median:.2f} ms, p95 {last.p95:.2f} ms, "
                      f"jitter {last.jitter:.2f} ms, loss {last.packet_loss_rate:.2f}%")

    if events_csv:
        try:
            written = write_events_csv(monitor.events, events_csv)
        except OSError as e:
            raise _write_failed(events_csv, e)
        console.print(f"[green]Wrote {written} events to:[/] {events_csv}")


# === DEMO COMMAND ===

@app.command()
def demo(
    output: Path = typer.Option(Path("./demo_samples.csv"), "-o", "--output", help="Sample file to write"),
    scenario: str = typer.Option("congested", "-s", "--scenario", help=f"One of: {', '.join(SCENARIOS)}"),
    scenario_file: Optional[Path] = typer.Option(None, "--scenario-file", help="YAML scenario profile"),
    seed: int = typer.Option(42, "--seed"),
):
    """Generate a synthetic sample file."""
    try:
        scenario_cfg = load_scenario(scenario_file) if scenario_file else builtin_scenario(scenario)
    except (OSError, TypeError, ValueError, yaml.YAMLError) as e:
        raise _fail(e)

    samples = SampleGenerator(seed=seed).generate(scenario_cfg)
    try:
        written = write_samples(samples, output)
    except ValueError as e:
        raise _fail(e)
    except OSError as e:
        raise _write_failed(output, e)

    console.print(f"[green]Wrote {written:,} samples to:[/] {output}")
    console.print(f"Next: pingwatch analyze {output} -f table")


# === CONFIG COMMAND ===

@app.command("config")
def config_cmd(
    action: str = typer.Argument(..., help="Action: init|validate|dump"),
    path: Optional[Path] = typer.Argument(None, help="Config file path"),
):
    """Configuration management."""
    if action == "init":
        typer.echo(generate_default_config())

    elif action == "validate":
        if not path:
            console.print("[red]Path required for validate[/]")
            raise typer.Exit(1)
        cfg = _read_cfg(path)
        for warning in cfg.errors:
            console.print(f"[yellow]Warning {warning.code.value}:[/] {escape(warning.message)}")
        errors: List[str] = cfg.validate()
        if errors:
            console.print("[red]Invalid configuration:[/]")
            for e in errors:
                console.print(f"  - {escape(e)}")
            raise _fail(PingwatchError(
                code=ErrorCode.E3003_VALIDATION_FAILED,
                context={'file': str(path), 'problems': len(errors)},
            ))
        console.print(f"[green]Valid:[/] {path}")

    elif action == "dump":
        cfg = _read_cfg(path)
        typer.echo(cfg.to_yaml())

    else:
        console.print(f"[red]Unknown action:[/] {action}")
        console.print("Valid actions: init, validate, dump")
        raise typer.Exit(1)


# === VERSION COMMAND ===

@app.command()
def version():
    """Show version information."""
    console.print(f"[bold blue]pingwatch v{__version__}[/]")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
