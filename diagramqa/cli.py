from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from diagramqa import __version__
from diagramqa.audits.layout_auditor import AuditOptions, GraphNotReadyError, audit_layout, audit_result_summary
from diagramqa.layout.rules import list_rule_descriptors
from diagramqa.layout.selector import select_layout_config
from diagramqa.memory.bank import MemoryBank
from diagramqa.quality.analyzer import analyze as analyze_diagram
from diagramqa.quality.report import generate_quality_report
from diagramqa.quality.weights import LEVEL_WEIGHT_OVERRIDES, thresholds_from_config, weights_from_config
from diagramqa.utils.config import config_hash, load_config
from diagramqa.utils.logging import configure_logging
from diagramqa.utils.snapshot import load_snapshot
from diagramqa.utils.structured_data import dump_structured_data, load_structured_file
from diagramqa.utils.types import AuditResult, GraphSnapshot, Size, SuccessfulLayout

app = typer.Typer(help="Score diagram layouts and choose layout engine settings.")
memory_app = typer.Typer(help="Library of high-scoring layouts used for few-shot prompting.")

app.add_typer(memory_app, name="memory")

LEVELS = tuple(sorted(LEVEL_WEIGHT_OVERRIDES))


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show diagramqa version and exit.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug detail to stderr."),
    config_path: Path = typer.Option(Path("diagramqa.yaml"), "--config", help="JSON/YAML config file."),
) -> None:
    del version
    configure_logging(verbose)
    ctx.obj = {"config_path": config_path}


def _config(ctx: typer.Context) -> Dict[str, Any]:
    path = (ctx.obj or {}).get("config_path", Path("diagramqa.yaml"))
    try:
        return load_config(path)
    except RuntimeError as exc:
        typer.echo(f"Config error: {exc}")
        raise typer.Exit(code=1)


def _normalize_level(level: Optional[str]) -> Optional[str]:
    if level is None:
        return None
    normalized = level.strip().upper()
    if normalized not in LEVELS:
        raise typer.BadParameter(f"level must be one of: {', '.join(LEVELS)}")
    return normalized


def _load_snapshot_or_exit(path: Path) -> GraphSnapshot:
    try:
        return load_snapshot(path)
    except (OSError, RuntimeError) as exc:
        typer.echo(f"Could not read snapshot: {exc}")
        raise typer.Exit(code=1)


def _viewport(
    config: Dict[str, Any],
    snapshot: GraphSnapshot,
    width: Optional[float],
    height: Optional[float],
) -> Size:
    for value, name in ((width, "viewport_width"), (height, "viewport_height")):
        if value is not None and value <= 0:
            raise typer.BadParameter(f"{name} must be positive")

    configured = (config.get("quality") or {}).get("viewport") or {}
    base = snapshot.viewport or Size(
        float(configured.get("width", 1920)),
        float(configured.get("height", 1080)),
    )
    return Size(width if width is not None else base.width, height if height is not None else base.height)


def _memory_bank(ctx: typer.Context, path: Optional[Path]) -> MemoryBank:
    memory_cfg = _config(ctx).get("memory", {})
    return MemoryBank(
        path=path or Path(str(memory_cfg.get("path", ".diagramqa/memory_bank.json"))),
        max_layouts=int(memory_cfg.get("max_layouts", 100)),
        min_score=float(memory_cfg.get("min_score", 0.95)),
    )


def _render_summary(title: str, rows: List[tuple]) -> None:
    table = Table(title=title)
    table.add_column("Metric", justify="left")
    table.add_column("Value", justify="right")
    for name, value in rows:
        table.add_row(name, str(value))
    Console().print(table)


@app.command()
def analyze(
    ctx: typer.Context,
    snapshot_path: Path = typer.Argument(..., exists=True, help="JSON/YAML file with nodes and edges"),
    level: Optional[str] = typer.Option(None, "--level", help="Diagram level: L0, L1, L2 or L3."),
    viewport_width: Optional[float] = typer.Option(None, "--viewport-width", help="Viewport width in px."),
    viewport_height: Optional[float] = typer.Option(None, "--viewport-height", help="Viewport height in px."),
    as_json: bool = typer.Option(False, "--as-json", help="Print the full metrics as JSON"),
    report: bool = typer.Option(False, "--report", help="Print the human-readable quality report"),
) -> None:
    level = _normalize_level(level)
    config = _config(ctx)
    snapshot = _load_snapshot_or_exit(snapshot_path)
    viewport = _viewport(config, snapshot, viewport_width, viewport_height)

    try:
        weights = weights_from_config(config, level)
    except (RuntimeError, ValueError) as exc:
        typer.echo(f"Config error: {exc}")
        raise typer.Exit(code=1)

    metrics = analyze_diagram(
        snapshot.nodes,
        snapshot.edges,
        viewport_size=viewport,
        weights=weights,
        level=level,
        thresholds=thresholds_from_config(config),
    )

    if as_json:
        payload = {"config_hash": config_hash(config), "metrics": metrics.to_dict()}
        typer.echo(dump_structured_data(payload, as_yaml=False))
        return
    if report:
        typer.echo(generate_quality_report(metrics, context=snapshot_path.name))
        return

    _render_summary(
        f"diagramqa analyze: {snapshot_path.name}",
        [
            ("Weighted score", f"{metrics.weighted_score:.1f}"),
            ("Grade", metrics.grade),
            ("Nodes", len(snapshot.nodes)),
            ("Edges", len(snapshot.edges)),
            ("Overlaps", len(metrics.overlapping_nodes)),
            ("Spacing violations", len(metrics.spacing_violations)),
            ("Containment violations", len(metrics.parent_child_containment)),
            ("Edge crossings", metrics.edge_crossings),
            ("Edge label overlaps", metrics.edge_label_overlaps),
            ("Clipped labels", metrics.clipped_node_labels),
        ],
    )


@app.command(name="select-layout")
def select_layout(
    ctx: typer.Context,
    snapshot_path: Path = typer.Argument(..., exists=True, help="JSON/YAML file with nodes and edges"),
    level: str = typer.Option(..., "--level", help="Diagram level: L0, L1, L2 or L3."),
    focused_system: Optional[str] = typer.Option(None, "--focused-system", help="Focused system node ID."),
    focused_container: Optional[str] = typer.Option(None, "--focused-container", help="Focused container ID."),
    expanded: Optional[List[str]] = typer.Option(None, "--expanded", help="Expanded node ID (repeatable)."),
    as_json: bool = typer.Option(False, "--as-json", help="Print the layout config as JSON"),
) -> None:
    normalized = _normalize_level(level)
    config = _config(ctx)
    snapshot = _load_snapshot_or_exit(snapshot_path)

    layout = select_layout_config(
        snapshot.nodes,
        snapshot.edges,
        normalized,
        focused_system_id=focused_system,
        focused_container_id=focused_container,
        expanded_nodes=expanded or [],
        viewport_size=_viewport(config, snapshot, None, None),
    )

    if as_json:
        typer.echo(dump_structured_data(layout.to_dict(), as_yaml=False))
        return

    typer.echo(f"Engine: {layout.engine}")
    typer.echo(f"Direction: {layout.direction}")
    for key, value in layout.options.items():
        typer.echo(f"- {key}: {value}")
    constraints = layout.constraints
    typer.echo(
        f"Constraints: {len(constraints.order_hint)} ordered, "
        f"{len(constraints.rank_of)} ranked, {len(constraints.same_rank)} same-rank group(s)"
    )


@app.command()
def rules() -> None:
    table = Table(title="diagramqa layout rules")
    table.add_column("Rule", justify="left")
    table.add_column("Priority", justify="right")
    table.add_column("Name", justify="left")
    for descriptor in list_rule_descriptors():
        table.add_row(str(descriptor["rule_id"]), str(descriptor["priority"]), str(descriptor["name"]))
    Console().print(table)


def _require_playwright() -> tuple:
    try:
        from playwright.async_api import Error as PlaywrightError
        from playwright.async_api import async_playwright
    except ImportError as exc:
        typer.echo("Playwright is not installed. Run: pip install 'diagramqa[browser]' && playwright install chromium")
        raise typer.Exit(code=1) from exc
    return async_playwright, PlaywrightError


async def _browser_audit(async_playwright: Any, url: str, options: AuditOptions) -> AuditResult:
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=True)
        try:
            page = await browser.new_page()
            await page.goto(url)
            return await audit_layout(page, options=options)
        finally:
            await browser.close()


@app.command()
def audit(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="URL of the page rendering the diagram"),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout-ms", help="Graph readiness timeout."),
    screenshot_dir: Optional[Path] = typer.Option(None, "--screenshot-dir", help="Where failure screenshots go."),
    no_screenshot: bool = typer.Option(False, "--no-screenshot", help="Never capture a screenshot."),
    as_json: bool = typer.Option(False, "--as-json", help="Print the audit result as JSON"),
    min_score: float = typer.Option(0.0, "--min-score", help="Exit non-zero below this score (0-1)."),
    level: Optional[str] = typer.Option(None, "--level", help="Diagram level used for weighting."),
) -> None:
    if not 0.0 <= min_score <= 1.0:
        raise typer.BadParameter("min_score must be between 0 and 1")
    if timeout_ms is not None and timeout_ms <= 0:
        raise typer.BadParameter("timeout_ms must be positive")
    level = _normalize_level(level)

    config = _config(ctx)
    try:
        weights = weights_from_config(config, level)
    except (RuntimeError, ValueError) as exc:
        typer.echo(f"Config error: {exc}")
        raise typer.Exit(code=1)

    options = AuditOptions.from_config(
        config,
        timeout_ms=timeout_ms,
        screenshot_dir=str(screenshot_dir) if screenshot_dir is not None else None,
        capture_screenshot=False if no_screenshot else None,
        weights=weights,
        level=level,
        thresholds=thresholds_from_config(config),
    )

    async_playwright, playwright_error = _require_playwright()
    try:
        result = asyncio.run(_browser_audit(async_playwright, url, options))
    except GraphNotReadyError as exc:
        typer.echo(f"Audit timed out: {exc}")
        raise typer.Exit(code=1)
    except playwright_error as exc:
        typer.echo(f"Browser error: {exc}")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(dump_structured_data(result.to_dict(), as_yaml=False))
    else:
        summary = audit_result_summary(result)
        typer.echo(f"URL: {url}")
        typer.echo(f"Score: {summary['score']:.3f} (grade {summary['grade']})")
        for violation in result.violations:
            typer.echo(f"- {violation}")
        if result.screenshot_path:
            typer.echo(f"Screenshot: {result.screenshot_path}")

    if result.score < min_score:
        raise typer.Exit(code=1)


@memory_app.command("add")
def memory_add(
    ctx: typer.Context,
    prompt: str = typer.Argument(..., help="Prompt that produced the diagram"),
    spec_file: Path = typer.Argument(..., exists=True, help="JSON/YAML diagram document"),
    score: float = typer.Option(..., "--score", help="Audit score of the layout (0-1)."),
    category: Optional[str] = typer.Option(None, "--category", help="Optional category tag."),
    path: Optional[Path] = typer.Option(None, "--path", help="Memory bank file."),
) -> None:
    if not 0.0 <= score <= 1.0:
        raise typer.BadParameter("score must be between 0 and 1")
    try:
        diagram = load_structured_file(spec_file)
    except (OSError, RuntimeError) as exc:
        typer.echo(f"Could not read diagram document: {exc}")
        raise typer.Exit(code=1)
    if not isinstance(diagram, dict):
        raise typer.BadParameter("spec_file must contain a mapping/object")

    bank = _memory_bank(ctx, path)
    try:
        stored = bank.add_layout(SuccessfulLayout(prompt=prompt, json=diagram, score=score, category=category))
    except OSError as exc:
        typer.echo(f"Could not write memory bank: {exc}")
        raise typer.Exit(code=1)
    if not stored:
        typer.echo(f"Rejected: score {score:.3f} is below {bank.min_score:.2f}")
        raise typer.Exit(code=1)
    typer.echo(f"Stored layout ({bank.get_count()} in {bank.path})")


@memory_app.command("list")
def memory_list(
    ctx: typer.Context,
    limit: int = typer.Option(5, "--limit", help="Maximum number of layouts to show."),
    category: Optional[str] = typer.Option(None, "--category", help="Only show this category."),
    as_json: bool = typer.Option(False, "--as-json", help="Print layouts as JSON"),
    path: Optional[Path] = typer.Option(None, "--path", help="Memory bank file."),
) -> None:
    if limit < 0:
        raise typer.BadParameter("limit must be zero or positive")
    bank = _memory_bank(ctx, path)
    layouts = bank.get_examples_by_category(category, limit) if category else bank.get_examples(limit)

    if as_json:
        typer.echo(dump_structured_data([layout.to_dict() for layout in layouts], as_yaml=False))
        return

    table = Table(title=f"diagramqa memory ({bank.get_count()} stored)")
    table.add_column("#", justify="right")
    table.add_column("Prompt", justify="left")
    table.add_column("Score", justify="right")
    table.add_column("Category", justify="left")
    table.add_column("Saved", justify="left")
    for index, layout in enumerate(layouts, start=1):
        table.add_row(
            str(index),
            layout.prompt,
            f"{layout.score:.3f}",
            layout.category or "-",
            time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(layout.timestamp)),
        )
    Console().print(table)


@memory_app.command("prompt")
def memory_prompt(
    ctx: typer.Context,
    limit: int = typer.Option(3, "--limit", help="Number of examples to include."),
    path: Optional[Path] = typer.Option(None, "--path", help="Memory bank file."),
) -> None:
    if limit < 0:
        raise typer.BadParameter("limit must be zero or positive")
    text = _memory_bank(ctx, path).generate_few_shot_prompt(limit)
    if text:
        typer.echo(text)


@memory_app.command("count")
def memory_count(
    ctx: typer.Context,
    path: Optional[Path] = typer.Option(None, "--path", help="Memory bank file."),
) -> None:
    typer.echo(str(_memory_bank(ctx, path).get_count()))


@memory_app.command("clear")
def memory_clear(
    ctx: typer.Context,
    path: Optional[Path] = typer.Option(None, "--path", help="Memory bank file."),
) -> None:
    bank = _memory_bank(ctx, path)
    try:
        bank.clear()
    except OSError as exc:
        typer.echo(f"Could not write memory bank: {exc}")
        raise typer.Exit(code=1)
    typer.echo(f"Cleared {bank.path}")


if __name__ == "__main__":
    app()
