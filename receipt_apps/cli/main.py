"""Typer CLI entrypoint for receipt-ops."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Any

import typer

from receipt_apps.cli.format_human import render_result_line, render_validation_summary
from receipt_apps.cli.io import read_json_file, write_json_report_atomic, write_preview_atomic
from receipt_core.config.settings import AppSettings, load_settings
from receipt_core.data.samples import sample_record
from receipt_core.orchestrator.analysis import ScenarioReport, analyze_template, run_scenarios
from receipt_core.orchestrator.pipeline import preview_receipt, print_template_async
from receipt_core.render.models import RenderResult
from receipt_core.templates.store import TemplateStore

app = typer.Typer(help="Receipt template CLI", rich_markup_mode=None)

EXIT_OK = 0
EXIT_INTERNAL = 1
EXIT_DATA = 2
EXIT_TEMPLATE = 3
EXIT_NO_CONTENT = 4
EXIT_PRINTER = 5

_PRINTER_CATEGORIES = {"timeout", "transport", "device"}

TemplateOption = Annotated[
    Path,
    typer.Option(..., exists=True, dir_okay=False, file_okay=True, help="Template JSON file."),
]
TemplateIdOption = Annotated[
    str | None,
    typer.Option(
        "--template-id",
        help="Pick one template when the file is a store of {template_id: template}.",
    ),
]
DataOption = Annotated[
    Path | None,
    typer.Option(
        exists=True, dir_okay=False, file_okay=True, help="Order record JSON; sample if omitted."
    ),
]
SettingsOption = Annotated[
    Path | None,
    typer.Option(exists=True, dir_okay=False, file_okay=True, help="Settings YAML file."),
]


@app.callback()
def cli_callback() -> None:
    """CLI root callback to keep subcommands explicit."""


@app.command("validate")
def validate_command(
    template: TemplateOption,
    template_id: TemplateIdOption = None,
    data: DataOption = None,
    report: Annotated[Path, typer.Option(help="Where to write the JSON report.")] = Path(
        "validation_report.json"
    ),
    strict_markup: Annotated[
        bool,
        typer.Option("--strict-markup", help="Fail on nested or unbalanced conditional markers."),
    ] = False,
) -> None:
    """Analyze a template and render it against sample scenarios."""

    try:
        raw_template = _load_raw_template(template, template_id)
        scenarios = [("custom", _load_record(data))] if data is not None else None
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=EXIT_INTERNAL)

    analysis = analyze_template(raw_template)
    scenario_report = run_scenarios(raw_template, scenarios)
    has_markup_issues = any(segment.markup_issues for segment in analysis.segments)
    passed = (
        analysis.valid
        and scenario_report.all_passed
        and not (strict_markup and has_markup_issues)
    )

    payload: dict[str, Any] = {
        "passed": passed,
        "analysis": analysis.model_dump(mode="json"),
        "scenarios": scenario_report.model_dump(mode="json"),
        "recommendations": _report_recommendations(analysis.recommendations, scenario_report),
    }
    try:
        write_json_report_atomic(report, payload)
    except OSError as exc:
        typer.echo(f"ERROR: write report failed: {exc}")
        raise typer.Exit(code=EXIT_INTERNAL)

    typer.echo(render_validation_summary(analysis, scenario_report))
    typer.echo(f"INFO: wrote report to {report}")
    if passed:
        typer.echo("INFO: success")
        raise typer.Exit(code=EXIT_OK)
    typer.echo("ERROR: validation failed")
    raise typer.Exit(code=EXIT_INTERNAL)


@app.command("preview")
def preview_command(
    template: TemplateOption,
    template_id: TemplateIdOption = None,
    data: DataOption = None,
    settings: SettingsOption = None,
    out: Annotated[
        Path | None, typer.Option(help="Write the preview here instead of stdout.")
    ] = None,
    strict_markup: Annotated[bool, typer.Option("--strict-markup")] = False,
) -> None:
    """Render a template to a plain-text receipt preview."""

    app_settings = _settings_or_exit(settings)
    raw_template = _template_or_exit(template, template_id)
    try:
        record = _load_record(data)
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=EXIT_DATA)

    try:
        result = preview_receipt(
            raw_template, record, settings=app_settings, strict_markup=strict_markup
        )
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: {type(exc).__name__}: {exc}")
        raise typer.Exit(code=EXIT_INTERNAL)

    typer.echo(render_result_line(result))
    if not result.success:
        typer.echo(f"ERROR: {result.user_message}")
        raise typer.Exit(code=_render_exit_code(result))

    preview = result.preview or ""
    if out is None:
        typer.echo(preview)
    else:
        try:
            write_preview_atomic(out, preview)
        except OSError as exc:
            typer.echo(f"ERROR: write preview failed: {exc}")
            raise typer.Exit(code=EXIT_INTERNAL)
        typer.echo(f"INFO: wrote preview to {out}")
    raise typer.Exit(code=EXIT_OK)


@app.command("print")
def print_command(
    template: TemplateOption,
    template_id: TemplateIdOption = None,
    data: DataOption = None,
    settings: SettingsOption = None,
    mock_printer: Annotated[
        bool,
        typer.Option("--mock-printer", help="Print to an in-memory printer."),
    ] = False,
    timeout: Annotated[
        float | None, typer.Option(help="Override the printer timeout in seconds.")
    ] = None,
) -> None:
    """Render a template and send it to the receipt printer."""

    if timeout is not None and timeout <= 0:
        typer.echo("ERROR: --timeout must be positive.")
        raise typer.Exit(code=EXIT_INTERNAL)
    app_settings = _with_overrides(_settings_or_exit(settings), mock_printer, timeout)
    raw_template = _template_or_exit(template, template_id)
    try:
        record = _load_record(data)
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=EXIT_DATA)

    try:
        result = asyncio.run(print_template_async(raw_template, record, settings=app_settings))
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: {type(exc).__name__}: {exc}")
        raise typer.Exit(code=EXIT_INTERNAL)

    if result.success:
        typer.echo(f"INFO: {result.message}")
        raise typer.Exit(code=EXIT_OK)

    typer.echo(f"ERROR: {result.user_message} ({result.message})")
    if result.recoverable:
        typer.echo("INFO: the printer may be reachable on retry")
    if result.error is not None and result.error.category in _PRINTER_CATEGORIES:
        raise typer.Exit(code=EXIT_PRINTER)
    if result.render is not None:
        raise typer.Exit(code=_render_exit_code(result.render))
    raise typer.Exit(
        code=EXIT_TEMPLATE if result.error and result.error.category == "structural" else EXIT_DATA
    )


def _settings_or_exit(path: Path | None) -> AppSettings:
    try:
        return load_settings(path)
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=EXIT_INTERNAL) from exc


def _template_or_exit(path: Path, template_id: str | None) -> Any:
    try:
        return _load_raw_template(path, template_id)
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=EXIT_TEMPLATE) from exc


def _load_raw_template(path: Path, template_id: str | None) -> Any:
    if template_id is None:
        return read_json_file(path, label="template")

    raw = TemplateStore(path).get(template_id)
    if raw is None:
        raise ValueError(f"Template '{template_id}' not found in {path}")
    return raw


def _load_record(path: Path | None) -> Any:
    if path is None:
        return sample_record()
    return read_json_file(path, label="data")


def _with_overrides(
    settings: AppSettings, mock_printer: bool, timeout: float | None
) -> AppSettings:
    updates: dict[str, Any] = {}
    if mock_printer:
        updates["mock_printer"] = True
    if timeout is not None:
        updates["timeout_seconds"] = timeout
    return settings.model_copy(update=updates) if updates else settings


def _render_exit_code(result: RenderResult) -> int:
    if result.success:
        return EXIT_OK
    if result.error is None:
        return EXIT_INTERNAL
    if result.error.category == "data":
        return EXIT_DATA
    if result.outcome is not None:
        return EXIT_NO_CONTENT
    if result.error.category == "structural":
        return EXIT_TEMPLATE
    return EXIT_INTERNAL


def _report_recommendations(
    recommendations: list[str], report: ScenarioReport
) -> list[str]:
    combined = list(recommendations)
    if report.failed:
        combined.append(f"{report.failed} test scenarios failed - review template logic")
    return combined


def main() -> None:
    """Console script entrypoint."""

    app()


if __name__ == "__main__":
    main()
