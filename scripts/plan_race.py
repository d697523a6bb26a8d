#!/usr/bin/env python3
"""
Plan a race from a course GPX and a checkpoint plan, or analyse a finished one.
"""

import sys
from pathlib import Path
from typing import Optional

sys.path.insert(0, str(Path(__file__).parent.parent))

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from models import Course, PaceModel
from utils.errors import PacePlannerError
from utils.records import AthleteMetrics, FitnessLevel
from utils.persistence import load_race_plan, save_race_plan
from utils.gpx_parsing import parse_gpx
from utils.course_analysis import create_uniform_segments
from utils.fit_parsing import parse_fit
from utils.prediction import plan_race
from utils.fatigue import generate_fatigue_curve, fatigue_description
from utils.race_summary import calculate_checkpoint_etas, suggest_checkpoint_time
from utils.split_analysis import calculate_race_analytics
from utils.app_utils import format_pace, format_minutes, format_duration
import config

app = typer.Typer()
console = Console()


def _setup_logging(verbose: bool = False):
    logger.remove()
    logger.add(
        sys.stderr,
        format="<level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level="DEBUG" if verbose else "WARNING",
    )


def _fail(message: str):
    console.print(f"[red]❌ {message}[/red]")
    raise typer.Exit(1)


@app.command()
def plan(
        gpx_file: Path = typer.Argument(..., help="Path to the course GPX"),
        segments_file: Path = typer.Option(..., "--segments", "-s", help="Race plan JSON with checkpoints"),
        fit_file: Optional[Path] = typer.Option(None, "--fit", help="Past activity (FIT) to build the pace model"),
        weight: Optional[float] = typer.Option(None, "--weight", "-w", help="Body weight (kg) for energy balance"),
        fatigue_factor: Optional[float] = typer.Option(None, "--fatigue-factor", "-f",
                                                       help="Slowdown in % per 10 miles"),
        blend: bool = typer.Option(False, "--blend", help="Blend with paces held on this course before"),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed debug information")
):
    """
    Predict per-checkpoint paces, strategies, finish time and energy balance.

    Example:
        python scripts/plan_race.py plan course.gpx --segments plan.json --fit last_ultra.fit -w 68
    """
    _setup_logging(verbose)

    if not gpx_file.exists():
        _fail(f"GPX file not found: {gpx_file}")

    try:
        plan_file = load_race_plan(segments_file)
        course = Course.from_gpx(gpx_file.read_bytes(), plan_file.segments)
        activity = parse_fit(str(fit_file)) if fit_file else []
    except PacePlannerError as e:
        _fail(str(e))

    if not fit_file:
        console.print("[yellow]No past activity given; paces fall back to the default flat pace[/yellow]")

    metrics = plan_file.athlete_metrics
    if weight is not None:
        metrics = AthleteMetrics(
            body_weight_kg=weight,
            gear_weight_kg=metrics.gear_weight_kg if metrics else 0.0,
            fitness_level=metrics.fitness_level if metrics else FitnessLevel.TRAINED,
        )

    pace_model = PaceModel(activity, plan_file.athlete_settings, blend_historical=blend)
    race_plan = plan_race(course, pace_model, metrics, fatigue_factor)

    # Course details
    console.print("\n[bold]📍 Course Details[/bold]")
    course_table = Table(show_header=False)
    course_table.add_column("Metric", style="cyan")
    course_table.add_column("Value", style="white")
    course_table.add_row("Distance", f"{course.total_distance:.1f} mi")
    course_table.add_row("Elevation Gain", f"{course.stats.gain:.0f} m")
    course_table.add_row("Elevation Loss", f"{course.stats.loss:.0f} m")
    course_table.add_row("Min/Max Elevation", f"{course.stats.min_elevation:.0f}m / {course.stats.max_elevation:.0f}m")
    course_table.add_row("Median Elevation", f"{course.median_elevation:.0f} m")
    course_table.add_row("Checkpoints", str(len(course.segments)))
    console.print(course_table)

    # Per-segment paces
    console.print("\n[bold]🏃 Segment Paces[/bold]")
    pace_table = Table(show_header=True, header_style="bold magenta")
    pace_table.add_column("Checkpoint", style="cyan")
    pace_table.add_column("Mile", style="white")
    pace_table.add_column("Aggressive", style="red")
    pace_table.add_column("Balanced", style="green")
    pace_table.add_column("Conservative", style="yellow")
    pace_table.add_column("Confidence")
    pace_table.add_column("Reasoning", style="dim")

    for segment, derivation, options in zip(race_plan.segments, race_plan.derivations, race_plan.strategies):
        pace_table.add_row(
            segment.checkpoint_name,
            f"{segment.cumulative_distance:.1f}",
            *[format_pace(o.pace_min_per_distance) for o in options],
            derivation.confidence.value,
            derivation.reasoning,
        )
    console.print(pace_table)

    # Finish
    console.print("\n[bold]⏱️ Predicted Finish[/bold]")
    summary = race_plan.time_summary
    finish_table = Table(show_header=False)
    finish_table.add_column("Metric", style="cyan")
    finish_table.add_column("Value", style="white")
    finish_table.add_row("Fatigue Factor", f"{race_plan.fatigue_factor:.1f}% per 10 mi")
    finish_table.add_row("Base Pace", format_pace(race_plan.base_pace))
    finish_table.add_row("Running Time (fatigue)", format_minutes(race_plan.finish_time_with_fatigue))
    finish_table.add_row("Checkpoint Time", format_minutes(summary.total_checkpoint_minutes))
    finish_table.add_row("Total Race Time", format_minutes(summary.total_race_minutes))
    console.print(finish_table)

    if verbose:
        console.print("\n[bold]📐 Pace Profile[/bold]")
        profile_table = Table(show_header=True, header_style="bold yellow")
        profile_table.add_column("Grade", style="cyan")
        profile_table.add_column("Samples", style="white")
        profile_table.add_column("Pace", style="green")
        for bucket in pace_model.profile:
            samples = f"{bucket.sample_count} [dim](few)[/dim]" if bucket.low_confidence else str(bucket.sample_count)
            profile_table.add_row(bucket.label, samples, format_pace(bucket.avg_pace))
        console.print(profile_table)

        console.print("\n[bold]⛰️ Terrain Mix[/bold]")
        terrain_table = Table(show_header=True, header_style="bold yellow")
        terrain_table.add_column("Checkpoint", style="cyan")
        terrain_table.add_column("Downhill", style="green")
        terrain_table.add_column("Flat", style="white")
        terrain_table.add_column("Uphill", style="red")
        terrain_table.add_column("Suggested Stop")
        flat_idx = next(b.index for b in pace_model.profile if b.lower < 0 < b.upper)
        for segment, miles in zip(course.segments, course.legs_miles):
            terrain_table.add_row(
                segment.checkpoint_name,
                f"{miles[:flat_idx].sum():.1f} mi",
                f"{miles[flat_idx]:.1f} mi",
                f"{miles[flat_idx + 1:].sum():.1f} mi",
                format_duration(suggest_checkpoint_time(segment)),
            )
        console.print(terrain_table)

        console.print("\n[bold]📉 Fatigue Curve[/bold]")
        curve_table = Table(show_header=True, header_style="bold yellow")
        curve_table.add_column("Mile", style="cyan")
        curve_table.add_column("Expected Pace", style="green")
        curve_table.add_column("Slowdown")
        for point in generate_fatigue_curve(race_plan.base_pace, race_plan.total_distance, race_plan.fatigue_factor):
            curve_table.add_row(
                f"{point.distance:.1f}",
                format_pace(point.expected_pace),
                f"{point.percent_degradation:.1f}% ({fatigue_description(point.percent_degradation)})",
            )
        console.print(curve_table)

        etas = calculate_checkpoint_etas(plan_file.start_time, race_plan.segments, race_plan.segment_times)
        if etas:
            console.print("\n[bold]🕒 Checkpoint ETAs[/bold]")
            eta_table = Table(show_header=True, header_style="bold yellow")
            eta_table.add_column("Checkpoint", style="cyan")
            eta_table.add_column("Arrive", style="green")
            eta_table.add_column("Leave", style="white")
            for eta in etas:
                eta_table.add_row(eta.checkpoint_name, f"{eta.arrival:%a %H:%M}", f"{eta.departure:%a %H:%M}")
            console.print(eta_table)

    for warning in race_plan.warnings:
        console.print(f"[yellow]{warning}[/yellow]")

    if race_plan.energy:
        console.print("\n[bold]🍌 Energy Balance[/bold]")
        energy_table = Table(show_header=True, header_style="bold green")
        energy_table.add_column("Checkpoint", style="cyan")
        energy_table.add_column("Burned", style="red")
        energy_table.add_column("Consumed", style="green")
        energy_table.add_column("Glycogen", style="white")
        energy_table.add_column("Bonk Risk")
        energy_table.add_column("Time to Bonk")

        risk_styles = {"none": "green", "low": "green", "moderate": "yellow", "high": "red", "critical": "bold red"}
        for segment, calc in zip(race_plan.segments, race_plan.energy):
            style = risk_styles[calc.bonk_risk.value]
            energy_table.add_row(
                segment.checkpoint_name,
                f"{calc.segment_calories_burned:.0f}",
                f"{calc.segment_calories_consumed:.0f}",
                f"{calc.estimated_glycogen_percent:.0f}%",
                f"[{style}]{calc.bonk_risk.value}[/{style}]",
                format_duration(calc.time_to_bonk),
            )
        console.print(energy_table)

        for segment, calc in zip(race_plan.segments, race_plan.energy):
            for warning in calc.segment_warnings:
                console.print(f"[red]{segment.checkpoint_name}: {warning}[/red]")
        tips = dict.fromkeys(tip for calc in race_plan.energy for tip in calc.general_tips)
        for tip in tips:
            console.print(f"[dim]• {tip}[/dim]")

    eccentric = race_plan.eccentric_load
    console.print("\n[bold]🦵 Downhill Load[/bold]")
    descent_table = Table(show_header=True, header_style="bold red")
    descent_table.add_column("Checkpoint", style="cyan")
    descent_table.add_column("Grade", style="white")
    descent_table.add_column("Loss", style="white")
    descent_table.add_column("Score")
    descent_table.add_column("Strategy", style="dim")
    for segment, descent in zip(race_plan.segments, race_plan.descents):
        if descent.eccentric_score <= 0:
            continue
        descent_table.add_row(
            segment.checkpoint_name,
            f"{descent.gradient:+.1f}%",
            f"{descent.elevation_loss_feet:.0f} ft",
            f"{descent.eccentric_score:.0f}",
            f"{descent.strategy.category.value}: {descent.strategy.advice}",
        )
    if descent_table.row_count:
        console.print(descent_table)
    console.print(f"[bold]{eccentric.message}[/bold] (score {eccentric.total_eccentric_score:.0f})")
    console.print(f"  {eccentric.training_advice}")
    for recommendation in eccentric.recommendations:
        console.print(f"[dim]• {recommendation}[/dim]")


@app.command()
def analyze(
        fit_file: Path = typer.Argument(..., help="Completed activity (FIT)"),
        segments_file: Path = typer.Option(..., "--segments", "-s", help="Race plan JSON with checkpoints"),
        course_file: Optional[Path] = typer.Option(None, "--course", "-c", help="Course GPX to rebuild the plan from"),
        history_file: Optional[Path] = typer.Option(None, "--history", help="Past activity (FIT) the plan was built from"),
        fatigue_factor: Optional[float] = typer.Option(None, "--fatigue-factor", "-f",
                                                       help="Fatigue factor the plan assumed"),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed debug information")
):
    """
    Compare a finished race against the plan, checkpoint by checkpoint.

    Example:
        python scripts/plan_race.py analyze race.fit --segments plan.json --course course.gpx --history last_ultra.fit
    """
    _setup_logging(verbose)

    try:
        plan_file = load_race_plan(segments_file)
        activity = parse_fit(str(fit_file))
    except PacePlannerError as e:
        _fail(str(e))

    planned_paces = None
    if course_file is not None:
        if not course_file.exists():
            _fail(f"GPX file not found: {course_file}")
        try:
            course = Course.from_gpx(course_file.read_bytes(), plan_file.segments)
            history = parse_fit(str(history_file)) if history_file else []
        except PacePlannerError as e:
            _fail(str(e))
        race_plan = plan_race(course, PaceModel(history, plan_file.athlete_settings), fatigue_factor=fatigue_factor)
        planned_paces = race_plan.segment_paces
        fatigue_factor = race_plan.fatigue_factor
    else:
        console.print("[yellow]No course given; splits are compared with custom or default paces[/yellow]")

    analytics = calculate_race_analytics(plan_file.segments, activity, planned_paces, fatigue_factor)
    if analytics is None:
        _fail("No checkpoint could be matched to the activity")

    console.print("\n[bold]📊 Checkpoint Splits[/bold]")
    split_table = Table(show_header=True, header_style="bold magenta")
    split_table.add_column("Checkpoint", style="cyan")
    split_table.add_column("Planned", style="white")
    split_table.add_column("Actual", style="green")
    split_table.add_column("Variance")
    split_table.add_column("GAP", style="yellow")
    split_table.add_column("Avg HR")
    split_table.add_column("Grade")

    for split in analytics.splits:
        variance_style = "red" if split.pace_variance > 0 else "green"
        split_table.add_row(
            split.checkpoint_name,
            format_pace(split.planned_pace),
            format_pace(split.actual_pace),
            f"[{variance_style}]{split.pace_variance:+.1f}%[/{variance_style}]",
            f"{format_pace(split.actual_gap)} ({split.gap_effort})",
            f"{split.avg_heart_rate:.0f}" if split.avg_heart_rate is not None else "-",
            f"{split.avg_grade:+.1f}%",
        )
    console.print(split_table)

    console.print("\n[bold]📈 Race Summary[/bold]")
    summary_table = Table(show_header=False)
    summary_table.add_column("Metric", style="cyan")
    summary_table.add_column("Value", style="white")
    summary_table.add_row("Planned Time", format_minutes(analytics.total_planned_time))
    summary_table.add_row("Actual Time", format_minutes(analytics.total_actual_time))
    summary_table.add_row("Average Pace", format_pace(analytics.avg_pace))
    summary_table.add_row("Pace Variance", f"{analytics.pace_variance:+.1f}%")
    summary_table.add_row("Negative Split", "✅ Yes" if analytics.negative_split else "❌ No")
    summary_table.add_row("Consistency", analytics.pacing_consistency)
    summary_table.add_row("Fade Rate", f"{analytics.fade_rate:.1f}% per 10 mi")
    summary_table.add_row("Efficiency", f"{analytics.efficiency_score} ({analytics.efficiency_grade})")
    if analytics.fatigue_comparison is not None:
        summary_table.add_row("Fatigue vs Plan", analytics.fatigue_comparison.message)
    console.print(summary_table)

    if analytics.insights:
        console.print("\n[bold]💡 Insights[/bold]")
        for insight in analytics.insights:
            console.print(f"[bold]{insight.message}[/bold] ({insight.category.value}, {insight.priority})")
            console.print(f"  {insight.recommendation}")
            console.print(f"  [dim]{insight.details}[/dim]")

@app.command()
def template(
        gpx_file: Path = typer.Argument(..., help="Path to the course GPX"),
        output: Path = typer.Option(..., "--output", "-o", help="Where to write the race plan JSON"),
        every: float = typer.Option(config.DEFAULT_CHECKPOINT_INTERVAL_MILES, "--every", "-e",
                                    help="Miles between generated checkpoints"),
        weight: Optional[float] = typer.Option(None, "--weight", "-w", help="Body weight (kg) to store"),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed debug information")
):
    """
    Write a starter race plan with evenly spaced, GPS-located checkpoints.

    Example:
        python scripts/plan_race.py template course.gpx -o plan.json --every 8
    """
    _setup_logging(verbose)

    if not gpx_file.exists():
        _fail(f"GPX file not found: {gpx_file}")

    try:
        points = parse_gpx(gpx_file.read_bytes())
    except PacePlannerError as e:
        _fail(str(e))

    segments = create_uniform_segments(points, every)
    if not segments:
        _fail("Checkpoint interval must be positive")

    metrics = AthleteMetrics(body_weight_kg=weight) if weight else None
    save_race_plan(output, segments, metrics)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Checkpoint", style="cyan")
    table.add_column("Mile", style="white")
    table.add_column("Lat/Lng", style="dim")
    for segment in segments:
        table.add_row(segment.checkpoint_name, f"{segment.cumulative_distance:.1f}",
                      f"{segment.latitude:.5f}, {segment.longitude:.5f}")
    console.print(table)
    console.print(f"[green]✅ Race plan written to {output}[/green]")


if __name__ == "__main__":
    app()
