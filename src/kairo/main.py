"""Console front end for the KAIRO focus timer."""

from __future__ import annotations

import time
from typing import Callable, Optional

import click

from .clock import TickFactory, now_ms, remaining_until
from .config import (
    AMBIENT_SOUNDS,
    KairoSettings,
    history_path,
    load_settings,
    prefs_path,
    save_settings,
    session_path,
)
from .cues import BellCuePlayer, NullAmbient
from .engine import FocusEngine, RunState
from .history import HistoryLog, start_of_day_ms
from .modes import SessionFamily, build_catalog, format_clock
from .notifier import DesktopNotifier
from .store import SessionStore
from .tips import TipService


PAUSE_CHOICES = ["resume", "reset", "switch", "skip", "exit", "quit"]


def build_engine(
    home: Optional[str],
    settings: Optional[KairoSettings] = None,
    *,
    clock: Callable[[], int] = now_ms,
    tick_factory: Optional[TickFactory] = None,
) -> FocusEngine:
    settings = settings or load_settings(prefs_path(home))
    return FocusEngine(
        settings,
        store=SessionStore(session_path(home)),
        history=HistoryLog(history_path(home)),
        clock=clock,
        tick_factory=tick_factory,
        cues=BellCuePlayer(enabled=settings.sound_enabled),
        ambient=NullAmbient(),
        notifier=DesktopNotifier(),
        tips=TipService(timeout_s=settings.tip_timeout_s),
    )


def format_minutes(duration: float) -> str:
    mins, secs = divmod(int(round(duration * 60)), 60)
    return f"{mins}m {secs}s" if secs > 0 else f"{mins}m"


def render_line(engine: FocusEngine) -> str:
    mode = engine.mode
    if engine.run_state is RunState.IDLE:
        return f"{engine.family.value} {mode.label}  {format_clock(mode.total_seconds)}  idle"
    parts = [
        f"{engine.family.value} {mode.label}",
        format_clock(engine.remaining_seconds),
        engine.status_text,
    ]
    if engine.family is SessionFamily.FOCUS:
        parts.append(f"#{engine.session_ordinal}")
    return "  ".join(parts)


def _print_progress(engine: FocusEngine) -> None:
    click.echo("\r" + render_line(engine).ljust(48), nl=False)
    if engine.tip:
        click.echo(f"\n  {engine.tip}")
        engine.tip = None
    if engine.last_completed is not None and engine.insight:
        click.echo(f"\n  {engine.insight}")
        engine.insight = None


def _handle_interrupt(engine: FocusEngine) -> bool:
    """Pause and ask what to do. Returns False when the user quits."""
    engine.pause()
    while engine.run_state is RunState.PAUSED:
        click.echo("")
        choice = click.prompt("Paused", type=click.Choice(PAUSE_CHOICES), default="resume")
        if choice == "resume":
            engine.resume()
        elif choice == "reset":
            engine.reset()
        elif choice == "switch":
            engine.switch_family()
        elif choice == "skip":
            if not engine.skip():
                click.echo("Only a break can be skipped.")
        elif choice == "exit":
            engine.exit()
        else:
            return False
    return True


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--home",
    envvar="KAIRO_HOME",
    type=click.Path(file_okay=False),
    help="Directory holding prefs, session and history (defaults to ~/.kairo).",
)
@click.pass_context
def cli(ctx: click.Context, home: Optional[str]) -> None:
    """KAIRO focus/break timer."""
    ctx.obj = home


@cli.command()
@click.option("--break", "use_break", is_flag=True, help="Start in the break family.")
@click.option("--mode", "label", help="Mode label to start, e.g. 03, B2 or C.")
@click.option("--auto/--no-auto", default=None, help="Continue into the next session automatically.")
@click.pass_obj
def run(home: Optional[str], use_break: bool, label: Optional[str], auto: Optional[bool]) -> None:
    """Resume the saved session, or start a new one. Ctrl+C pauses."""
    engine = build_engine(home)
    if auto is not None:
        engine.settings.auto_start_timer = auto
    engine.on_change(_print_progress)

    if engine.restore():
        click.echo("Resumed saved session.")
    else:
        if use_break:
            engine.switch_family()
        if label is not None:
            labels = [m.label for m in engine.catalog]
            if label not in labels:
                raise click.BadParameter(f"choose one of {', '.join(labels)}", param_hint="--mode")
            engine.select(labels.index(label))
        engine.start()

    try:
        while engine.run_state is not RunState.IDLE:
            try:
                engine.pump(timeout=0.5)
            except KeyboardInterrupt:
                if not _handle_interrupt(engine):
                    click.echo("Session saved. Run `kairo run` to pick it up again.")
                    return
        # let a pending insight arrive
        engine.pump(timeout=0.5)
        click.echo("")
        entry = engine.last_completed
        if entry is not None:
            click.echo(f"Completed {entry.family.value} {entry.mode_label} ({format_minutes(entry.duration_minutes)}).")
            click.echo(f"Next up: {render_line(engine)}")
    finally:
        engine.shutdown()


@cli.command()
@click.pass_obj
def status(home: Optional[str]) -> None:
    """Show the saved session without starting it."""
    snap = SessionStore(session_path(home)).load()
    if snap is None:
        click.echo("No session in progress.")
        return
    settings = load_settings(prefs_path(home))
    catalog = build_catalog(snap.family, settings.custom_focus_seconds, settings.custom_break_seconds)
    label = next((m.label for m in catalog if m.id == snap.mode_id), str(snap.mode_id))
    if snap.is_paused:
        remaining = snap.remaining_seconds
        state = "paused"
    else:
        remaining = remaining_until(snap.end_time_ms, now_ms())
        state = "running" if remaining > 0 else "finished, run `kairo run` to log it"
    click.echo(f"{snap.family.value} {label}  {format_clock(remaining)}  {state}  (session #{snap.session_ordinal})")


@cli.command()
@click.option("--clear", is_flag=True, help="Delete every logged session.")
@click.option("--today", is_flag=True, help="Only show today's sessions.")
@click.pass_obj
def history(home: Optional[str], clear: bool, today: bool) -> None:
    """List completed sessions, oldest first."""
    log = HistoryLog(history_path(home))
    if clear:
        if log.list_all() and click.confirm("Clear all history?"):
            log.clear_all()
            click.echo("History cleared.")
        return
    since = start_of_day_ms() if today else 0
    entries = [e for e in log.list_all() if e.completed_at_ms >= since]
    if not entries:
        click.echo("No completed sessions yet.")
        return
    for e in entries:
        stamp = time.strftime("%Y-%m-%d %H:%M", time.localtime(e.completed_at_ms / 1000))
        click.echo(f"{stamp}  {e.family.value:<5}  {e.mode_label:<3}  {format_minutes(e.duration_minutes)}")
    midnight = start_of_day_ms()
    click.echo(
        f"Today: {log.count_since(midnight)} focus sessions, "
        f"{format_minutes(log.total_minutes_since(midnight))} focused."
    )


@cli.command()
@click.option("--focus-seconds", type=int, help="Custom focus length in seconds (0 removes it).")
@click.option("--break-seconds", type=int, help="Custom break length in seconds (0 removes it).")
@click.option("--auto/--no-auto", default=None, help="Auto-start the next session.")
@click.option("--sound/--no-sound", default=None)
@click.option("--tips/--no-tips", default=None)
@click.option("--notify/--no-notify", default=None, help="Desktop notification on completion.")
@click.option("--ambient", type=click.Choice(list(AMBIENT_SOUNDS)))
@click.option("--standard", "standard_label", help="Label of the mode to land on when returning to focus.")
@click.pass_obj
def config(
    home: Optional[str],
    focus_seconds: Optional[int],
    break_seconds: Optional[int],
    auto: Optional[bool],
    sound: Optional[bool],
    tips: Optional[bool],
    notify: Optional[bool],
    ambient: Optional[str],
    standard_label: Optional[str],
) -> None:
    """Show or change preferences."""
    path = prefs_path(home)
    settings = load_settings(path)
    changes = {
        "custom_focus_seconds": None if focus_seconds is None else max(0, focus_seconds),
        "custom_break_seconds": None if break_seconds is None else max(0, break_seconds),
        "auto_start_timer": auto,
        "sound_enabled": sound,
        "show_tips": tips,
        "notifications_enabled": notify,
        "ambient_sound": ambient,
        "standard_mode_label": standard_label,
    }
    changed = False
    for name, value in changes.items():
        if value is not None:
            setattr(settings, name, value)
            changed = True
    if changed:
        save_settings(settings, path)
    for name, value in vars(settings).items():
        click.echo(f"{name} = {value}")


def main() -> None:
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
