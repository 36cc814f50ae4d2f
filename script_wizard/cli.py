import asyncio
import click
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .catalog import DURATIONS, LANGUAGES, STYLES, TONES, language_code
from .config import Config, ServiceConfig
from .errors import WizardError
from .models import OTHER_STYLE, QualityScore, WizardStep
from .rendering import result_to_markdown, result_to_text
from .scoring import score_script
from .service import GenerationClient
from .session import SessionStore
from .utils.logger import setup_logger
from .utils.progress import GenerationProgress
from .wizard import WizardController

SKIP = "skip"
BACK = "back"


@click.group()
@click.option('--config', '-c', type=click.Path(), default='config.yaml',
              help='Path to configuration file')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx: click.Context, config: str, verbose: bool):
    """Script Wizard - generate short-video scripts step by step."""
    ctx.ensure_object(dict)

    config_path = Path(config)
    if config_path.exists():
        ctx.obj['config'] = Config.from_yaml(config_path)
    else:
        ctx.obj['config'] = Config()

    log_level = "DEBUG" if verbose else ctx.obj['config'].log_level
    logger = setup_logger(log_level)
    ctx.obj['logger'] = logger
    ctx.obj['console'] = Console()

    if config_path.exists():
        logger.debug(f"Config loaded from: {config_path}")


class _TypingEcho:
    """Prints assistant messages as the typewriter reveals them."""

    def __init__(self, console: Console):
        self.console = console
        self._shown = 0

    def __call__(self, partial: str):
        if len(partial) < self._shown or self._shown == 0:
            self.finish()
            self.console.print("[bold magenta]assistant>[/bold magenta] ", end="")
            self._shown = 0
        self.console.print(partial[self._shown:], end="", markup=False, highlight=False)
        self._shown = len(partial)

    def finish(self):
        if self._shown:
            self.console.print()
        self._shown = 0


def _score_table(score: QualityScore) -> Table:
    table = Table(title="Quality score")
    table.add_column("Metric")
    table.add_column("Score", justify="right")
    for name in ("overall", "creativity", "engagement", "clarity", "timing"):
        table.add_row(name.capitalize(), str(getattr(score, name)))
    return table


def _show_notices(controller: WizardController, console: Console):
    for notice in controller.notices:
        console.print(f"[yellow]! {notice}[/yellow]")
    controller.dismiss_notices()


def _ask_style(controller: WizardController):
    style = click.prompt("Style", type=click.Choice(STYLES), default=controller.state.style or STYLES[0])
    custom = ""
    if style == OTHER_STYLE:
        custom = click.prompt("Describe your style", default=controller.state.custom_style_label or "")
    controller.select_style(style, custom)


def _ask_settings(controller: WizardController):
    state = controller.state
    duration = click.prompt(
        "Target length (seconds)",
        type=click.Choice([str(d) for d in DURATIONS]),
        default=str(state.target_duration_seconds),
    )
    tone = click.prompt("Tone", type=click.Choice(TONES), default=state.tone or TONES[0])
    language = click.prompt("Language", type=click.Choice(LANGUAGES), default=state.language or LANGUAGES[0])
    cta = click.confirm("Include a call to action?", default=state.include_call_to_action)
    controller.configure(int(duration), tone, language, cta)


async def _skip(controller: WizardController) -> bool:
    controller.request_skip()
    if click.confirm("Skip the questions and generate the script now?", default=True):
        await controller.confirm_skip()
        return True
    controller.cancel_skip()
    return False


async def _refinement_turn(controller: WizardController, console: Console):
    chat = controller.chat
    if not chat.can_answer:
        choice = click.prompt(
            f"Type '{SKIP}' to generate now or '{BACK}' to change settings",
            type=click.Choice([SKIP, BACK]),
        )
        if choice == SKIP:
            await _skip(controller)
        else:
            controller.retreat()
        return

    question = controller.state.last_assistant_turn()
    options = question.offered_options if question else []
    for number, option in enumerate(options, start=1):
        console.print(f"  [cyan]{number}.[/cyan] {option}")

    reply = click.prompt(f"Your answer ('{SKIP}' or '{BACK}' to leave)").strip()
    if reply.lower() == SKIP:
        await _skip(controller)
    elif reply.lower() == BACK:
        controller.retreat()
    elif reply.isdigit() and 1 <= int(reply) <= len(options):
        await chat.choose_option(options[int(reply) - 1])
    else:
        await chat.answer(reply)


async def _result_turn(controller: WizardController, console: Console, save: Optional[Path]) -> bool:
    """Handle the result step. Returns False when the user wants to quit."""
    state = controller.state

    if state.last_error is not None:
        error = state.last_error
        console.print(f"[red]Generation failed ({error.kind.value}): {error.message}[/red]")
        choices = (["retry"] if error.retryable else []) + [BACK, "quit"]
        action = click.prompt("What now?", type=click.Choice(choices))
        if action == "retry":
            await controller.retry()
        elif action == BACK:
            controller.retreat()
        else:
            return False
        return True

    if state.result is None:
        await controller.generate()
        return True

    console.print(Panel(result_to_text(state.result), title=f"{state.style_label}: {state.topic_keyword}"))
    if state.score_data is not None:
        console.print(_score_table(state.score_data))
    if save is not None:
        save.parent.mkdir(parents=True, exist_ok=True)
        save.write_text(result_to_markdown(state.result, state.topic_keyword, state.score_data), encoding="utf-8")
        console.print(f"[green]Saved to {save}[/green]")

    action = click.prompt("What now?", type=click.Choice(["edit", "restart", "quit"]), default="quit")
    if action == "edit":
        instruction = click.prompt("How should the script change?")
        await controller.regenerate(instruction)
    elif action == "restart":
        if click.confirm("Discard this script and start over?", default=False):
            controller.reset()
    else:
        return False
    return True


async def _drive(controller: WizardController, console: Console, echo: _TypingEcho, save: Optional[Path]):
    while True:
        _show_notices(controller, console)
        step = controller.state.step
        try:
            if step == WizardStep.STYLE:
                _ask_style(controller)
                if not await controller.advance():
                    console.print("[red]Please choose a style (and describe it if you picked 'other').[/red]")
            elif step == WizardStep.TOPIC:
                controller.set_topic(click.prompt("Topic keyword", default=controller.state.topic_keyword or None))
                if not await controller.advance():
                    console.print("[red]Please enter a topic.[/red]")
            elif step == WizardStep.SETTINGS:
                _ask_settings(controller)
                if click.confirm("Answer a few questions to sharpen the script?", default=True):
                    await controller.advance()
                else:
                    await _skip(controller)
            elif step == WizardStep.REFINEMENT:
                await _refinement_turn(controller, console)
            elif not await _result_turn(controller, console, save):
                break
        except (WizardError, ValueError) as e:
            console.print(f"[red]{e}[/red]")
        finally:
            echo.finish()


@cli.command()
@click.option('--endpoint', '-e', help='Override the generation service URL')
@click.option('--fresh', is_flag=True, help='Ignore any saved session')
@click.option('--save', type=click.Path(dir_okay=False), help='Write the final script as Markdown')
@click.pass_context
def run(ctx: click.Context, endpoint: str, fresh: bool, save: str):
    """Run the interactive script wizard."""
    config = ctx.obj['config']
    logger = ctx.obj['logger']
    console = ctx.obj['console']

    if endpoint:
        try:
            config.service = ServiceConfig.model_validate(
                {**config.service.model_dump(), "endpoint": endpoint}
            )
        except ValidationError as e:
            raise click.BadParameter(e.errors()[0]["msg"], param_hint="--endpoint")

    async def session():
        store = SessionStore(config.session)
        echo = _TypingEcho(console)
        async with GenerationClient(config.service) as client:
            if fresh:
                store.clear()
                controller = WizardController(client, config, store=store, on_typing=echo)
            else:
                controller = WizardController.from_store(client, store, config, on_typing=echo)
            controller.subscribe(GenerationProgress(console))

            if controller.state.has_unsaved_changes:
                console.print(f"[green]Resuming your session at the {controller.state.step.value} step.[/green]")
            await controller.resume()
            echo.finish()
            await _drive(controller, console, echo, Path(save) if save else None)

    try:
        asyncio.run(session())
    except click.Abort:
        raise
    except Exception as e:
        logger.error(f"Wizard failed: {e}")
        raise click.ClickException(str(e))
    console.print("Progress is saved; run again within the hour to pick up where you left off.")


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--duration', '-d', type=int, default=60, help='Target length in seconds')
@click.option('--cta/--no-cta', default=True, help='Whether a call to action was requested')
@click.pass_context
def score(ctx: click.Context, file: str, duration: int, cta: bool):
    """Score an existing script file."""
    if duration <= 0:
        raise click.BadParameter("duration must be positive", param_hint="--duration")
    text = Path(file).read_text(encoding="utf-8")
    result = score_script(text, duration, cta)
    ctx.obj['console'].print(_score_table(result))


@cli.command()
@click.pass_context
def options(ctx: click.Context):
    """List the available styles, tones, lengths and languages."""
    console = ctx.obj['console']
    console.print("[bold]Styles:[/bold] " + ", ".join(STYLES))
    console.print("[bold]Tones:[/bold] " + ", ".join(TONES))
    console.print("[bold]Lengths:[/bold] " + ", ".join(f"{d}s" for d in DURATIONS))
    console.print("[bold]Languages:[/bold] " + ", ".join(f"{name} ({language_code(name)})" for name in LANGUAGES))


@cli.command(name='clear-session')
@click.pass_context
def clear_session(ctx: click.Context):
    """Delete the saved wizard session."""
    store = SessionStore(ctx.obj['config'].session)
    store.clear()
    ctx.obj['logger'].success(f"Removed {store.path}")


def main():
    cli()

if __name__ == '__main__':
    main()
