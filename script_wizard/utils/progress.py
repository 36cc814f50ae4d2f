from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from typing import Optional

from ..models import WizardState

def create_spinner(console: Optional[Console] = None, transient: bool = True) -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=transient,
    )

class GenerationProgress:
    """State listener that shows a spinner while a script is being generated."""

    def __init__(self, console: Optional[Console] = None, description: str = "Writing your script..."):
        self.console = console
        self.description = description
        self._progress: Optional[Progress] = None
        self._task_id = None

    def __call__(self, state: WizardState):
        if state.is_loading:
            if self._progress is None:
                self._progress = create_spinner(self.console)
                self._progress.start()
                self._task_id = self._progress.add_task(self.description, total=None)
            if state.streaming_text:
                received = len(state.streaming_text.split())
                self._progress.update(self._task_id, description=f"{self.description} ({received} words received)")
        elif self._progress is not None:
            self._progress.stop()
            self._progress = None
            self._task_id = None
