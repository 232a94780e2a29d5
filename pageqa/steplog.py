"""Timed step log for a single pipeline run.

Each call to :meth:`StepLog.step` prints one line of the form::

    [1.23s] Step 4: Cache directory checked/created

followed by an optional response body, then advances the step counter.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

import typer


@dataclass
class StepLog:
    """Start time and next step index for one run."""

    start: float = field(default_factory=time.perf_counter)
    current_step: int = 1
    echo: Callable[[str], None] = typer.echo

    def elapsed(self) -> float:
        """Seconds since the log was created."""
        return time.perf_counter() - self.start

    def step(self, message: str, response: str | None = None) -> str:
        """Emit the step line (and *response*, if any) and return the line."""
        line = f"[{self.elapsed():.2f}s] Step {self.current_step}: {message}"
        self.echo(line)
        if response:
            self.echo(response)
        self.current_step += 1
        return line
