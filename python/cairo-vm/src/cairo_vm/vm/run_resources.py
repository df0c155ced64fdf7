from typing import Optional


class RunResources:
    """Step budget of a run. `n_steps=None` means unbounded."""

    def __init__(self, n_steps: Optional[int] = None):
        self.n_steps = n_steps

    def __repr__(self) -> str:
        return f"RunResources(n_steps={self.n_steps})"

    def consumed(self) -> bool:
        return self.n_steps is not None and self.n_steps <= 0

    def consume_step(self) -> None:
        if self.n_steps is not None:
            self.n_steps -= 1
