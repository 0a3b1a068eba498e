"""
Launch failure classification.

The default classifier is a substring heuristic over the process output.
Anything implementing FailureClassifier can replace it without touching
the launcher or the self-heal loop.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Protocol


@dataclass(frozen=True)
class Classification:
    """Verdict for one launch."""
    success: bool
    error: str = ""
    signals: List[str] = field(default_factory=list)


class FailureClassifier(Protocol):
    def classify(self, exit_code: int, stdout: str, stderr: str) -> Classification: ...


@dataclass(frozen=True)
class FailureSignal:
    """A substring that marks a launch as failed when found in a stream."""
    name: str
    stream: str  # "stdout" | "stderr"
    needle: str


DEFAULT_SIGNALS = [
    FailureSignal(name="stderr_error", stream="stderr", needle="error"),
    FailureSignal(name="compile_failure", stream="stdout", needle="Failed to compile"),
]


class HeuristicClassifier:
    """
    Failure if ANY of:
    - non-zero exit code
    - "error" in stderr (case-sensitive)
    - "Failed to compile" in stdout
    """

    def __init__(self, signals: Optional[List[FailureSignal]] = None):
        self.signals = list(DEFAULT_SIGNALS if signals is None else signals)

    def classify(self, exit_code: int, stdout: str, stderr: str) -> Classification:
        hits: List[str] = []
        if exit_code != 0:
            hits.append("exit_code")

        streams = {"stdout": stdout, "stderr": stderr}
        for signal in self.signals:
            if signal.needle in streams.get(signal.stream, ""):
                hits.append(signal.name)

        if not hits:
            return Classification(success=True)

        error = stderr or stdout or f"Process exited with code {exit_code}"
        return Classification(success=False, error=error, signals=hits)
