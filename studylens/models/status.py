"""Status state machines for documents and analyses.

Both entities expose a client-visible status that only moves forward.
Rather than scattering ``if status == ...`` checks across services, every
status write goes through :func:`validate_transition`, which raises
:class:`~studylens.utils.errors.InvalidTransitionError` for illegal moves.

Document lifecycle::

    PENDING ──→ PROCESSING ──→ COMPLETED
       │             │
       └─────────────┴──────→ FAILED

Analysis lifecycle::

    PROCESSING ──→ COMPLETED
         │
         └──────→ FAILED

COMPLETED and FAILED are terminal for both.
"""

from __future__ import annotations

from enum import Enum

from studylens.utils.errors import InvalidTransitionError


class ProcessingStatus(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Processing status of an uploaded document."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class AnalysisStatus(str, Enum):  # noqa: UP042
    """Status of an analysis run."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# Keyed by enum class first: the members are str subclasses, so
# ProcessingStatus.COMPLETED == AnalysisStatus.COMPLETED as dict keys.
_ALLOWED: dict[type[Enum], dict[str, frozenset[str]]] = {
    ProcessingStatus: {
        ProcessingStatus.PENDING.value: frozenset({"processing", "failed"}),
        ProcessingStatus.PROCESSING.value: frozenset({"completed", "failed"}),
        ProcessingStatus.COMPLETED.value: frozenset(),
        ProcessingStatus.FAILED.value: frozenset(),
    },
    AnalysisStatus: {
        AnalysisStatus.PROCESSING.value: frozenset({"completed", "failed"}),
        AnalysisStatus.COMPLETED.value: frozenset(),
        AnalysisStatus.FAILED.value: frozenset(),
    },
}


def is_terminal(status: ProcessingStatus | AnalysisStatus) -> bool:
    """Return ``True`` when no further transition is possible from *status*."""
    return not _ALLOWED[type(status)][status.value]


def validate_transition(
    current: ProcessingStatus | AnalysisStatus,
    target: ProcessingStatus | AnalysisStatus,
) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is legal."""
    if type(current) is not type(target) or (
        target.value not in _ALLOWED[type(current)][current.value]
    ):
        raise InvalidTransitionError(
            message=f"Cannot move from {current.value!r} to {target.value!r}"
        )
