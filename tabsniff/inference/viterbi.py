"""
Viterbi decoding over a row-role hidden Markov model.

Every sampled record carries a hidden role — preamble, header or data —
and the roles follow a left-to-right chain:

    PREAMBLE* → HEADER? → DATA+

``decode`` finds the single most likely role sequence for a whole sample
given per-record emission log-probabilities.  It is deliberately generic
(any number of states, any transition matrix) so the row-role model in
``ROW_ROLE_MODEL`` is just data.

All arithmetic is in log space; impossible transitions are ``-inf``.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from tabsniff.models.models import RowRole

PREAMBLE, HEADER, DATA = 0, 1, 2
ROLES: tuple[RowRole, ...] = ("preamble", "header", "data")


def _log(values) -> np.ndarray:
    with np.errstate(divide="ignore"):
        return np.log(np.asarray(values, dtype=float))


@dataclass(frozen=True)
class RoleModel:
    """
    Start and transition log-probabilities for the row-role chain.

    Attributes:
        log_start: Shape ``(S,)``.
        log_trans: Shape ``(S, S)``; ``log_trans[i, j]`` is the log-probability
                   of moving from state ``i`` to state ``j``.
    """

    log_start: np.ndarray
    log_trans: np.ndarray

    @property
    def num_states(self) -> int:
        return int(self.log_start.shape[0])


ROW_ROLE_MODEL = RoleModel(
    # A file usually opens with its header; comment preambles are the exception.
    log_start=_log([0.1, 0.6, 0.3]),
    log_trans=_log([
        # to: PREAMBLE HEADER DATA
        [0.5, 0.3, 0.2],   # from PREAMBLE
        [0.0, 0.0, 1.0],   # from HEADER
        [0.0, 0.0, 1.0],   # from DATA
    ]),
)


def decode(emissions: np.ndarray, model: RoleModel = ROW_ROLE_MODEL) -> tuple[float, list[int]]:
    """
    Return the maximum-likelihood state path.

    Args:
        emissions: Shape ``(T, S)`` emission log-probabilities, one row per record.
        model:     Start and transition log-probabilities.

    Returns:
        ``(log_likelihood, path)`` where ``path`` holds one state index per
        record.  ``log_likelihood`` is ``-inf`` when no path is possible.

    Raises:
        ValueError: If ``emissions`` is empty or has the wrong number of states.
    """
    if emissions.ndim != 2 or emissions.shape[0] == 0:
        raise ValueError("emissions must be a non-empty (T, S) array")
    if emissions.shape[1] != model.num_states:
        raise ValueError(
            f"emissions have {emissions.shape[1]} states, model has {model.num_states}"
        )

    steps = emissions.shape[0]
    backpointers = np.zeros((steps, model.num_states), dtype=np.intp)
    score = model.log_start + emissions[0]

    for t in range(1, steps):
        # candidates[i, j]: best score ending in i at t-1, then moving i → j
        candidates = score[:, None] + model.log_trans
        backpointers[t] = candidates.argmax(axis=0)
        score = candidates.max(axis=0) + emissions[t]

    state = int(score.argmax())
    best = float(score[state])

    path = [state]
    for t in range(steps - 1, 0, -1):
        state = int(backpointers[t, state])
        path.append(state)
    path.reverse()
    return best, path
