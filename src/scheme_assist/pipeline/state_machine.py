"""Legal lifecycle moves for a query."""

from __future__ import annotations

from scheme_assist.exceptions import InvalidTransitionError
from scheme_assist.models.domain import Query, QueryState

TERMINAL_STATES = frozenset({QueryState.DELIVERED, QueryState.FAILED})

TRANSITIONS: dict[QueryState, frozenset[QueryState]] = {
    QueryState.RECEIVED: frozenset({QueryState.TRANSCRIPT_VALIDATED}),
    QueryState.TRANSCRIPT_VALIDATED: frozenset({QueryState.RETRIEVING}),
    # RESPONSE_READY directly when retrieval finds nothing
    QueryState.RETRIEVING: frozenset({QueryState.GENERATING, QueryState.RESPONSE_READY}),
    QueryState.GENERATING: frozenset({QueryState.ELIGIBILITY_CHECK, QueryState.RESPONSE_READY}),
    QueryState.ELIGIBILITY_CHECK: frozenset({QueryState.RESPONSE_READY}),
    QueryState.RESPONSE_READY: frozenset({QueryState.DELIVERED}),
    QueryState.DELIVERED: frozenset(),
    QueryState.FAILED: frozenset(),
}


def can_transition(current: QueryState, target: QueryState) -> bool:
    if target is QueryState.FAILED:
        return current not in TERMINAL_STATES
    return target in TRANSITIONS[current]


def transition(query: Query, target: QueryState) -> None:
    if not can_transition(query.state, target):
        raise InvalidTransitionError(
            f"query {query.query_id}: {query.state.value} -> {target.value} not allowed"
        )
    query.history.append(query.state)
    query.state = target
