"""
logic/resolver.py - SLD Resolution

Goal-driven proof search over a KnowledgeBase with backtracking.

The search runs over an explicit stack of choice points instead of native
recursion, so Python stack depth stays constant however long a derivation
gets. The pending goals form a linked continuation; each entry carries
the cut barrier it was created under (the choice-point stack height
that ``!`` truncates to) and its derivation depth.

Control:
- Builtins are tried before clause lookup
- Clause alternatives are renamed apart with a fresh prefix per call
- ``!`` commits to the current clause; ``call/N`` is opaque to cut while
  ``,`` ``;`` and ``->`` are transparent
- ``max_depth`` (off by default) prunes branches that nest too deeply and
  marks the result as depth-limited; ``max_solutions`` stops the search early
- A CancellationToken (or the configured timeout) is polled at every step

Example:
    kb = KnowledgeBase()
    kb.load_program("parent(tom, bob). parent(bob, ann).")
    resolver = Resolver(kb)

    result = resolver.query(parse_query("parent(tom, X)").value)
    result.solutions  # [{"X": Atom("bob")}]
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, NamedTuple, Optional

from ..config import LogicConfig
from .builtins import BUILTINS, BuiltinContext, add_call_args
from .knowledge_base import KnowledgeBase
from .terms import Atom, Clause, Compound, Term, Var, format_term, term_variables, to_goal
from .unification import Substitution, deref, restrict, substitute, unify

logger = logging.getLogger(__name__)


class ResolutionStatus(Enum):
    """Outcome of a query."""

    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"  # Deadline passed before the search finished
    CANCELLED = "cancelled"
    DEPTH_EXCEEDED = "depth_exceeded"  # No solutions, and max_depth pruned a branch
    ERROR = "error"


class CancellationToken:
    """Cooperative cancellation signal polled by the resolver.

    Args:
        timeout: Optional number of seconds after which the token reports
            itself cancelled
    """

    def __init__(self, timeout: float | None = None):
        self._cancelled = False
        self.deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled


class QueryCancelled(Exception):
    """Raised out of Resolver.solve when the search is aborted."""

    def __init__(self, status: ResolutionStatus):
        super().__init__(status.value)
        self.status = status


@dataclass
class QueryResult:
    """Result of Resolver.query."""

    success: bool
    status: ResolutionStatus
    solutions: list[Substitution] = field(default_factory=list)
    duration_ms: float = 0.0
    trace: list[str] = field(default_factory=list)
    depth_limited: bool = False  # max_depth pruned at least one branch
    error: str | None = None

    @property
    def cancelled(self) -> bool:
        return self.status in (ResolutionStatus.CANCELLED, ResolutionStatus.TIMEOUT)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "status": self.status.value,
            "solutions": [
                {name: format_term(value) for name, value in solution.items()}
                for solution in self.solutions
            ],
            "duration_ms": self.duration_ms,
            "depth_limited": self.depth_limited,
            "error": self.error,
        }


class Goal(NamedTuple):
    """Entry of the goal continuation (a linked list)."""

    term: Term
    barrier: int
    depth: int
    rest: Optional[Goal]


class _Cut(NamedTuple):
    """Internal goal that truncates the choice-point stack to ``barrier``."""

    barrier: int


@dataclass
class ChoicePoint:
    """Untried alternatives for one goal.

    Clause choice points hold the predicate's clause snapshot; other choice
    points hold ready-made (substitution, continuation) states.
    """

    goal: Term | None
    subst: Substitution
    rest: Goal | None
    depth: int
    alternatives: list
    index: int = 0
    clauses: bool = False


@dataclass
class _QueryState:
    """Mutable state shared by a query and its nested sub-proofs."""

    token: CancellationToken | None
    deadline: float | None
    trace: list[str] | None
    rename_counter: int = 0
    var_counter: int = 0
    depth_limited: bool = False


class Resolver:
    """SLD resolver over a knowledge base."""

    def __init__(self, kb: KnowledgeBase, config: LogicConfig | None = None):
        self.kb = kb
        self.config = config or LogicConfig()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def query(
        self,
        goals: Term | list[Term],
        cancel: CancellationToken | None = None
    ) -> QueryResult:
        """Find all solutions (up to max_solutions) for a goal list.

        Each solution maps the query's named variables to fully resolved
        terms. Cancellation and timeout produce an unsuccessful result with
        no solutions. A failed search that max_depth cut short reports
        DEPTH_EXCEEDED rather than FAILURE.
        """
        start = time.perf_counter()
        trace: list[str] = []
        solutions = []
        state = self._start(cancel, trace)
        try:
            for solution in self._solutions(goals, state):
                solutions.append(solution)
        except QueryCancelled as e:
            logger.info("Query aborted: %s", e.status.value)
            return QueryResult(
                success=False,
                status=e.status,
                duration_ms=(time.perf_counter() - start) * 1000,
                trace=trace,
            )
        except RecursionError:
            # Raised only by builtins nesting sub-proofs (\+, findall, call/N)
            logger.warning("Query aborted: nested sub-proofs too deep")
            return QueryResult(
                success=False,
                status=ResolutionStatus.ERROR,
                duration_ms=(time.perf_counter() - start) * 1000,
                trace=trace,
                error="Nested sub-proofs too deep",
            )

        duration_ms = (time.perf_counter() - start) * 1000
        if solutions:
            status = ResolutionStatus.SUCCESS
        elif state.depth_limited:
            status = ResolutionStatus.DEPTH_EXCEEDED
        else:
            status = ResolutionStatus.FAILURE
        logger.info("Query finished: %d solutions in %.2f ms", len(solutions), duration_ms)
        return QueryResult(
            success=bool(solutions),
            status=status,
            solutions=solutions,
            duration_ms=duration_ms,
            trace=trace,
            depth_limited=state.depth_limited,
        )

    def solve(
        self,
        goals: Term | list[Term],
        cancel: CancellationToken | None = None,
        trace: list[str] | None = None
    ) -> Iterator[Substitution]:
        """Lazily yield solutions for a goal list.

        Raises:
            QueryCancelled: the token was cancelled or the deadline passed
        """
        return self._solutions(goals, self._start(cancel, trace))

    def _start(self, cancel: CancellationToken | None, trace: list[str] | None) -> _QueryState:
        deadline = None
        if self.config.timeout is not None:
            deadline = time.monotonic() + self.config.timeout
        if cancel is not None and cancel.deadline is not None:
            deadline = cancel.deadline if deadline is None else min(deadline, cancel.deadline)

        return _QueryState(
            token=cancel,
            deadline=deadline,
            trace=trace if trace is not None and self.config.trace_execution else None,
        )

    def _solutions(self, goals: Term | list[Term], state: _QueryState) -> Iterator[Substitution]:
        goals = list(goals) if isinstance(goals, (list, tuple)) else [goals]
        names = [n for g in goals for n in term_variables(g) if not n.startswith("_")]
        names = list(dict.fromkeys(names))

        count = 0
        for theta in self._run(goals, {}, state):
            yield restrict(theta, names)
            count += 1
            if self.config.max_solutions is not None and count >= self.config.max_solutions:
                return

    def prove(self, goals: Term | list[Term], cancel: CancellationToken | None = None) -> bool:
        """True if the goals have at least one solution."""
        try:
            for _ in self.solve(goals, cancel=cancel):
                return True
        except QueryCancelled as e:
            logger.info("Proof aborted: %s", e.status.value)
            return False
        except RecursionError:
            logger.warning("Proof aborted: nested sub-proofs too deep")
            return False
        return False

    def builtin_context(self, state: _QueryState | None = None, depth: int = 0) -> BuiltinContext:
        """Context through which builtins prove nested goals."""
        if state is None:
            state = _QueryState(token=None, deadline=None, trace=None)

        def fresh_var() -> Var:
            state.var_counter += 1
            return Var(f"_V{state.var_counter}")

        return BuiltinContext(
            solve=lambda goals, subst: self._run(goals, subst, state, depth),
            fresh_var=fresh_var,
            occurs_check=self.config.occurs_check,
            enable_negation=self.config.enable_negation,
        )

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def _run(
        self,
        goals: list[Term],
        subst: Substitution,
        state: _QueryState,
        depth: int = 0
    ) -> Iterator[Substitution]:
        """Core SLD loop. Yields raw substitutions for each derivation."""
        stack: list[ChoicePoint] = []
        current: tuple[Substitution, Goal | None] | None = (subst, _push_goals(goals, 0, depth, None))

        while True:
            self._poll(state)

            if current is None:
                current = self._backtrack(stack, state)
                if current is None:
                    return
                continue

            theta, cont = current
            if cont is None:
                yield theta
                current = None
                continue

            goal, barrier, depth, rest = cont

            if isinstance(goal, _Cut):
                del stack[goal.barrier:]
                current = (theta, rest)
                continue

            goal = to_goal(deref(goal, theta))
            if state.trace is not None:
                entry = f"{depth}: {format_term(substitute(goal, theta))}"
                state.trace.append(entry)
                logger.debug("call %s", entry)

            if isinstance(goal, Var):
                logger.debug("Unbound goal %s", goal.name)
                current = None
                continue
            if not isinstance(goal, Compound):
                logger.debug("Goal is not callable: %s", format_term(goal))
                current = None
                continue

            key = goal.indicator

            # Control constructs
            if key == ("!", 0):
                if self.config.enable_cut:
                    del stack[barrier:]
                current = (theta, rest)
            elif key == (",", 2):
                rest = Goal(goal.args[1], barrier, depth, rest)
                current = (theta, Goal(goal.args[0], barrier, depth, rest))
            elif key == (";", 2):
                left = deref(goal.args[0], theta)
                if isinstance(left, Compound) and left.indicator == ("->", 2):
                    self._push_if_then_else(
                        stack, theta, left.args[0], left.args[1], goal.args[1], barrier, depth, rest
                    )
                else:
                    stack.append(ChoicePoint(goal, theta, rest, depth, [
                        (theta, Goal(left, barrier, depth, rest)),
                        (theta, Goal(goal.args[1], barrier, depth, rest)),
                    ]))
                current = None
            elif key == ("->", 2):
                self._push_if_then_else(
                    stack, theta, goal.args[0], goal.args[1], Atom("fail"), barrier, depth, rest
                )
                current = None
            elif goal.functor == "call" and 1 <= goal.arity <= 8:
                target = add_call_args(deref(goal.args[0], theta), goal.args[1:])
                if target is None:
                    logger.debug("call/%d: goal is not callable", goal.arity)
                    current = None
                else:
                    current = (theta, Goal(target, len(stack), depth, rest))

            # Builtins
            elif key in BUILTINS:
                context = self.builtin_context(state, depth + 1)
                results = BUILTINS[key](goal.args, theta, context)
                if not results:
                    current = None
                elif len(results) == 1:
                    current = (results[0], rest)
                else:
                    stack.append(ChoicePoint(goal, theta, rest, depth, [(r, rest) for r in results]))
                    current = None

            # User predicates
            else:
                if self.config.max_depth is not None and depth >= self.config.max_depth:
                    logger.debug("Depth limit %d reached at %s", self.config.max_depth, goal.functor)
                    state.depth_limited = True
                    current = None
                    continue
                clauses = self.kb.get_clauses(*key)
                if not clauses:
                    logger.debug("No clauses for %s/%d", *key)
                    current = None
                    continue
                stack.append(ChoicePoint(goal, theta, rest, depth, clauses, clauses=True))
                current = None

    def _push_if_then_else(self, stack, theta, cond, then, otherwise, barrier, depth, rest) -> None:
        # The condition commits through a _Cut back to this choice point,
        # removing the else branch and any condition alternatives.
        index = len(stack)
        then_goal = Goal(then, barrier, depth, rest)
        committed = Goal(_Cut(index), barrier, depth, then_goal)
        stack.append(ChoicePoint(None, theta, rest, depth, [
            (theta, Goal(cond, index + 1, depth, committed)),
            (theta, Goal(otherwise, barrier, depth, rest)),
        ]))

    def _backtrack(
        self,
        stack: list[ChoicePoint],
        state: _QueryState
    ) -> tuple[Substitution, Goal | None] | None:
        """Resume the most recent choice point that still has an alternative."""
        while stack:
            cp = stack[-1]
            position = len(stack) - 1
            resumed = None
            while resumed is None and cp.index < len(cp.alternatives):
                alternative = cp.alternatives[cp.index]
                cp.index += 1
                if cp.clauses:
                    resumed = self._try_clause(cp, alternative, position, state)
                else:
                    resumed = alternative
            if cp.index >= len(cp.alternatives):
                stack.pop()
            if resumed is not None:
                return resumed
            self._poll(state)
        return None

    def _try_clause(
        self,
        cp: ChoicePoint,
        clause: Clause,
        barrier: int,
        state: _QueryState
    ) -> tuple[Substitution, Goal | None] | None:
        state.rename_counter += 1
        renamed = clause.rename_variables(f"_R{state.rename_counter}_")
        theta = unify(cp.goal, renamed.head, cp.subst, self.config.occurs_check)
        if theta is None:
            return None
        return theta, _push_goals(renamed.body, barrier, cp.depth + 1, cp.rest)

    def _poll(self, state: _QueryState) -> None:
        if state.token is not None and state.token.is_cancelled:
            raise QueryCancelled(ResolutionStatus.CANCELLED)
        if state.deadline is not None and time.monotonic() >= state.deadline:
            raise QueryCancelled(ResolutionStatus.TIMEOUT)


def _push_goals(goals, barrier: int, depth: int, rest: Goal | None) -> Goal | None:
    """Prepend a goal sequence to a continuation."""
    for term in reversed(list(goals)):
        rest = Goal(term, barrier, depth, rest)
    return rest


def create_resolver(kb: KnowledgeBase | None = None, config: LogicConfig | None = None) -> Resolver:
    """Create a resolver, with an empty knowledge base by default."""
    return Resolver(kb if kb is not None else KnowledgeBase(), config)
