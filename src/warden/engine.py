from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from .errors import DefaultDenyError, ExplicitDenyError, StoreError
from .matcher import Matcher
from .policy import DENY, Policy
from .request import Request
from .store import PolicyStore

logger = logging.getLogger(__name__)

OUTCOME_ALLOW = "allow"
OUTCOME_EXPLICIT_DENY = "explicit_deny"
OUTCOME_DEFAULT_DENY = "default_deny"


@dataclass(frozen=True)
class Decision:
    """The result of evaluating a request.

    This is a frozen (immutable) dataclass returned by ``Warden.evaluate()``.

    Attributes:
        allowed: Whether access is granted.
        outcome: How the decision was reached:
            - ``"allow"``: at least one allow policy matched and no deny
              policy did
            - ``"explicit_deny"``: at least one deny policy matched; deny
              always overrides allow
            - ``"default_deny"``: no policy matched at all
        matched: Ids of every policy that matched, in candidate order.
        deny_policies: Ids of the matching policies with effect ``deny``.
        explanation: Per-policy evaluation breakdown. Only populated when
            ``explain=True`` was passed. Structure:
            ``{"outcome": str, "candidates": int, "policies": list}``
    """

    allowed: bool
    outcome: str
    matched: tuple[str, ...] = ()
    deny_policies: tuple[str, ...] = ()
    explanation: dict[str, Any] | None = field(default=None, compare=False)


class Warden:
    """Decides whether access requests are allowed.

    The warden fetches candidate policies from a store, checks each one
    against the request and combines the matches: any matching deny policy
    denies, otherwise any matching allow policy allows, otherwise the
    request is denied by default.

    Decisions are never cached. The only shared state is the matcher's
    pattern cache, so one warden can serve many threads.

    Attributes:
        store: The ``PolicyStore`` that supplies candidate policies.
        matcher: The ``Matcher`` used for subjects, resources and actions.

    Example:
        >>> from warden import MemoryStore, Request, Warden, load_policy
        >>> store = MemoryStore([load_policy({
        ...     "id": "1", "effect": "allow",
        ...     "subjects": ["max"], "resources": ["<.*>"], "actions": ["update"],
        ... })])
        >>> warden = Warden(store)
        >>> warden.evaluate(Request(subject="max", action="update")).allowed
        True
    """

    def __init__(self, store: PolicyStore, *, matcher: Matcher | None = None) -> None:
        """Initialize a warden.

        Args:
            store: Source of candidate policies.
            matcher: Pattern matcher. If ``None``, a matcher with its own
                pattern cache is created.
        """
        self.store = store
        self.matcher = matcher or Matcher()

    def policy_matches(self, policy: Policy, request: Request) -> bool:
        """Return ``True`` if ``policy`` applies to ``request``.

        The subject, resource and action must each match one of the
        policy's patterns, and every condition must be fulfilled by the
        context value it is attached to.
        """
        return self._check(policy, request)["matched"]

    def _check(self, policy: Policy, request: Request, explain: bool = False) -> dict[str, Any]:
        result: dict[str, Any] = {"id": policy.id, "effect": policy.effect, "matched": False}
        for key, patterns, candidate in (
            ("subject", policy.subjects, request.subject),
            ("resource", policy.resources, request.resource),
            ("action", policy.actions, request.action),
        ):
            ok = self.matcher.matches(patterns, candidate)
            result[key] = ok
            if not ok:
                return result

        conditions: dict[str, bool] = {}
        for name, condition in policy.conditions.items():
            ok = condition.fulfills(request.value(name), request)
            conditions[name] = ok
            if not ok:
                if explain:
                    result["conditions"] = conditions
                return result
        if explain:
            result["conditions"] = conditions
        result["matched"] = True
        return result

    def evaluate_policies(
        self,
        policies: Iterable[Policy],
        request: Request,
        *,
        explain: bool = False,
    ) -> Decision:
        """Decide ``request`` against the given candidate policies.

        The candidates may be the full policy set; nothing is assumed to
        have been filtered.

        Args:
            policies: Candidate policies.
            request: The access request.
            explain: If ``True``, populates ``Decision.explanation``.

        Returns:
            A ``Decision``. Evaluation itself never raises for a policy
            that does not match; patterns that do not compile simply do not
            match.
        """
        matched: list[str] = []
        denied: list[str] = []
        details: list[dict[str, Any]] = []
        candidates = 0
        for policy in policies:
            candidates += 1
            result = self._check(policy, request, explain)
            if explain:
                details.append(result)
            if not result["matched"]:
                continue
            matched.append(policy.id)
            if policy.effect == DENY:
                denied.append(policy.id)

        if denied:
            outcome = OUTCOME_EXPLICIT_DENY
        elif matched:
            outcome = OUTCOME_ALLOW
        else:
            outcome = OUTCOME_DEFAULT_DENY

        logger.debug(
            "Request subject=%r action=%r resource=%r -> %s (matched=%s)",
            request.subject,
            request.action,
            request.resource,
            outcome,
            matched,
        )

        explanation = None
        if explain:
            explanation = {"outcome": outcome, "candidates": candidates, "policies": details}

        return Decision(
            allowed=outcome == OUTCOME_ALLOW,
            outcome=outcome,
            matched=tuple(matched),
            deny_policies=tuple(denied),
            explanation=explanation,
        )

    def evaluate(self, request: Request, *, explain: bool = False) -> Decision:
        """Fetch candidates from the store and decide ``request``.

        Raises:
            StoreError: If the store fails. The error is never turned into
                a decision.
        """
        try:
            policies = self.store.find_candidates(request)
        except StoreError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise StoreError(f"could not fetch policies: {exc}") from exc
        return self.evaluate_policies(policies, request, explain=explain)

    def is_allowed(self, request: Request) -> None:
        """Return if access is granted, raise otherwise.

        Raises:
            ExplicitDenyError: If a deny policy matched. ``policy_ids``
                names the deny policies.
            DefaultDenyError: If no policy matched.
            StoreError: If the store fails.
        """
        decision = self.evaluate(request)
        if decision.outcome == OUTCOME_EXPLICIT_DENY:
            raise ExplicitDenyError(list(decision.deny_policies), decision)
        if decision.outcome == OUTCOME_DEFAULT_DENY:
            raise DefaultDenyError(decision)

    def explain(self, request: Request) -> dict[str, Any]:
        """Convenience method to evaluate with explanation enabled."""
        return self.evaluate(request, explain=True).explanation or {}
