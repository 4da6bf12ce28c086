from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from .errors import PolicyExistsError, PolicyNotFoundError
from .policy import Policy, validate_policy
from .request import Request

logger = logging.getLogger(__name__)


class PolicyStore:
    """Interface the engine uses to fetch policies.

    Implementations may keep policies anywhere. ``find_candidates()`` may
    narrow the set for a request, but the engine re-checks every policy it
    gets, so returning all policies is always correct.

    Any exception raised here reaches the caller of ``Warden.evaluate()``
    as a ``StoreError``.
    """

    def get_all(self) -> list[Policy]:
        raise NotImplementedError

    def find_candidates(self, request: Request) -> list[Policy]:
        """Return the policies that may apply to ``request``."""
        return self.get_all()


class MemoryStore(PolicyStore):
    """Thread-safe in-memory policy store.

    Example:
        >>> store = MemoryStore([load_policy(...)])
        >>> store.create(load_policy(...))
    """

    def __init__(self, policies: Iterable[Policy] = ()) -> None:
        self._policies: dict[str, Policy] = {}
        self._lock = threading.RLock()
        for policy in policies:
            self.create(policy)

    def create(self, policy: Policy) -> None:
        """Add a policy.

        Raises:
            PolicyLoadError: If the policy has an empty pattern list or a
                malformed pattern.
            PolicyExistsError: If a policy with the same id is stored.
        """
        validate_policy(policy)
        with self._lock:
            if policy.id in self._policies:
                raise PolicyExistsError(f"policy '{policy.id}' already exists")
            self._policies[policy.id] = policy
        logger.debug("Stored policy %s (%s)", policy.id, policy.effect)

    def update(self, policy: Policy) -> None:
        """Replace the stored policy with the same id.

        Raises:
            PolicyLoadError: If the new policy is invalid.
            PolicyNotFoundError: If no policy has that id.
        """
        validate_policy(policy)
        with self._lock:
            if policy.id not in self._policies:
                raise PolicyNotFoundError(f"policy '{policy.id}' not found")
            self._policies[policy.id] = policy

    def get(self, policy_id: str) -> Policy:
        with self._lock:
            try:
                return self._policies[policy_id]
            except KeyError:
                raise PolicyNotFoundError(f"policy '{policy_id}' not found") from None

    def delete(self, policy_id: str) -> None:
        with self._lock:
            if self._policies.pop(policy_id, None) is None:
                raise PolicyNotFoundError(f"policy '{policy_id}' not found")
        logger.debug("Deleted policy %s", policy_id)

    def get_all(self) -> list[Policy]:
        with self._lock:
            return list(self._policies.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._policies)
