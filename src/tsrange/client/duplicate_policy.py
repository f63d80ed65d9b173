"""Duplicate policies resolve conflicts when a sample is added at an existing timestamp."""

from __future__ import annotations

from ..core.errors import UnknownPolicyError

__all__ = ["DuplicatePolicy", "VALID_POLICIES"]

VALID_POLICIES = ("block", "first", "last", "min", "max", "sum")


class DuplicatePolicy:
    """A validated duplicate policy.

    Example
    -------
    >>> DuplicatePolicy("LAST").to_list("ON_DUPLICATE")
    ['ON_DUPLICATE', 'last']
    """

    def __init__(self, policy: str) -> None:
        policy = str(policy).lower()
        if policy not in VALID_POLICIES:
            raise UnknownPolicyError(f"{policy} is not a valid duplicate policy")
        self.policy = policy

    def to_list(self, cmd: str = "DUPLICATE_POLICY") -> list[str]:
        return [cmd, self.policy]

    def __str__(self) -> str:
        return " ".join(self.to_list())

    def __repr__(self) -> str:
        return f"DuplicatePolicy({self.policy!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DuplicatePolicy):
            return self.policy == other.policy
        if isinstance(other, str):
            try:
                return self.policy == DuplicatePolicy(other).policy
            except UnknownPolicyError:
                return False
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.policy)
