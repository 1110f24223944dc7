"""
Permission filter contract.

A filter receives the caller and a candidate list and returns the subset the
caller may see, preserving input order. The store never filters by itself;
callers apply a filter to the result of ``get_secrets``.
"""
from typing import Callable, Protocol, Sequence

from .models import Secret, SignedInUser

SecretPredicate = Callable[[SignedInUser, Secret], bool]


class SecretsPermissionFilter(Protocol):
    def __call__(
        self,
        user: SignedInUser,
        secrets: Sequence[Secret],
    ) -> list[Secret]:
        ...


def allow_all(user: SignedInUser, secrets: Sequence[Secret]) -> list[Secret]:
    """Filter that hides nothing."""
    return list(secrets)


def filter_from_predicate(predicate: SecretPredicate) -> SecretsPermissionFilter:
    """Build an order-preserving filter from a per-record predicate.

    Example:
        >>> same_org = filter_from_predicate(lambda u, s: u.org_id == s.org_id)
        >>> visible = same_org(user, secrets)
    """
    def _filter(user: SignedInUser, secrets: Sequence[Secret]) -> list[Secret]:
        return [secret for secret in secrets if predicate(user, secret)]

    return _filter
