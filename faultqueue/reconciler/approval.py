"""Auto-approval policies applied after a successful dispatch."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from faultqueue.config import ApprovalConfig
from faultqueue.core.types import ItemKind


def should_auto_approve(
    item_kind: ItemKind,
    approval: ApprovalConfig,
    *,
    is_admin: bool,
    requested_users: Iterable[str],
) -> bool:
    """Return whether a request of ``item_kind`` skips manual approval.

    Admins always skip it. Otherwise the kind must not require approval, or
    every requesting user must be exempt.
    """

    if is_admin:
        return True
    required = {
        ItemKind.MOVIE: approval.require_movie_approval,
        ItemKind.TV_SHOW: approval.require_tv_approval,
        ItemKind.ALBUM: approval.require_music_approval,
    }[item_kind]
    if not required:
        return True
    users = [user.lower() for user in requested_users if user]
    if not users:
        return False
    exempt = set(approval.exempt_users)
    return all(user in exempt for user in users)


@dataclass(slots=True, frozen=True)
class TvApprovalPolicy:
    """TV shows are approved only when one of ``approve_on_backends`` accepted them."""

    approve_on_backends: tuple[str, ...] = ("sickrage",)

    @classmethod
    def from_config(cls, approval: ApprovalConfig) -> "TvApprovalPolicy":
        return cls(approve_on_backends=tuple(approval.tv_auto_approve_backends))

    def approves(self, backend: str) -> bool:
        return backend.lower() in self.approve_on_backends


__all__ = ["TvApprovalPolicy", "should_auto_approve"]
