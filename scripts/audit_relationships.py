#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.db.session import AsyncSessionLocal
from app.models.friend_request import FriendRequest
from app.models.friendship import Friendship

logger = logging.getLogger("audit_relationships")


@dataclass
class AuditStats:
    requests_scanned: int = 0
    friendships_scanned: int = 0
    stale_requests: int = 0
    crossed_requests: int = 0
    duplicate_friendships: int = 0
    deleted: int = 0
    to_delete: list = field(default_factory=list, repr=False)

    @property
    def problems(self) -> int:
        return self.stale_requests + self.crossed_requests + self.duplicate_friendships


def _pair_key(a: UUID, b: UUID) -> tuple[UUID, UUID]:
    return (a, b) if str(a) < str(b) else (b, a)


def classify(
    requests: list[FriendRequest],
    friendships: list[Friendship],
    *,
    verbose: bool = False,
) -> AuditStats:
    """Find rows that break the one-relationship-per-pair rule.

    Rows must be ordered oldest first; the oldest row of a pair is kept.
    - stale: a request for a pair that already has a friendship
    - crossed: a second request for a pair, in the other direction
    - duplicate: a second friendship for a pair, stored in the other order
    """
    stats = AuditStats(requests_scanned=len(requests), friendships_scanned=len(friendships))

    friend_pairs: dict[tuple[UUID, UUID], Friendship] = {}
    for f in friendships:
        key = _pair_key(f.user_id_1, f.user_id_2)
        if key in friend_pairs:
            stats.duplicate_friendships += 1
            stats.to_delete.append(f)
            if verbose:
                logger.info("duplicate friendship id=%s pair=%s,%s", f.id, *key)
            continue
        friend_pairs[key] = f

    request_pairs: dict[tuple[UUID, UUID], FriendRequest] = {}
    for r in requests:
        key = _pair_key(r.from_user_id, r.to_user_id)
        if key in friend_pairs:
            stats.stale_requests += 1
            stats.to_delete.append(r)
            if verbose:
                logger.info("stale request id=%s from=%s to=%s", r.id, r.from_user_id, r.to_user_id)
            continue
        if key in request_pairs:
            stats.crossed_requests += 1
            stats.to_delete.append(r)
            if verbose:
                logger.info("crossed request id=%s from=%s to=%s", r.id, r.from_user_id, r.to_user_id)
            continue
        request_pairs[key] = r

    return stats


async def run_audit(db: AsyncSession, *, apply: bool, verbose: bool) -> AuditStats:
    requests = list(
        (
            await db.execute(
                select(FriendRequest).order_by(FriendRequest.created_at.asc(), FriendRequest.id.asc())
            )
        ).scalars()
    )
    friendships = list(
        (
            await db.execute(
                select(Friendship).order_by(Friendship.created_at.asc(), Friendship.id.asc())
            )
        ).scalars()
    )

    stats = classify(requests, friendships, verbose=verbose)

    if apply and stats.to_delete:
        try:
            for row in stats.to_delete:
                await db.delete(row)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        stats.deleted = len(stats.to_delete)
    else:
        # End the read transaction and release any snapshot state.
        await db.rollback()

    return stats


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Find friend requests and friendships that contradict each other."
    )
    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--apply",
        action="store_true",
        help="Delete the redundant rows. Without this flag, the script only reports.",
    )
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        help="Explicitly run in report-only mode (default behavior).",
    )
    parser.add_argument("--verbose", action="store_true", help="Log each offending row.")
    return parser.parse_args()


def _print_summary(*, apply: bool, stats: AuditStats) -> None:
    mode = "apply" if apply else "dry-run"
    print("Relationship audit complete")
    print(f"mode: {mode}")
    print(f"requests_scanned: {stats.requests_scanned}")
    print(f"friendships_scanned: {stats.friendships_scanned}")
    print(f"stale_requests: {stats.stale_requests}")
    print(f"crossed_requests: {stats.crossed_requests}")
    print(f"duplicate_friendships: {stats.duplicate_friendships}")
    print(f"deleted: {stats.deleted}")


async def _main_async(args: argparse.Namespace) -> AuditStats:
    async with AsyncSessionLocal() as db:
        return await run_audit(db, apply=args.apply, verbose=args.verbose)


def main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    stats = asyncio.run(_main_async(args))
    _print_summary(apply=args.apply, stats=stats)
    return 1 if stats.problems and not args.apply else 0


if __name__ == "__main__":
    raise SystemExit(main())
