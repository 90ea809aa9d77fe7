"""
One-off migration for rows created before obligations carried a group id.

Older rows encoded the installment position only in the description,
e.g. "Laptop (2/12)", and every row had its own group id. This module
is the only place that still reads that suffix.
"""

import argparse
import logging
import uuid
from collections import defaultdict
from typing import Dict, List, Tuple
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker
from card_ledger.config import settings
from card_ledger.domain.installments import INSTALLMENT_SUFFIX, strip_installment_suffix
from card_ledger.domain.models import FINANCE_INSTALLMENT
from card_ledger.infrastructure.database.models import Obligation
from card_ledger.infrastructure.database.session import SessionLocal
from card_ledger.infrastructure.observability.logging import setup_logging

logger = logging.getLogger(__name__)


def assign_legacy_group_ids(db: Session, user_id: str | None = None) -> int:
    """
    Regroup suffixed obligations into installment groups.

    Rows are bucketed by (user, card, base description, installment count)
    and walked in date order. A run ends when the position does not
    increase, so two purchases with the same description and count made
    at different times still end up in separate groups.

    Returns:
        Number of groups assigned
    """
    stmt = select(Obligation).where(Obligation.description.like("%(%/%)%"))
    if user_id is not None:
        stmt = stmt.where(Obligation.user_id == user_id)

    buckets: Dict[Tuple[str, uuid.UUID, str, int], List[Tuple[int, Obligation]]] = defaultdict(list)
    for obligation in db.execute(stmt).scalars():
        match = INSTALLMENT_SUFFIX.search(obligation.description)
        if match is None:
            continue
        index, count = int(match.group(1)), int(match.group(2))
        if not 1 <= index <= count:
            continue
        key = (obligation.user_id, obligation.card_id, strip_installment_suffix(obligation.description), count)
        buckets[key].append((index, obligation))

    groups = 0
    for (_, _, base_description, count), rows in buckets.items():
        rows.sort(key=lambda row: (row[1].date, row[0]))
        run: List[Tuple[int, Obligation]] = []
        for index, obligation in rows:
            if run and index <= run[-1][0]:
                _regroup(run, base_description, count)
                groups += 1
                run = []
            run.append((index, obligation))
        if run:
            _regroup(run, base_description, count)
            groups += 1

    db.flush()
    logger.info("Legacy installment groups assigned", extra={"groups": groups, "user_id": user_id})
    return groups


def _regroup(run: List[Tuple[int, Obligation]], base_description: str, count: int) -> None:
    group_id = uuid.uuid4()
    for index, obligation in run:
        obligation.group_id = group_id
        obligation.sequence_index = index
        obligation.sequence_count = count
        obligation.description = base_description
        if count > 1:
            obligation.finance_type = FINANCE_INSTALLMENT


def main(argv: list[str] | None = None, session_factory: sessionmaker = SessionLocal) -> int:
    ap = argparse.ArgumentParser(
        description="Assign group ids to installment rows that only carry an '(i/n)' description suffix",
    )
    ap.add_argument(
        "--user-id",
        required=False,
        default=None,
        help="Only migrate this user's obligations; all users when not set",
    )
    args = ap.parse_args(argv)

    setup_logging(settings.log_level)
    with session_factory() as db:
        groups = assign_legacy_group_ids(db, user_id=args.user_id)
        db.commit()

    print(f"Assigned {groups} installment groups")
    return 0


if __name__ == "__main__":  # pragma: no cover - manual utility
    raise SystemExit(main())
