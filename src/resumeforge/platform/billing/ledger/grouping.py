"""
Duplicate gateway record detection.

One real payment can produce several rows sharing a gateway transaction id
(seen for international payments), each with its own amount and currency.
``group_and_mark_primary`` picks one primary per shared id:

1. the first row whose currency equals its ``expectedCurrency``;
2. otherwise the row with the strictly largest positive amount
   (zero rows are authorization placeholders);
3. otherwise the first row.

Rows are ordered by id first so the result is deterministic.
"""

from collections.abc import Iterable, Sequence

from resumeforge.platform.billing.ledger.models import TransactionView


def select_primary(group: Sequence[TransactionView]) -> TransactionView:
    """Choose the canonical record of a duplicate group (ordered by id)."""
    for txn in group:
        expected = txn.expected_currency
        if expected and expected.upper() == txn.currency.upper():
            return txn

    best: TransactionView | None = None
    for txn in group:
        if txn.amount > 0 and (best is None or txn.amount > best.amount):
            best = txn
    if best is not None:
        return best

    # All placeholders; kept as the first row without further ranking
    return group[0]


def group_and_mark_primary(transactions: Iterable[TransactionView]) -> list[TransactionView]:
    """
    Annotate duplicate gateway records.

    Rows without a gateway transaction id and singleton groups pass through
    with no flags. In larger groups exactly one row gets ``is_primary=True``
    and the rest ``is_duplicate=True``. Output is grouped: each group appears
    at the position of its lowest id.

    Args:
        transactions: Ledger rows

    Returns:
        Copies of the rows with derived flags
    """
    ordered = sorted(transactions, key=lambda t: t.id)

    groups: dict[str, list[TransactionView]] = {}
    for txn in ordered:
        if txn.gateway_transaction_id:
            groups.setdefault(txn.gateway_transaction_id, []).append(txn)

    output: list[TransactionView] = []
    emitted: set[str] = set()
    for txn in ordered:
        key = txn.gateway_transaction_id
        if not key:
            output.append(txn.model_copy())
            continue
        if key in emitted:
            continue
        emitted.add(key)

        group = groups[key]
        if len(group) == 1:
            output.append(group[0].model_copy())
            continue

        primary = select_primary(group)
        for member in group:
            if member is primary:
                output.append(member.model_copy(update={"is_primary": True}))
            else:
                output.append(member.model_copy(update={"is_duplicate": True}))

    return output
