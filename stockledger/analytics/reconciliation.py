"""Defter mutabakatı - ürün miktarlarını hareket toplamlarıyla karşılaştırır.

Beklenen miktar: Σ(in) - Σ(out). Başlangıç stoğu sentetik bir "in"
hareketi olduğundan ayrıca eklenmez.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from stockledger.models.inventory import Product, Transaction, format_timestamp, utc_now


def ledger_balances(transactions: Iterable[Transaction]) -> dict[str, int]:
    balances: dict[str, int] = {}
    for t in transactions:
        balances[t.product_id] = balances.get(t.product_id, 0) + t.signed_amount
    return balances


def reconcile_ledger(
    products: Iterable[Product],
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
) -> dict:
    """Mutabakat raporu üretir.

    Returns:
        verification_date, products_checked, discrepancies_found,
        discrepancies (product_id, name, expected, actual, difference),
        orphan_transactions (ürünü olmayan hareket kimlikleri), all_valid
    """
    transactions = list(transactions)
    balances = ledger_balances(transactions)
    products = list(products)
    known = {p.id for p in products}

    details: dict[str, dict] = {}
    discrepancies = []
    for p in products:
        expected = balances.get(p.id, 0)
        is_match = p.quantity == expected
        details[p.id] = {"expected": expected, "actual": p.quantity, "match": is_match}
        if not is_match:
            discrepancies.append({
                "product_id": p.id,
                "name": p.name,
                "expected": expected,
                "actual": p.quantity,
                "difference": p.quantity - expected,
            })

    orphans = sorted(t.id for t in transactions if t.product_id not in known)

    return {
        "verification_date": format_timestamp(now or utc_now()),
        "products_checked": len(products),
        "discrepancies_found": len(discrepancies),
        "discrepancies": discrepancies,
        "orphan_transactions": orphans,
        "all_valid": not discrepancies and not orphans,
        "details": details,
    }
