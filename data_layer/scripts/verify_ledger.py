"""Defter mutabakatı - ürün miktarları hareket toplamlarıyla uyuşuyor mu kontrol eder.

Kullanim:
    python -m data_layer.scripts.verify_ledger                  # STOCKLEDGER_TENANT_ID
    python -m data_layer.scripts.verify_ledger --tenant t-123
    python -m data_layer.scripts.verify_ledger --json           # Raporu JSON bas
"""
import json
import logging
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))
import env_loader  # noqa: F401

from stockledger.analytics import reconcile_ledger
from stockledger.config import Settings
from stockledger.services import LedgerQueries
from stockledger.store import StoreError, create_store


def verify_tenant(store, tenant_id: str) -> dict:
    """Kiracının tüm ürünlerini (depo filtresi olmadan) tüm hareketlerle karşılaştırır."""
    queries = LedgerQueries(store)
    products = queries.list_products(tenant_id)
    transactions = queries.list_all_transactions(tenant_id)
    return reconcile_ledger(products, transactions)


def print_report(report: dict) -> None:
    print(f"\n--- Defter Dogrulama ({report['verification_date']}) ---\n", flush=True)
    print(f"  Kontrol edilen urun: {report['products_checked']}")
    for d in report["discrepancies"]:
        print(
            f"  ❌ {d['name']} ({d['product_id']}): kayitli {d['actual']}, "
            f"defter {d['expected']}, fark {d['difference']:+d}"
        )
    for tx_id in report["orphan_transactions"]:
        print(f"  ⚠️  Urunu olmayan hareket: {tx_id}")
    if report["all_valid"]:
        print("\n✅ Tum urunler defterle uyumlu")
    else:
        print(f"\n❌ {report['discrepancies_found']} uyumsuzluk bulundu, elle mutabakat gerekli")


def main(argv=None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    tenant_id = settings.tenant_id
    if "--tenant" in args:
        i = args.index("--tenant")
        if i + 1 < len(args):
            tenant_id = args[i + 1]
    if not tenant_id:
        print("❌ Kiraci belirtilmedi (--tenant veya STOCKLEDGER_TENANT_ID)")
        return 2

    store = create_store(settings)
    try:
        report = verify_tenant(store, tenant_id)
    except StoreError as e:
        print(f"❌ Depo hatasi: {e.user_message}")
        return 2

    if "--json" in args:
        print(json.dumps(report, indent=2, ensure_ascii=False))
    else:
        print_report(report)
    return 0 if report["all_valid"] else 1


if __name__ == "__main__":
    sys.exit(main())
