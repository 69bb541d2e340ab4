"""
Stok Defteri uçtan uca Demo Script'i.

Kullanım:
    python demo.py                  # Bellek içi depo
    STOCKLEDGER_BACKEND=dynamodb python demo.py   # Gerçek DynamoDB tabloları
"""

import logging
import os
import sys

import env_loader  # noqa: F401

from stockledger.config import BACKEND_MEMORY, Settings
from stockledger.models import TransactionType
from stockledger.services import InventorySession


def print_products(session: InventorySession):
    for p in session.products:
        flag = " ⚠️ düşük stok" if p.is_low_stock else ""
        print(f"   {p.name:<20} {p.brand:<12} adet: {p.quantity}{flag}")


def run_scenario(session: InventorySession) -> bool:
    """Ürün oluştur -> fazla çıkış -> hareketi sil; her adımda defteri doğrula."""
    print("\n--- 1. Ürün oluşturma (başlangıç stoğu 10) ---")
    result = session.create_product("Shampoo", brand="Acme", variant="500ml", initial_quantity=10)
    if not result.ok:
        print(f"❌ {result.status.value}: {result.error}")
        return False
    product = result.data
    print(f"✅ {product.name} oluşturuldu, hareket sayısı: {len(session.transactions)}")

    print("\n--- 2. Stok çıkışı (istenen 15) ---")
    result = session.adjust_stock(product.id, 15, TransactionType.OUT, notes="demo")
    if not result.ok:
        print(f"❌ {result.status.value}: {result.error}")
        return False
    adjustment = result.data
    print(
        f"✅ Kaydedilen çıkış: {adjustment.effective_amount} "
        f"(istenen {adjustment.requested_amount}), yeni adet: {adjustment.product.quantity}"
    )

    print("\n--- 3. Çıkış hareketini silme ---")
    result = session.delete_transaction(adjustment.transaction.id)
    if not result.ok:
        print(f"❌ {result.status.value}: {result.error}")
        return False
    print(f"✅ Hareket silindi, adet: {session.get_product(product.id).quantity}")

    print("\n--- 4. İkinci ürün ve giriş ---")
    second = session.create_product("Conditioner", brand="Acme", initial_quantity=3).data
    session.adjust_stock(second.id, 4, "in")
    session.adjust_stock(second.id, 2, "out")
    print_products(session)

    print("\n--- 5. Analiz ---")
    totals = session.totals()
    print(f"   Toplam giriş: {totals['total_in']}, çıkış: {totals['total_out']}, stok: {totals['total_stock']}")
    for row in session.product_performance():
        print(
            f"   {row.name:<20} tüketim: {row.consumed:<4} trend: {row.trend.value} "
            f"{row.trend_value}%  devir: {row.turnover_rate.value}"
        )
    for row in session.opening_stock():
        print(f"   {row.name:<20} ay başı: {row.opening_qty}, şimdi: {row.current_qty}")

    print("\n--- 6. Defter mutabakatı ---")
    report = session.reconcile()
    if report["all_valid"]:
        print(f"✅ {report['products_checked']} ürün defterle uyumlu")
    else:
        print(f"❌ {report['discrepancies_found']} uyumsuzluk: {report['discrepancies']}")
    return report["all_valid"]


def main():
    settings = Settings.from_env()
    if "STOCKLEDGER_BACKEND" not in os.environ:
        settings.backend = BACKEND_MEMORY
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    print("=" * 60)
    print("📦 Stok Defteri - Demo")
    print(f"   Backend: {settings.backend}")
    print("=" * 60)

    session = InventorySession.from_settings(settings).start()
    connection = session.check_connection()
    if connection["status"] != "connected":
        print(f"❌ Bağlantı hatası: {connection['reason']}")
        sys.exit(1)

    if session.warehouse_enabled:
        print(f"✅ Aktif depo: {session.active_warehouse.name}")
    else:
        print("⚠️  Depo tablosu yok, tek depo modunda çalışılıyor")

    ok = run_scenario(session)
    print("\n" + "=" * 60)
    print("✅ Demo tamamlandı" if ok else "❌ Demo hatayla bitti")
    print("=" * 60)
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
