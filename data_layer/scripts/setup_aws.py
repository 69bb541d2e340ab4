"""DynamoDB tablolarını kurar veya siler.

Kullanım:
    python -m data_layer.scripts.setup_aws              # Kur
    python -m data_layer.scripts.setup_aws --delete     # Her şeyi sil
    python -m data_layer.scripts.setup_aws --region eu-west-1  # Farklı region
"""
import os
import sys

# Proje root'unu path'e ekle
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from data_layer.infrastructure.dynamodb_setup import create_tables, delete_tables
from stockledger.config import Settings


def parse_args(args: list[str], settings: Settings) -> bool:
    """--region ve --prefix değerlerini ayarlara yazar; silme modunu döndürür."""
    delete_mode = False
    for i, arg in enumerate(args):
        if arg == "--delete":
            delete_mode = True
        elif arg == "--region" and i + 1 < len(args):
            settings.region = args[i + 1]
        elif arg == "--prefix" and i + 1 < len(args):
            settings.table_prefix = args[i + 1]
    return delete_mode


def main(argv=None) -> int:
    settings = Settings.from_env()
    delete_mode = parse_args(list(sys.argv[1:] if argv is None else argv), settings)

    if delete_mode:
        print("🗑️  DynamoDB tabloları siliniyor...\n")
        delete_tables(settings)
        print("\n✅ Tüm tablolar silindi!")
        return 0

    print("=" * 60)
    print("🚀 DynamoDB Kurulumu - Stok Defteri")
    print(f"   Region: {settings.region}")
    if settings.table_prefix:
        print(f"   Tablo öneki: {settings.table_prefix}")
    print("=" * 60)

    created = create_tables(settings)

    print("\n" + "=" * 60)
    print(f"✅ Tablolar hazır ({len(created)} yeni)")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
