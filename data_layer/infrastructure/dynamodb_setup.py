"""Stok defteri DynamoDB tablolarının kurulumu.

Her ilişki için bir tablo (Warehouses, Products, Transactions), isteğe bağlı
önek STOCKLEDGER_TABLE_PREFIX ile. Kiracı sorguları TenantIndex üzerinden
yapılır; sıralama anahtarı created_at.
"""
import os
import sys
from typing import Iterable, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))
import env_loader  # noqa: F401

from stockledger.config import Settings
from stockledger.store.base import RELATIONS
from stockledger.store.dynamo import TENANT_INDEX
from stockledger.store.errors import StoreErrorKind, classify_client_error

BOTO_CONFIG = Config(retries={"max_attempts": 3})

_STRING_KEYS = ("id", "tenant_id", "created_at")


def table_definition(table_name: str) -> dict:
    """Tek bir defter tablosunun create_table parametreleri."""
    return {
        "TableName": table_name,
        "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": key, "AttributeType": "S"} for key in _STRING_KEYS
        ],
        "GlobalSecondaryIndexes": [{
            "IndexName": TENANT_INDEX,
            "KeySchema": [
                {"AttributeName": "tenant_id", "KeyType": "HASH"},
                {"AttributeName": "created_at", "KeyType": "RANGE"},
            ],
            "Projection": {"ProjectionType": "ALL"},
        }],
        "BillingMode": "PAY_PER_REQUEST",
    }


def table_definitions(settings: Settings) -> list[dict]:
    return [table_definition(settings.table_name(r)) for r in RELATIONS]


def _client(settings: Settings, client=None):
    return client or boto3.client(
        "dynamodb",
        region_name=settings.region,
        endpoint_url=settings.endpoint_url,
        config=BOTO_CONFIG,
    )


def _is_missing(error: ClientError) -> bool:
    return classify_client_error(error) == StoreErrorKind.RELATION_MISSING


def _table_exists(dynamodb, table_name: str) -> bool:
    try:
        dynamodb.describe_table(TableName=table_name)
    except ClientError as e:
        if _is_missing(e):
            return False
        raise
    return True


def create_tables(settings: Optional[Settings] = None, client=None,
                  relations: Iterable[str] = RELATIONS) -> list[str]:
    """Eksik defter tablolarını oluşturur, mevcutlara dokunmaz.

    Tekrar çalıştırmak güvenlidir. Yeni oluşturulan tablo adlarını döndürür.
    """
    settings = settings or Settings.from_env()
    dynamodb = _client(settings, client)
    created = []

    for relation in relations:
        table_name = settings.table_name(relation)
        if _table_exists(dynamodb, table_name):
            print(f"  ⏭️  {relation}: {table_name} hazır")
            continue

        print(f"  🔨 {relation}: {table_name} oluşturuluyor...")
        dynamodb.create_table(**table_definition(table_name))
        dynamodb.get_waiter("table_exists").wait(TableName=table_name)
        print(f"  ✓  {table_name} aktif")
        created.append(table_name)
    return created


def delete_tables(settings: Optional[Settings] = None, client=None) -> list[str]:
    """Defter tablolarını siler; defterdeki tüm kiracıların verisi gider."""
    settings = settings or Settings.from_env()
    dynamodb = _client(settings, client)
    deleted = []

    for relation in RELATIONS:
        table_name = settings.table_name(relation)
        try:
            dynamodb.delete_table(TableName=table_name)
        except ClientError as e:
            if not _is_missing(e):
                raise
            print(f"  ⏭️  {relation}: {table_name} yok")
            continue
        print(f"  🗑️  {relation}: {table_name} silindi")
        deleted.append(table_name)
    return deleted
